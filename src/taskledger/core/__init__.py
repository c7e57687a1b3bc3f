"""
Core service layer.

Components:
- orchestrator.py: TaskLedgerService, one transaction per logical operation,
  ledger append on every mutation, undo/redo replay
- state.py: AppState (settings + store + service) shared by the command layer
"""
