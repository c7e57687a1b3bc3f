"""
Action ledger: the reversible operation log behind undo/redo.

Components:
- action_models.py: the closed set of operation payloads + Action record
- codec.py: versioned binary encoding of operation payloads
- action_ledger.py: append/replace/undo-target/redo-target over the actions table
"""
