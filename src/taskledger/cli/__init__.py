"""
Command front-end (thin glue over TaskLedgerService).

Components:
- bootstrap.py: composition root (settings -> store -> service -> AppState)
- commands.py: slash-command registry and handlers
- render.py: plain-text rendering of tasks, categories and ledger records
- console.py: interactive console loop
- main.py: console-script entrypoint (one-shot command or console)
"""
