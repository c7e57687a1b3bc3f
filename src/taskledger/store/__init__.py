"""
Entity store.

Components:
- db.py: the single SQLite connection, schema bootstrap/migrations and the
  unit of work (Transaction) every repository and ledger call runs in
"""
