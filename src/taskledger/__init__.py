"""taskledger: a single-user task tracker with a reversible operation log (undo/redo)."""

__version__ = "0.1.0"
