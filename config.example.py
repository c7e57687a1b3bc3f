# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a
local .env file, see taskledger.config). Nothing here is imported at runtime.
"""

ENV_VARS = {
    # App / logging
    "TASKLEDGER_APP_NAME": "Name shown in the console prompt (default: taskledger).",
    "TASKLEDGER_LOG_LEVEL": "DEBUG/INFO/WARNING/ERROR/CRITICAL (default: INFO).",
    # Paths (gitignored)
    "TASKLEDGER_DATA_DIR": "Local data directory (default: .local/taskledger).",
    "TASKLEDGER_DB_PATH": "SQLite database path (default: <data_dir>/tasks.sqlite3).",
    "TASKLEDGER_LOG_DIR": "Directory of taskledger.log (default: <data_dir>).",
    # Listing defaults
    "TASKLEDGER_LIST_LIMIT": "Default number of tasks shown by /ls (default: 50).",
    "TASKLEDGER_ACTIONS_LIMIT": "Default number of records shown by /log (default: 10).",
}
