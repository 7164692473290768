import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "level_two"),
}

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

SEARCH_DEBOUNCE_MS = int(os.getenv("SEARCH_DEBOUNCE_MS", "250"))
REALTIME_POLL_SECONDS = int(os.getenv("REALTIME_POLL_SECONDS", "5"))
WORKSPACE_IDLE_MINUTES = int(os.getenv("WORKSPACE_IDLE_MINUTES", "30"))
REPORT_DEFAULT_MONTHS = 3
SESSION_DAYS = 7
