"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_SEARCH_DEBOUNCE_MS = 250
DEFAULT_REALTIME_POLL_SECONDS = 3
DEFAULT_WORKSPACE_IDLE_MINUTES = 30
DEFAULT_REPORT_MONTHS = 3

MIN_PASSWORD_LENGTH = 6
MAX_SERVANT_SECTIONS = 4
CHART_MAX_DATES = 10

UNASSIGNED_GROUP = "__unassigned__"
FALLBACK_MEMBER_NAME = "طالب"
FALLBACK_USER_NAME = "مستخدم"
FALLBACK_SERVANT_NAME = "خادم"

SAVE_CONFIRM_PROMPT = "سيتم استبدال سجلات هذا التاريخ. هل تريد المتابعة؟"
