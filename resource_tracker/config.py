import os

APPDATA_DIR = os.path.join(os.getenv("APPDATA") or os.path.expanduser("~"), "ResourceTracker")

LOG_DIR = os.path.join(APPDATA_DIR, "logs")
LOG_FILE = os.path.join(LOG_DIR, "resource_tracker.log")
LOGGER_NAME = "ResourceTracker"

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

# Resources
TP_RATE_MS = 10 * MINUTE_MS
TP_CAP = 100
RP_RATE_MS = 2 * HOUR_MS
RP_CAP = 5

RESOURCE_SPECS = {
    "tp": {"rate_ms": TP_RATE_MS, "cap": TP_CAP},
    "rp": {"rate_ms": RP_RATE_MS, "cap": RP_CAP},
}
RESOURCE_KINDS = tuple(RESOURCE_SPECS)
TP_MILESTONES = (30, 60, 90)

FALLBACK_RATE_MS = 60 * 1000
FALLBACK_CAP = 1

# History
HISTORY_RETENTION_MS = DAY_MS
HISTORY_MAX_POINTS = 2000
HISTORY_MAX_EVENTS = 2000
HISTORY_MIN_GAP_MS = 15 * 1000
HISTORY_SAMPLE_INTERVAL_MS = 60 * 1000
HISTORY_VALUE_EPSILON = 0.01
HISTORY_EVENT_TYPES = ("spend", "manual", "reset")

# Daily reset
DEFAULT_TZ = os.getenv("RESOURCE_TRACKER_TZ") or "America/Chicago"
DAILY_RESET_HOUR = 10
FALLBACK_TZ_OFFSET = "-05:00"
