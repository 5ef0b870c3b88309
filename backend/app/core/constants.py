"""Application-wide constants for the Cadenza scheduling service."""

from __future__ import annotations

# Lesson duration constraints
MIN_LESSON_DURATION = 15  # minutes
MAX_LESSON_DURATION = 240  # minutes (4 hours)

# Recurring series bounds
MAX_SERIES_INTERVAL_WEEKS = 8
MAX_SERIES_COUNT = 100

# Slot search
MIN_STEP_MINUTES = 5

# Text constraints
MAX_TITLE_LENGTH = 200
MAX_LABEL_LENGTH = 255
MAX_PARTICIPANT_ID_LENGTH = 64

# Query limits
DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 500

BRAND_NAME = "Cadenza"

API_TITLE = f"{BRAND_NAME} Scheduling API"
API_DESCRIPTION = (
    f"Scheduling engine for {BRAND_NAME}: availability, slot suggestions, "
    "recurring lessons and course enrollment"
)
API_VERSION = "1.0.0"
