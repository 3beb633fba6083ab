from __future__ import annotations
from typing import Final, Dict

INDEX_NAME: Final[str] = "t_start"
SERIES_INDEX_NAME: Final[str] = "bucket_start"
VALUE_COL: Final[str] = "steps"
REQUIRED_COLS: Final[list[str]] = ["steps"]
DEFAULT_TZ: Final[str] = "Australia/Brisbane"
COMMON_TIMESTAMP_NAMES = ("t_start", "start", "start_date", "startdate", "timestamp", "time", "date")
COMMON_VALUE_NAMES = ("steps", "step_count", "stepcount", "count", "value", "quantity")

STEP_COUNT: Final[str] = "step_count"

# Segmented picker labels
FREQUENCY_LABELS: Dict[str, str] = {
    "hourly": "日",
    "weekly": "週",
    "monthly": "月",
    "semi_annual": "6ヶ月",
    "yearly": "年",
}

UNAVAILABLE_MESSAGE: Final[str] = "Health data is not available on this device."
AUTHORIZATION_MESSAGE: Final[str] = "Access to health data was not granted."
GENERIC_ERROR_MESSAGE: Final[str] = "An unexpected error occurred while loading step counts."

# Chart y-axis: headroom over the tallest bar, or a fixed ceiling when empty
Y_HEADROOM: Final[float] = 1.5
Y_DEFAULT_MAX: Final[float] = 1000.0

# Axis label per bucket granularity
LABEL_FORMATS: Dict[str, str] = {
    "hourly": "%H:%M",
    "weekly": "%a",
    "monthly": "%m-%d",
    "semi_annual": "%Y-%m",
    "yearly": "%Y-%m",
}
