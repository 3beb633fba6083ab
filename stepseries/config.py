from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from . import canon
from .types import Frequency


@dataclass
class AggregatorConfig:
    # Local calendar used for windows ("start of today", month buckets)
    tz: str = canon.DEFAULT_TZ
    metric: str = canon.STEP_COUNT
    frequencies: List[Frequency] = field(default_factory=lambda: list(Frequency))

    # Fallback text when a provider gives no message of its own
    unavailable_message: str = canon.UNAVAILABLE_MESSAGE
    generic_error_message: str = canon.GENERIC_ERROR_MESSAGE

    # Picker starts on the hourly chart
    initial_frequency: Frequency = Frequency.HOURLY

    # Chart y-axis scaling
    y_headroom: float = canon.Y_HEADROOM
    y_default_max: float = canon.Y_DEFAULT_MAX


def default_config() -> AggregatorConfig:
    return AggregatorConfig()
