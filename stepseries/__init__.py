from . import (
    canon,
    types,
    utils,
    exceptions,
    config,
    windows,
    ingest,
    validate,
    transform,
    summary,
    sources,
    aggregator,
)
from .aggregator import StepSeriesAggregator
from .sources import FrameHealthDataSource, HealthDataSource
from .types import Frequency

__all__ = [
    "canon",
    "types",
    "utils",
    "exceptions",
    "config",
    "windows",
    "ingest",
    "validate",
    "transform",
    "summary",
    "sources",
    "aggregator",
    "StepSeriesAggregator",
    "FrameHealthDataSource",
    "HealthDataSource",
    "Frequency",
]
