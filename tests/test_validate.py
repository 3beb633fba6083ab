"""Validation tests for sample frames and series invariants."""

import pandas as pd
import pytest

from stepseries import ingest, validate
from stepseries.exceptions import IngestError, SeriesError
from stepseries.types import DataPoint

TZ = "Australia/Brisbane"


def _pt(hour, value=1.0):
    start = pd.Timestamp("2025-01-15", tz=TZ) + pd.Timedelta(hours=hour)
    return DataPoint(bucket_start=start, bucket_end=start + pd.Timedelta(hours=1), value=value)


def test_assert_samples_rejects_non_monotonic(hourly_samples):
    df = ingest.from_dataframe(hourly_samples).iloc[[1, 0, 2]]
    with pytest.raises(IngestError):
        validate.assert_samples(df)


def test_assert_samples_rejects_naive_index(hourly_samples):
    df = ingest.from_dataframe(hourly_samples)
    df.index = df.index.tz_localize(None)
    with pytest.raises(IngestError):
        validate.assert_samples(df)


def test_assert_samples_rejects_missing_column(hourly_samples):
    df = ingest.from_dataframe(hourly_samples).rename(columns={"steps": "kcal"})
    with pytest.raises(IngestError):
        validate.assert_samples(df)


def test_assert_series_accepts_ordered_unique():
    validate.assert_series((_pt(0), _pt(1), _pt(5)))
    validate.assert_series(())


def test_assert_series_rejects_duplicates():
    with pytest.raises(SeriesError):
        validate.assert_series((_pt(0), _pt(0)))


def test_assert_series_rejects_descending():
    with pytest.raises(SeriesError):
        validate.assert_series((_pt(2), _pt(1)))


def test_assert_series_rejects_negative_value():
    with pytest.raises(SeriesError):
        validate.assert_series((_pt(0, -1.0),))
