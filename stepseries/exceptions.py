from __future__ import annotations

from . import canon


class StepSeriesError(Exception):
    default_message = canon.GENERIC_ERROR_MESSAGE

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class DataSourceUnavailable(StepSeriesError):
    default_message = canon.UNAVAILABLE_MESSAGE


class AuthorizationDenied(StepSeriesError):
    default_message = canon.AUTHORIZATION_MESSAGE


class MetricUnsupported(StepSeriesError): ...


class QueryFailed(StepSeriesError): ...


class EmptyResult(StepSeriesError): ...


class IngestError(StepSeriesError): ...


class SeriesError(StepSeriesError): ...


def require(
    condition: bool, message: str, exc: type[StepSeriesError] = StepSeriesError
):
    """Raise the given exception if condition is False."""
    if not condition:
        raise exc(message)
