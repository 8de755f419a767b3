from typing import Optional


class SeriesError(Exception):
    pass


class DataSourceError(SeriesError):
    pass


class UpstreamError(DataSourceError):
    def __init__(self, status: Optional[int], message: str) -> None:
        super().__init__(f"upstream returned {status}: {message}")
        self.status = status
        self.message = message


class RateLimitExhausted(DataSourceError):
    pass


class TransientNetworkError(DataSourceError):
    pass


class PartialSampleFailure(DataSourceError):
    """A single balance sample or transaction page could not be fetched."""


class InvalidTimeFrame(SeriesError):
    pass


class SnapshotNotReady(SeriesError):
    pass
