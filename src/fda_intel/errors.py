class FdaIntelError(Exception):
    """Base class for errors raised by the ingestion core."""


class SourceFetchError(FdaIntelError):
    def __init__(self, source_name: str, reason: str) -> None:
        self.source_name = source_name
        self.reason = reason
        super().__init__(f"{source_name}: {reason}")


class PersistenceError(FdaIntelError):
    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"save failed for {key}: {reason}")


class CycleInProgressError(FdaIntelError):
    """Raised when a refresh is requested while another one is running."""
