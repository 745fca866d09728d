"""Exceptions raised by the memory engine stores and collaborators."""


class MalformedRecordError(ValueError):
    """Raised when a stored row cannot be parsed into a model."""

    def __init__(self, record_type: str, message: str | None = None):
        self.record_type = record_type
        self.message = (
            f"Malformed {record_type}: {message}" if message else f"Malformed {record_type}"
        )
        super().__init__(self.message)


class StoreUnavailableError(Exception):
    """Raised when a Redis-backed store call fails."""

    pass


class DominoAnalyzerError(Exception):
    def __init__(self, message: str | None = None):
        self.message = (
            f"Domino analysis failed: {message}" if message else "Domino analysis failed"
        )
        super().__init__(self.message)
