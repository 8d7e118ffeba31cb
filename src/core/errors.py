import typing as typ


class InvalidQueryError(ValueError):
    """Raised when a search or verification request is malformed."""

    def __init__(self, field: str, value: typ.Any, reason: str = "") -> None:
        """Initialize the error."""
        message = f"Invalid value for `{field}`: {value!r}. "
        message += f"Reason: {reason}"
        super().__init__(message)
        self.field = field


class RecordStoreError(RuntimeError):
    """Raised when the record set cannot be loaded at all."""

    def __init__(self, path: str, reason: str = "") -> None:
        """Initialize the error."""
        super().__init__(f"Could not load records from `{path}`. Reason: {reason}")
        self.path = path


class CacheUnavailableError(RuntimeError):
    """Raised by cache backends that cannot be reached."""
