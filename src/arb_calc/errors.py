from typing import Optional


class CalcError(RuntimeError):
    """Base class for every fatal condition raised by arb_calc."""


class TransportReadError(CalcError):
    """Raised when the request stream cannot be read or is not UTF-8."""


class TransportWriteError(CalcError):
    """Raised when a response line cannot be written to the output stream."""


class DecodeError(CalcError):
    """Raised when a record is malformed or a numeric field is invalid."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class IntegerOverflowError(CalcError, OverflowError):
    """Raised when an arithmetic result leaves the signed 128-bit range."""


class EncodeError(CalcError):
    """Raised when a verdict cannot be serialized."""


class EngineError(CalcError):
    """Raised when the filter subprocess fails or answers with garbage."""
