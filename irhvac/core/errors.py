"""Domain-specific errors for irhvac."""


class IrhvacError(Exception):
    """Base error for irhvac."""


class ConfigLoadError(IrhvacError):
    """Raised when the configuration document cannot be read or written."""


class ConfigValidationError(IrhvacError):
    """Raised when a configuration document does not conform to schema or semantics."""


class RegistryError(IrhvacError):
    """Raised when a management operation on channels/devices is rejected."""


class CodecError(IrhvacError):
    """Raised when a raw IR code cannot be decoded."""


class CommandError(IrhvacError):
    """Raised while resolving a wire command; `reason` is the wire error code."""

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or reason)
        self.reason = reason


class TransportError(IrhvacError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when an IR output or a controller connection cannot be opened."""


class TransportSendError(TransportError):
    """Raised when emitting a pulse train fails."""
