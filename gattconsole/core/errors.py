"""Domain-specific errors for gattconsole."""


class GattConsoleError(Exception):
    """Base error for gattconsole."""


class ValidationError(GattConsoleError):
    """Raised when user input cannot be applied to the current session."""


class OutOfRangeError(ValidationError):
    """Raised when a selection index is outside the current 1-based list."""

    def __init__(self, kind: str, index: int, count: int) -> None:
        super().__init__(f"wrong {kind} #{index}")
        self.kind = kind
        self.index = index
        self.count = count


class MissingSelectionError(ValidationError):
    """Raised when an operation needs a selection the session does not hold."""


class ConfigError(GattConsoleError):
    """Base configuration error."""


class ConfigValidationError(ConfigError):
    """Raised when a config file does not conform to schema or semantics."""


class ConfigLoadError(ConfigError):
    """Raised when reading a config file fails."""


class TransportError(GattConsoleError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when the radio cannot be reached or a device is not connected."""


class TransportSendError(TransportError):
    """Raised when a GATT write fails."""
