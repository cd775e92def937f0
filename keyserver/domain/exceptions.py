"""Domain-specific exceptions."""


class DomainError(Exception):
    """Base exception for domain errors."""

    pass


class ValidationError(DomainError):
    """Raised when input is missing or malformed.

    ``code`` is a stable, machine-checkable reason (e.g. ``no_valid_key``).
    """

    def __init__(self, message: str, code: str = "validation_failed"):
        super().__init__(message)
        self.code = code


class KeyNotFoundError(DomainError):
    """Raised when a key string does not resolve to a stored record."""

    def __init__(self, key: str):
        super().__init__(f"Key '{key}' not found")
        self.key = key


class NoFreeKeyError(DomainError):
    """Raised when no key is both unused and valid."""

    def __init__(self):
        super().__init__("No free key available")


class StoreIOError(DomainError):
    """Raised when the backing store cannot be read or written."""

    pass


class NotificationDispatchError(DomainError):
    """Raised when a notification cannot be delivered. Never leaves the dispatcher."""

    pass
