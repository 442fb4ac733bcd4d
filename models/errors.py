"""
models/errors.py
----------------
Error types shared by the recurrence engine and the reminder scheduler.
"""


class InvalidConfiguration(ValueError):
    """A recurrence that cannot be represented (e.g. custom without a positive interval)."""


class DeliveryFailure(Exception):
    """The reminder delivery backend rejected a schedule or cancel call."""


class PermissionDenied(Exception):
    """The reminder delivery backend is not allowed to deliver notifications."""
