"""
errors.py
Exceptions surfaced to the UI. Each one carries a message fit for st.error().
"""

from __future__ import annotations


class GymError(Exception):
    pass


class ValidationError(GymError):
    """Missing or malformed input; raised before anything is written."""

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(" ".join(self.errors))


class NotFoundError(GymError):
    pass


class BackendError(GymError):
    """A database write failed. The message is the driver's own."""
