from __future__ import annotations


class UnknownPresetError(ValueError):
    """Raised when a search preset name is not registered."""


class SchoolNotFoundError(LookupError):
    def __init__(self, school_id: str):
        super().__init__(f"School not found: {school_id}")
        self.school_id = school_id


class EmailConfigurationError(RuntimeError):
    """Email delivery is enabled but Resend credentials are missing."""
