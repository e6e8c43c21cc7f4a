"""
Exceptions raised by collegeadmin.

The CLI and the interactive shell catch CollegeAdminError, show the message
as a one-line notification and carry on.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CollegeAdminError(Exception):
    """Base exception for all collegeadmin errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CollegeAdminError):
    """Raised when settings are missing or contradictory."""


class RecordStoreError(CollegeAdminError):
    """Raised when the record store rejects or cannot serve a request."""


class RecordNotFoundError(CollegeAdminError):
    """Raised when a record id does not exist in its table."""


class ValidationError(CollegeAdminError):
    """Raised for bad user input (form fields, CLI assignments, grades)."""
