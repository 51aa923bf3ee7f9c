"""
Error taxonomy for the data-access core.

Adapters raise these so callers can tell "no such id" apart from bad input
and from an unreachable backend without parsing messages.  The factory is the
one component that never raises; ``ConfigurationError`` only escapes from the
maintenance-adapter path.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional


class DataAccessError(Exception):
    """Base exception for every error raised by this package."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class NotFoundError(DataAccessError):
    """The addressed id does not exist in the entity's collection."""

    def __init__(self, entity: str, record_id: str):
        super().__init__(
            f"{entity} not found: {record_id}",
            {"entity": entity, "record_id": record_id},
        )
        self.entity = entity
        self.record_id = record_id


class ValidationError(DataAccessError):
    """Malformed input to a create/update call."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, {"errors": errors} if errors else None)
        self.errors = errors or []


class DuplicateRecordError(ValidationError):
    """A create call supplied an id that is already taken."""

    def __init__(self, entity: str, record_id: str):
        super().__init__(f"{entity} already exists: {record_id}")
        self.details = {"entity": entity, "record_id": record_id}
        self.entity = entity
        self.record_id = record_id


class BackendError(DataAccessError):
    """Any backend failure that is not one of the more specific classes."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status: Optional[int] = None,
    ):
        details: Dict[str, Any] = {}
        if code:
            details["code"] = code
        if status is not None:
            details["status"] = status
        super().__init__(message, details)
        self.code = code
        self.status = status


class BackendUnavailable(BackendError):
    """The remote backend could not be reached (network, timeout, 5xx gateway)."""


class ConfigurationError(DataAccessError):
    """Required settings are missing."""

    def __init__(self, missing: Iterable[str]):
        names = list(missing)
        super().__init__(
            "Missing configuration: " + ", ".join(names),
            {"missing": names},
        )
        self.missing = names
