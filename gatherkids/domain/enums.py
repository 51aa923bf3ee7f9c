"""
gatherkids.domain.enums: Enumerations used by the canonical models.

Keep this module import-clean (stdlib only).
"""

from enum import Enum


class EnrollmentType(str, Enum):
    ENROLLED           = "enrolled"
    EXPRESSED_INTEREST = "expressed_interest"


class DataProfile(str, Enum):
    BASIC        = "Basic"
    SAFETY_AWARE = "SafetyAware"


class RegistrationStatus(str, Enum):
    ACTIVE   = "active"
    PENDING  = "pending"
    INACTIVE = "inactive"


class MinistryEnrollmentStatus(str, Enum):
    ENROLLED           = "enrolled"
    WITHDRAWN          = "withdrawn"
    EXPRESSED_INTEREST = "expressed_interest"


class UserRole(str, Enum):
    ADMIN           = "ADMIN"
    MINISTRY_LEADER = "MINISTRY_LEADER"
    GUARDIAN        = "GUARDIAN"
    VOLUNTEER       = "VOLUNTEER"


class IncidentSeverity(str, Enum):
    LOW    = "low"
    MEDIUM = "medium"
    HIGH   = "high"


class PickupMethod(str, Enum):
    NAME_LAST4 = "name_last4"
    PIN        = "PIN"
    OTHER      = "other"


class ScriptureStatus(str, Enum):
    ASSIGNED  = "assigned"
    COMPLETED = "completed"


class EssayStatus(str, Enum):
    ASSIGNED  = "assigned"
    SUBMITTED = "submitted"


class ChangeType(str, Enum):
    """Row-level change kinds delivered to table subscribers."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class LeaderRoleType(str, Enum):
    PRIMARY   = "PRIMARY"
    VOLUNTEER = "VOLUNTEER"
