"""Documents domain module - MT transmittal lifecycle and status management"""

from .document_status import (
    DocumentStatus,
    ALLOWED_TRANSITIONS,
    TRANSITION_RULES,
    TERMINAL_STATUSES,
    can_transition,
    get_allowed_transitions,
    allowed_roles_for,
    roles_may_transition,
    validate_transition,
    parse_status,
)

__all__ = [
    "DocumentStatus",
    "ALLOWED_TRANSITIONS",
    "TRANSITION_RULES",
    "TERMINAL_STATUSES",
    "can_transition",
    "get_allowed_transitions",
    "allowed_roles_for",
    "roles_may_transition",
    "validate_transition",
    "parse_status",
]
