"""DocumentStatus state machine for the MT transmittal lifecycle.

State flow:
    DRAFT → SENT_TO_BRANCH → ACKNOWLEDGED → SENT_BACK_TO_DISTRICT → ALL_CHECKED → COMPLETE
    SENT_TO_BRANCH → SENT_BACK_TO_DISTRICT (branch returns without acknowledging)

Terminal State: COMPLETE. Deleting a draft removes the record; it is not a status.
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, List

from ...errors import InvalidTransition, ValidationError
from ..roles import RoleName


class DocumentStatus(str, Enum):
    """Document lifecycle status enum."""
    DRAFT = "draft"                                  # Private working copy of the uploader
    SENT_TO_BRANCH = "sent_to_branch"                # Delivered to the owning branch
    ACKNOWLEDGED = "acknowledged"                    # Branch confirmed receipt
    SENT_BACK_TO_DISTRICT = "sent_back_to_district"  # Branch returned it to the district
    ALL_CHECKED = "all_checked"                      # District verified the returned set
    COMPLETE = "complete"                            # Terminal


_UPLOAD_ROLES = frozenset({RoleName.UPLOADER.value, RoleName.ADMIN.value, RoleName.DISTRICT_MANAGER.value})
_BRANCH_ROLES = frozenset({RoleName.BRANCH_USER.value, RoleName.BRANCH_MANAGER.value, RoleName.ADMIN.value})
_DISTRICT_ROLES = frozenset({RoleName.ADMIN.value, RoleName.DISTRICT_MANAGER.value})
_COMPLETION_ROLES = frozenset({RoleName.ADMIN.value, RoleName.DISTRICT_MANAGER.value, RoleName.UPLOADER.value})

# Edge → roles allowed to take it
TRANSITION_RULES: Dict[DocumentStatus, Dict[DocumentStatus, FrozenSet[str]]] = {
    DocumentStatus.DRAFT: {
        DocumentStatus.SENT_TO_BRANCH: _UPLOAD_ROLES,
    },
    DocumentStatus.SENT_TO_BRANCH: {
        DocumentStatus.ACKNOWLEDGED: _BRANCH_ROLES,
        DocumentStatus.SENT_BACK_TO_DISTRICT: _BRANCH_ROLES,
    },
    DocumentStatus.ACKNOWLEDGED: {
        DocumentStatus.SENT_BACK_TO_DISTRICT: _BRANCH_ROLES,
    },
    DocumentStatus.SENT_BACK_TO_DISTRICT: {
        DocumentStatus.ALL_CHECKED: _DISTRICT_ROLES,
    },
    DocumentStatus.ALL_CHECKED: {
        DocumentStatus.COMPLETE: _COMPLETION_ROLES,
    },
    DocumentStatus.COMPLETE: {},  # Terminal state
}

# Same graph without the role gates
ALLOWED_TRANSITIONS: Dict[DocumentStatus, List[DocumentStatus]] = {
    status: list(edges) for status, edges in TRANSITION_RULES.items()
}

TERMINAL_STATUSES = frozenset(status for status, edges in TRANSITION_RULES.items() if not edges)


def can_transition(from_status: DocumentStatus, to_status: DocumentStatus) -> bool:
    """Validate if status transition is allowed

    Args:
        from_status: Current status
        to_status: Target status

    Returns:
        True if ``to_status`` is a direct successor of ``from_status``

    Example:
        >>> can_transition(DocumentStatus.DRAFT, DocumentStatus.SENT_TO_BRANCH)
        True
        >>> can_transition(DocumentStatus.SENT_TO_BRANCH, DocumentStatus.COMPLETE)
        False
    """
    return to_status in TRANSITION_RULES.get(from_status, {})


def get_allowed_transitions(from_status: DocumentStatus) -> List[DocumentStatus]:
    """Get list of allowed transitions from current status

    Example:
        >>> get_allowed_transitions(DocumentStatus.SENT_TO_BRANCH)
        [<DocumentStatus.ACKNOWLEDGED: 'acknowledged'>, <DocumentStatus.SENT_BACK_TO_DISTRICT: 'sent_back_to_district'>]
    """
    return ALLOWED_TRANSITIONS.get(from_status, [])


def allowed_roles_for(from_status: DocumentStatus, to_status: DocumentStatus) -> FrozenSet[str]:
    """Roles that may take the edge ``from_status → to_status`` (empty if no such edge)."""
    return TRANSITION_RULES.get(from_status, {}).get(to_status, frozenset())


def roles_may_transition(
    roles: Iterable[str],
    from_status: DocumentStatus,
    to_status: DocumentStatus,
) -> bool:
    """True if any of ``roles`` is allowed on the edge."""
    return not allowed_roles_for(from_status, to_status).isdisjoint(set(roles))


def validate_transition(from_status: DocumentStatus, to_status: DocumentStatus) -> None:
    """Validate that a state transition is allowed.

    Raises:
        InvalidTransition: If ``to_status`` is not a direct successor
    """
    if not can_transition(from_status, to_status):
        raise InvalidTransition(
            from_status.value,
            to_status.value,
            [s.value for s in get_allowed_transitions(from_status)],
        )


def parse_status(value) -> DocumentStatus:
    """Parse a raw status value.

    Raises:
        ValidationError: If the value is not a known status
    """
    try:
        return DocumentStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in DocumentStatus)
        raise ValidationError(
            f"Unknown document status: {value!r}",
            field_errors={"status": [f"Must be one of: {allowed}"]},
        )
