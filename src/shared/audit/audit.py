"""Security audit logging for access-control decisions."""

import logging
from collections.abc import Iterable
from enum import StrEnum

audit_logger = logging.getLogger("audit")


class AuditOutcome(StrEnum):
    """Outcome of an access-control decision."""

    ALLOWED = "allowed"
    DENIED = "denied"


def audit_access(
    event: str,
    outcome: AuditOutcome,
    user_id: int | None = None,
    role: str | None = None,
    required_roles: Iterable[str] = (),
) -> None:
    """Record one access-control decision.

    Args:
        event: What was attempted (route path or channel event name)
        outcome: Whether access was granted
        user_id: Authenticated identity, if any
        role: Role of the identity, if any
        required_roles: Roles the operation requires

    """
    required = ",".join(sorted(required_roles)) or "-"
    level = logging.INFO if outcome == AuditOutcome.ALLOWED else logging.WARNING
    audit_logger.log(
        level,
        f"event={event} outcome={outcome.value} user_id={user_id} role={role} required_roles={required}",
    )
