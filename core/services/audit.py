"""
Append-only audit trail for state changes (bookings, cancellations,
doctor removal, prescriptions, logins).
"""
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model

from core.models import AuditEvent

User = get_user_model()


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id=None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    # system actions (seeding, anonymous failures) are recorded without an actor
    actor = user if isinstance(user, User) and user.pk else None
    return AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type,
        object_id=None if object_id is None else str(object_id),
        detail=detail or {},
    )
