from decimal import Decimal
from typing import Optional
import logging

from django.db import DatabaseError, transaction

from core_backend.exceptions import ConsistencyWarning
from .models import PaymentAuditLog

logger = logging.getLogger(__name__)


def _json_safe(details):
    return {
        key: str(value) if isinstance(value, Decimal) else value
        for key, value in (details or {}).items()
    }


class PaymentAuditService:
    """
    Writes PaymentAuditLog rows inside a savepoint.

    A failed write is a ConsistencyWarning: it is logged and its message is
    returned so the caller can surface it, but the surrounding financial
    transaction carries on and commits.
    """

    @staticmethod
    def record(
        action,
        order=None,
        payment=None,
        from_status="",
        to_status="",
        amount=None,
        actor_name="",
        reason="",
        details=None,
    ) -> Optional[str]:
        try:
            with transaction.atomic():
                PaymentAuditLog.objects.create(
                    action=action,
                    order=order,
                    payment=payment,
                    from_status=str(from_status or ""),
                    to_status=str(to_status or ""),
                    amount=amount,
                    actor_name=actor_name or "",
                    reason=(reason or "")[:255],
                    details=_json_safe(details),
                )
        except DatabaseError as exc:
            warning = ConsistencyWarning(
                f"Audit log entry '{action}' could not be written: {exc}"
            )
            logger.warning(warning.message)
            return warning.message
        return None
