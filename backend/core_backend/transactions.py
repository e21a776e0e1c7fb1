import functools
import logging

from django.db import DatabaseError, transaction

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


def atomic_operation(func):
    """
    Run a service operation in a single database transaction.

    A DatabaseError raised anywhere inside rolls back every write the operation
    made and is re-raised as a retryable PersistenceError. Domain errors
    (ValidationError, InvalidStateTransition, ...) propagate unchanged after the
    same rollback.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            with transaction.atomic():
                return func(*args, **kwargs)
        except DatabaseError as exc:
            logger.exception(f"{func.__qualname__} rolled back: {exc}")
            raise PersistenceError() from exc

    return wrapper
