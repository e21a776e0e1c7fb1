"""
Error taxonomy and transaction helper tests.
"""
import pytest
from django.db import DatabaseError

from core_backend.exceptions import (
    ConsistencyWarning,
    InvalidStateTransition,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from core_backend.transactions import atomic_operation
from orders.models import Order


class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        "error, code, status_code",
        [
            (ValidationError("bad"), "validation_error", 400),
            (NotFoundError("Order", "x"), "not_found", 404),
            (InvalidStateTransition("Completed", "Cancelled"), "invalid_state_transition", 409),
            (PersistenceError(), "persistence_error", 503),
            (ConsistencyWarning("audit"), "consistency_warning", 200),
        ],
    )
    def test_codes_and_statuses(self, error, code, status_code):
        assert error.code == code
        assert error.status_code == status_code
        assert error.as_dict()["error"] == code

    def test_default_messages(self):
        assert NotFoundError("Payment", "abc").message == "Payment abc not found."
        assert InvalidStateTransition("Pending", "Voided").message == "Cannot move from 'Pending' to 'Voided'."


@pytest.mark.django_db
class TestAtomicOperation:
    def test_database_error_becomes_persistence_error_and_rolls_back(self):
        @atomic_operation
        def create_then_fail():
            Order.objects.create(table_name="T9")
            raise DatabaseError("disk full")

        with pytest.raises(PersistenceError) as exc_info:
            create_then_fail()

        assert isinstance(exc_info.value.__cause__, DatabaseError)
        assert not Order.objects.filter(table_name="T9").exists()

    def test_domain_errors_pass_through_after_rollback(self):
        @atomic_operation
        def create_then_reject():
            Order.objects.create(table_name="T8")
            raise ValidationError("nope")

        with pytest.raises(ValidationError):
            create_then_reject()
        assert not Order.objects.filter(table_name="T8").exists()

    def test_return_value_and_arguments(self):
        @atomic_operation
        def add(a, b=0):
            return a + b

        assert add(40, b=2) == 42
        assert add.__name__ == "add"
