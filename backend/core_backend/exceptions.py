"""
Error taxonomy shared by the order and payment services.

Every error carries a stable machine-readable `code` and the HTTP status the
REST layer answers with. Services raise these; views translate them.
"""


class ReconciliationError(Exception):
    """Base exception for order/payment reconciliation failures."""

    code = "reconciliation_error"
    status_code = 400
    default_message = "The operation could not be completed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self):
        return {"error": self.code, "detail": self.message}


class ValidationError(ReconciliationError):
    """Raised when the request is malformed or breaks a business rule. Nothing is written."""

    code = "validation_error"
    status_code = 400
    default_message = "Invalid request."


class NotFoundError(ReconciliationError):
    """Raised when an order, payment, payment method or split bill does not exist."""

    code = "not_found"
    status_code = 404

    def __init__(self, entity, identifier, message=None):
        self.entity = entity
        self.identifier = identifier
        if message is None:
            message = f"{entity} {identifier} not found."
        super().__init__(message)


class InvalidStateTransition(ReconciliationError):
    """Raised when an operation would violate the order or payment state machine."""

    code = "invalid_state_transition"
    status_code = 409

    def __init__(self, current_state=None, target_state=None, message=None):
        self.current_state = current_state
        self.target_state = target_state
        if message is None:
            message = f"Cannot move from '{current_state}' to '{target_state}'."
        super().__init__(message)


class PersistenceError(ReconciliationError):
    """
    Raised when the enclosing database transaction failed and was rolled back.

    Retryable: the caller repeats the whole operation, never individual fields.
    """

    code = "persistence_error"
    status_code = 503
    retryable = True
    default_message = "The operation could not be saved. No changes were made; please retry."


class ConsistencyWarning(ReconciliationError):
    """
    Non-fatal condition (e.g. the audit trail could not be written).

    Logged and reported on the operation result; never raised out of a service.
    """

    code = "consistency_warning"
    status_code = 200
