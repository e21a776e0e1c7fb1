from django.dispatch import Signal

# Sent after the transaction that completed an order commits.
# Arguments: order, completed_at
order_completed = Signal()

# Sent after the transaction that cancelled an order commits.
# Arguments: order, reason
order_cancelled = Signal()
