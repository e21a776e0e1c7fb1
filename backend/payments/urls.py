from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import (
    PaymentMethodViewSet,
    PaymentProcessView,
    PaymentViewSet,
    SplitBillViewSet,
    SplitPaymentProcessView,
)

app_name = "payments"

router = SimpleRouter()
router.register(r"methods", PaymentMethodViewSet, basename="payment-method")
router.register(r"split-bills", SplitBillViewSet, basename="split-bill")

# Ledger routes sit at the root of /api/payments/ and would shadow the prefixes
# above, so they are registered on their own router and included last.
payment_router = SimpleRouter()
payment_router.register(r"", PaymentViewSet, basename="payment")

urlpatterns = [
    path("process/", PaymentProcessView.as_view(), name="payment-process"),
    path("split/", SplitPaymentProcessView.as_view(), name="split-payment-process"),
    path("", include(router.urls)),
    path("", include(payment_router.urls)),
]
