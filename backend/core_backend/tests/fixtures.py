"""
Shared test fixtures for all backend tests.

Policy providers, payment methods and orders with known totals.
"""
import pytest
from decimal import Decimal

from orders.models import Order
from orders.services import OrderService
from payments.models import PaymentMethod
from settings.config import RestaurantPolicy, StaticSettingsProvider
from settings.models import RestaurantSettings


# ============================================================================
# POLICY FIXTURES
# ============================================================================

@pytest.fixture
def policy():
    """GST 5%, no approvals required."""
    return RestaurantPolicy(gst_percentage=Decimal('5.00'))


@pytest.fixture
def settings_provider(policy):
    return StaticSettingsProvider(policy)


@pytest.fixture
def discount_approval_provider():
    return StaticSettingsProvider(gst_percentage=Decimal('5.00'), discount_approval_required=True)


@pytest.fixture
def card_approval_provider():
    return StaticSettingsProvider(gst_percentage=Decimal('5.00'), card_payment_approval_required=True)


@pytest.fixture
def restaurant_settings(db):
    """The settings singleton as the database provider sees it."""
    return RestaurantSettings.load()


# ============================================================================
# PAYMENT METHOD FIXTURES
# ============================================================================
# Seeded by migration; get_or_create keeps these independent of migration state.

def _payment_method(name, display_name, requires_card_info=False, requires_card_present=False):
    method, _ = PaymentMethod.objects.get_or_create(
        name=name,
        defaults={
            'display_name': display_name,
            'requires_card_info': requires_card_info,
            'requires_card_present': requires_card_present,
        },
    )
    return method


@pytest.fixture
def cash_method(db):
    return _payment_method('CASH', 'Cash')


@pytest.fixture
def card_method(db):
    return _payment_method('CARD', 'Credit/Debit Card', requires_card_info=True, requires_card_present=True)


@pytest.fixture
def upi_method(db):
    return _payment_method('UPI', 'UPI')


@pytest.fixture
def complementary_method(db):
    return _payment_method('COMPLEMENTARY', 'Complementary')


# ============================================================================
# ORDER FIXTURES
# ============================================================================

@pytest.fixture
def order_factory(db, policy):
    """
    Create orders with the given items.

    Usage:
        order = order_factory([('Dal Makhani', '50.00', 1)])
    """

    def create(items=None, table_name='T1', policy_override=None):
        item_dicts = [
            {'menu_item_name': name, 'unit_price': Decimal(price), 'quantity': quantity}
            for name, price, quantity in (items or [])
        ]
        return OrderService.create_order(
            table_name=table_name,
            items=item_dicts,
            policy=policy_override or policy,
        )

    return create


@pytest.fixture
def order_100(order_factory):
    """Subtotal 100.00; at 5% GST: tax 5.00, total 105.00."""
    return order_factory([
        ('Paneer Tikka', '60.00', 1),
        ('Butter Naan', '20.00', 2),
    ])


@pytest.fixture
def order_50(order_factory):
    """Subtotal 50.00."""
    return order_factory([('Masala Dosa', '50.00', 1)])


def reload(order):
    """Fresh copy of an order from the database."""
    return Order.objects.get(pk=order.pk)
