"""
Orders API tests: /api/orders/ and its actions.
"""
import pytest
from decimal import Decimal

from core_backend.tests.fixtures import reload
from orders.models import Order, OrderItem
from payments.services import PaymentService


def order_url(order, suffix=''):
    return f'/api/orders/{order.pk}/{suffix}'


@pytest.mark.django_db
class TestOrdersAuth:
    def test_requires_authentication(self, api_client):
        response = api_client.get('/api/orders/')
        assert response.status_code == 403


@pytest.mark.django_db
class TestOrdersCRUD:
    def test_create_with_items(self, authenticated_client):
        response = authenticated_client.post(
            '/api/orders/',
            {
                'table_name': 'T4',
                'items': [
                    {'menu_item_name': 'Paneer Tikka', 'unit_price': '60.00', 'quantity': 1},
                    {'menu_item_name': 'Butter Naan', 'unit_price': '20.00', 'quantity': 2},
                ],
            },
            format='json',
        )

        assert response.status_code == 201
        assert response.data['order_number'].startswith('ORD-')
        assert response.data['table_name'] == 'T4'
        assert response.data['created_by'] == 'cashier'
        assert Decimal(response.data['subtotal']) == Decimal('100.00')
        assert Decimal(response.data['tax_amount']) == Decimal('5.00')
        assert Decimal(response.data['total_amount']) == Decimal('105.00')
        assert len(response.data['items']) == 2

    def test_create_rejects_bad_item(self, authenticated_client):
        response = authenticated_client.post(
            '/api/orders/',
            {'items': [{'menu_item_name': 'Lassi', 'unit_price': '-1.00'}]},
            format='json',
        )
        assert response.status_code == 400
        assert not Order.objects.exists()

    def test_list_uses_compact_fieldset(self, authenticated_client, order_100):
        response = authenticated_client.get('/api/orders/')

        assert response.status_code == 200
        row = response.data['results'][0]
        assert row['order_number'] == order_100.order_number
        assert 'items' not in row
        assert 'total_amount' in row

    def test_detail_with_requested_fields(self, authenticated_client, order_100):
        response = authenticated_client.get(order_url(order_100), {'fields': 'order_number,total_amount'})
        assert set(response.data) == {'id', 'order_number', 'total_amount'}

    def test_filter_open_only(self, authenticated_client, order_100, order_50, cash_method):
        PaymentService.process_payment(order_50.pk, cash_method.pk, amount='52.50')

        response = authenticated_client.get('/api/orders/', {'open_only': 'true'})

        numbers = [row['order_number'] for row in response.data['results']]
        assert numbers == [order_100.order_number]

    def test_money_fields_cannot_be_written(self, authenticated_client, order_100):
        response = authenticated_client.patch(order_url(order_100), {'total_amount': '1.00'}, format='json')
        assert response.status_code == 405
        assert reload(order_100).total_amount == Decimal('105.00')


@pytest.mark.django_db
class TestOrderActions:
    def test_add_item(self, authenticated_client, order_50):
        response = authenticated_client.post(
            order_url(order_50, 'items/'),
            {'menu_item_name': 'Filter Coffee', 'unit_price': '25.00', 'quantity': 2},
            format='json',
        )

        assert response.status_code == 201
        assert Decimal(response.data['subtotal']) == Decimal('100.00')
        assert Decimal(response.data['total_amount']) == Decimal('105.00')

    def test_update_item_quantity(self, authenticated_client, order_50):
        item = order_50.items.get()
        response = authenticated_client.post(
            order_url(order_50, 'update-item/'), {'item_id': str(item.pk), 'quantity': 3}, format='json'
        )

        assert response.status_code == 200
        assert Decimal(response.data['subtotal']) == Decimal('150.00')

    def test_item_from_another_order_is_not_found(self, authenticated_client, order_50, order_100):
        foreign_item = order_100.items.first()
        response = authenticated_client.post(
            order_url(order_50, 'cancel-item/'), {'item_id': str(foreign_item.pk)}, format='json'
        )

        assert response.status_code == 404
        assert response.data['error'] == 'not_found'
        assert OrderItem.objects.get(pk=foreign_item.pk).status == OrderItem.ItemStatus.NEW

    def test_fire_moves_order_in_progress(self, authenticated_client, order_100):
        response = authenticated_client.post(order_url(order_100, 'fire/'), {}, format='json')

        assert response.status_code == 200
        assert response.data['status'] == Order.OrderStatus.IN_PROGRESS
        assert all(item['status'] == OrderItem.ItemStatus.FIRED for item in response.data['items'])

    def test_status_cannot_jump_to_completed(self, authenticated_client, order_100):
        response = authenticated_client.post(
            order_url(order_100, 'status/'), {'status': Order.OrderStatus.COMPLETED}, format='json'
        )

        assert response.status_code == 409
        assert response.data['error'] == 'invalid_state_transition'
        assert reload(order_100).status == Order.OrderStatus.OPEN

    def test_cancel(self, authenticated_client, order_100):
        response = authenticated_client.post(
            order_url(order_100, 'cancel/'), {'reason': 'Guest left'}, format='json'
        )

        assert response.status_code == 200
        assert response.data['status'] == Order.OrderStatus.CANCELLED
        assert response.data['cancellation_reason'] == 'Guest left'

    def test_cancel_completed_order_conflicts(self, authenticated_client, order_50, cash_method):
        PaymentService.process_payment(order_50.pk, cash_method.pk, amount='52.50')

        response = authenticated_client.post(order_url(order_50, 'cancel/'), {}, format='json')

        assert response.status_code == 409
        assert response.data == {
            'error': 'invalid_state_transition',
            'detail': 'Cannot cancel order that has already been completed.',
        }
        assert reload(order_50).status == Order.OrderStatus.COMPLETED

    def test_unknown_order(self, authenticated_client):
        response = authenticated_client.get('/api/orders/00000000-0000-0000-0000-000000000000/payment-summary/')
        assert response.status_code == 404


@pytest.mark.django_db
class TestOrderProjections:
    def test_payment_summary(self, authenticated_client, order_100, cash_method):
        PaymentService.process_payment(order_100.pk, cash_method.pk, amount='40.00')

        response = authenticated_client.get(order_url(order_100, 'payment-summary/'))

        assert response.status_code == 200
        assert response.data['approved_sum'] == Decimal('40.00')
        assert response.data['balance_due'] == Decimal('65.00')
        assert response.data['total_amount'] == Decimal('105.00')

    def test_available_split_items(self, authenticated_client, order_100):
        response = authenticated_client.get(order_url(order_100, 'split-bills/available/'))

        assert response.status_code == 200
        by_name = {row['menu_item_name']: row for row in response.data}
        assert by_name['Butter Naan']['available_quantity'] == 2
        assert by_name['Paneer Tikka']['allocated_quantity'] == 0
