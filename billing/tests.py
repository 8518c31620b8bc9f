from decimal import Decimal
from unittest import mock

from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from menu.models import Category, MenuItem, RestaurantSettings
from orders.models import Order
from orders.selectors import session_orders_queryset
from orders.services import OrderLifecycleService
from tableside import exceptions
from tables.models import Table
from tables.services import TableLifecycleService
from .models import Bill
from .services import BillingService, compute_bill, get_gst_rate


class BillingFixtureMixin:
    def create_menu(self):
        category = Category.objects.create(name='Main Course')
        self.curry = MenuItem.objects.create(name='Paneer Curry', price=Decimal('120.00'), category=category)
        self.naan = MenuItem.objects.create(name='Garlic Naan', price=Decimal('80.00'), category=category)

    def seat_and_order(self, table, guest='A', phone='555-1111'):
        TableLifecycleService.occupy(table.id, guest, phone)
        return OrderLifecycleService.submit(table.id, [
            {'menu_item_id': self.curry.id, 'quantity': 2},
            {'menu_item_id': self.naan.id, 'quantity': 1},
        ])


class ComputeBillTests(BillingFixtureMixin, TestCase):
    """Pricing a seating from its order snapshots"""

    def setUp(self):
        self.create_menu()
        self.table = Table.objects.create(number=5, capacity=4)

    def test_subtotal_tax_and_total(self):
        self.seat_and_order(self.table)
        self.table.refresh_from_db()
        orders = list(session_orders_queryset(self.table))

        draft = compute_bill(self.table, orders, Decimal('18'))

        self.assertEqual(draft.subtotal, Decimal('320.00'))
        self.assertEqual(draft.tax, Decimal('57.60'))
        self.assertEqual(draft.total, Decimal('377.60'))
        self.assertEqual(draft.order_ids, [orders[0].id])
        self.assertEqual(len(draft.items), 2)

    def test_same_input_same_bill(self):
        self.seat_and_order(self.table)
        self.table.refresh_from_db()
        orders = list(session_orders_queryset(self.table))

        self.assertEqual(
            compute_bill(self.table, orders, Decimal('5')),
            compute_bill(self.table, list(reversed(orders)), Decimal('5'))
        )

    def test_tax_rounds_half_up(self):
        category = Category.objects.create(name='Beverages')
        tea = MenuItem.objects.create(name='Chai', price=Decimal('0.10'), category=category)
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        OrderLifecycleService.submit(self.table.id, [{'menu_item_id': tea.id, 'quantity': 1}])
        self.table.refresh_from_db()

        draft = compute_bill(self.table, list(session_orders_queryset(self.table)), Decimal('5'))

        # 0.10 x 5% = 0.005
        self.assertEqual(draft.tax, Decimal('0.01'))

    def test_later_menu_changes_ignored(self):
        self.seat_and_order(self.table)
        self.curry.price = Decimal('500.00')
        self.curry.save()
        self.table.refresh_from_db()

        draft = compute_bill(self.table, list(session_orders_queryset(self.table)), Decimal('0'))
        self.assertEqual(draft.subtotal, Decimal('320.00'))

    def test_gst_rate_from_settings(self):
        self.assertEqual(get_gst_rate(), Decimal('5'))
        RestaurantSettings(gst_rate=Decimal('18.00')).save()
        self.assertEqual(get_gst_rate(), Decimal('18.00'))


class SettleTests(BillingFixtureMixin, TestCase):
    """Settling a table session"""

    def setUp(self):
        cache.clear()
        self.create_menu()
        self.table = Table.objects.create(number=5, capacity=4)
        RestaurantSettings(gst_rate=Decimal('18')).save()

    def test_settle_bills_releases_and_serves(self):
        order = self.seat_and_order(self.table)
        session_id = order.session_id

        bill = BillingService.settle(self.table.id, 'card')

        self.assertEqual(bill.status, 'paid')
        self.assertEqual(bill.payment_method, 'card')
        self.assertEqual(bill.subtotal, Decimal('320.00'))
        self.assertEqual(bill.tax, Decimal('57.60'))
        self.assertEqual(bill.total, Decimal('377.60'))
        self.assertEqual(bill.session_id, session_id)
        self.assertEqual(list(bill.orders.values_list('id', flat=True)), [order.id])
        self.assertIsNotNone(bill.paid_at)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_AVAILABLE)
        self.assertIsNone(self.table.session_id)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_SERVED)
        self.assertIsNotNone(order.served_at)

    def test_settle_without_orders(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')

        with self.assertRaises(exceptions.NothingToBillError):
            BillingService.settle(self.table.id, 'cash')

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_OCCUPIED)
        self.assertFalse(Bill.objects.exists())

    def test_settle_free_table(self):
        with self.assertRaises(exceptions.InconsistentStateError):
            BillingService.settle(self.table.id, 'cash')

    def test_failure_rolls_everything_back(self):
        order = self.seat_and_order(self.table)
        session_id = order.session_id

        with mock.patch.object(OrderLifecycleService, 'mark_served', side_effect=DatabaseError('disk full')):
            with self.assertRaises(exceptions.TransportError):
                BillingService.settle(self.table.id, 'cash')

        self.assertFalse(Bill.objects.exists())
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_OCCUPIED)
        self.assertEqual(self.table.session_id, session_id)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PENDING)
        self.assertIsNone(cache.get(f'settle_lock:{self.table.id}'))

    def test_settle_in_flight_rejected(self):
        self.seat_and_order(self.table)
        cache.add(f'settle_lock:{self.table.id}', 'someone-else')

        with self.assertRaises(exceptions.OperationInFlightError):
            BillingService.settle(self.table.id, 'cash')

        self.assertFalse(Bill.objects.exists())
        self.assertEqual(cache.get(f'settle_lock:{self.table.id}'), 'someone-else')

    def test_lock_released_after_settle(self):
        self.seat_and_order(self.table)
        BillingService.settle(self.table.id, 'cash')
        self.assertIsNone(cache.get(f'settle_lock:{self.table.id}'))

    def test_lock_taken_over_after_expiry_is_kept(self):
        self.seat_and_order(self.table)
        lock_key = f'settle_lock:{self.table.id}'

        def expire_and_take_over(orders, now=None):
            cache.set(lock_key, 'rec-2:next')
            return []

        with mock.patch.object(OrderLifecycleService, 'mark_served', side_effect=expire_and_take_over):
            BillingService.settle(self.table.id, 'cash')

        self.assertEqual(cache.get(lock_key), 'rec-2:next')

    def test_stale_version_rejected(self):
        self.seat_and_order(self.table)

        with self.assertRaises(exceptions.ConcurrencyConflictError):
            BillingService.settle(self.table.id, 'cash', expected_version=0)
        self.assertFalse(Bill.objects.exists())

    def test_unknown_payment_method(self):
        self.seat_and_order(self.table)
        with self.assertRaises(exceptions.ValidationError):
            BillingService.settle(self.table.id, 'crypto')

    def test_next_guest_starts_clean(self):
        first = self.seat_and_order(self.table)
        BillingService.settle(self.table.id, 'cash')

        table = TableLifecycleService.occupy(self.table.id, 'B', '555-2222')

        self.assertNotEqual(table.session_id, first.session_id)
        self.assertEqual(list(session_orders_queryset(table)), [])
        with self.assertRaises(exceptions.NothingToBillError):
            BillingService.preview(self.table.id)

    def test_preview_writes_nothing(self):
        self.seat_and_order(self.table)
        draft = BillingService.preview(self.table.id)

        self.assertEqual(draft.total, Decimal('377.60'))
        self.assertFalse(Bill.objects.exists())
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_OCCUPIED)


class BillingAPITests(BillingFixtureMixin, APITestCase):
    """Settle and bill endpoints"""

    def setUp(self):
        cache.clear()
        self.create_menu()
        self.table = Table.objects.create(number=5, capacity=4)
        RestaurantSettings(gst_rate=Decimal('18')).save()
        self.client.defaults['HTTP_X_API_KEY'] = 'demo'
        self.client.defaults['HTTP_X_STAFF_UID'] = 'rec-1'
        self.client.defaults['HTTP_X_STAFF_ROLE'] = 'reception'

    def test_bill_preview(self):
        self.seat_and_order(self.table)
        response = self.client.get(reverse('table_bill', kwargs={'table_id': self.table.id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['subtotal']), Decimal('320.00'))
        self.assertEqual(Decimal(response.data['tax']), Decimal('57.60'))
        self.assertEqual(Decimal(response.data['total']), Decimal('377.60'))

    def test_settle_table(self):
        order = self.seat_and_order(self.table)
        response = self.client.post(
            reverse('settle_table', kwargs={'table_id': self.table.id}),
            {'payment_method': 'cash'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'paid')
        self.assertEqual(Decimal(response.data['total']), Decimal('377.60'))
        self.assertEqual(response.data['orders'], [order.id])

        response = self.client.get(reverse('bill_detail', kwargs={'bill_id': response.data['id']}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_settle_nothing_to_bill(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        response = self.client.post(
            reverse('settle_table', kwargs={'table_id': self.table.id}),
            {'payment_method': 'cash'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'nothing_to_bill')

    def test_settle_in_flight(self):
        self.seat_and_order(self.table)
        cache.add(f'settle_lock:{self.table.id}', 'rec-2')
        response = self.client.post(
            reverse('settle_table', kwargs={'table_id': self.table.id}),
            {'payment_method': 'cash'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'operation_in_flight')

    def test_list_bills_for_session(self):
        order = self.seat_and_order(self.table)
        BillingService.settle(self.table.id, 'cash')

        response = self.client.get(reverse('bill_list'), {'session_id': str(order.session_id)})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['table_number'], 5)

    def test_list_bills_rejects_malformed_filters(self):
        response = self.client.get(reverse('bill_list'), {'session_id': 'not-a-uuid'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('session_id', response.data)

        response = self.client.get(reverse('bill_list'), {'table_number': 'five'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PurgeHistoryTests(BillingFixtureMixin, TestCase):
    """purge_history management command"""

    def setUp(self):
        cache.clear()
        self.create_menu()
        self.table = Table.objects.create(number=5, capacity=4)
        self.other = Table.objects.create(number=6, capacity=2)

    def test_purges_closed_sessions_only(self):
        from io import StringIO
        from django.core.management import call_command

        self.seat_and_order(self.table)
        BillingService.settle(self.table.id, 'cash')
        TableLifecycleService.occupy(self.other.id, 'B', '555-2222')
        open_order = OrderLifecycleService.submit_served(
            self.other.id, [{'menu_item_id': self.naan.id, 'quantity': 1}]
        )

        call_command('purge_history', '--orders', '--bills', stdout=StringIO())

        self.assertFalse(Bill.objects.exists())
        self.assertEqual(list(Order.objects.values_list('id', flat=True)), [open_order.id])

    def test_requires_a_target(self):
        from django.core.management import call_command
        from django.core.management.base import CommandError

        with self.assertRaises(CommandError):
            call_command('purge_history')
