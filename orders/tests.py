from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status

from menu.models import Category, MenuItem
from tableside import exceptions
from tableside.authentication import StaffIdentity
from tables.models import Table
from tables.services import TableLifecycleService
from . import selectors
from .models import Order
from .services import OrderLifecycleService


class MenuFixtureMixin:
    def create_menu(self):
        category = Category.objects.create(name='Main Course')
        self.curry = MenuItem.objects.create(name='Paneer Curry', price=Decimal('120.00'), category=category)
        self.naan = MenuItem.objects.create(name='Garlic Naan', price=Decimal('80.00'), category=category)
        self.sold_out = MenuItem.objects.create(
            name='Biryani', price=Decimal('300.00'), category=category, is_available=False
        )

    def lines(self):
        return [
            {'menu_item_id': self.curry.id, 'quantity': 2},
            {'menu_item_id': self.naan.id, 'quantity': 1},
        ]


class SubmitOrderTests(MenuFixtureMixin, TestCase):
    """Creating orders against the current session"""

    def setUp(self):
        self.create_menu()
        self.table = Table.objects.create(number=5, capacity=4)
        self.waiter = StaffIdentity(uid='waiter-1', role='waiter')

    def test_submit_snapshots_items_and_total(self):
        table = TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        order = OrderLifecycleService.submit(self.table.id, self.lines(), acting_user=self.waiter)

        self.assertEqual(order.status, Order.STATUS_PENDING)
        self.assertEqual(order.total_amount, Decimal('320.00'))
        self.assertEqual(order.session_id, table.session_id)
        self.assertEqual(order.table_number, 5)
        self.assertEqual(order.guest_name, 'A')
        self.assertEqual(order.waiter_id, 'waiter-1')
        self.assertEqual(
            [(line['name'], line['price'], line['quantity']) for line in order.items],
            [('Paneer Curry', '120.00', 2), ('Garlic Naan', '80.00', 1)]
        )

        table.refresh_from_db()
        self.assertEqual(table.status, Table.STATUS_OCCUPIED)

    def test_menu_price_change_does_not_touch_order(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        order = OrderLifecycleService.submit(self.table.id, self.lines())

        self.curry.price = Decimal('999.00')
        self.curry.save()

        order.refresh_from_db()
        self.assertEqual(order.items[0]['price'], '120.00')
        self.assertEqual(order.total_amount, Decimal('320.00'))

    def test_duplicate_lines_are_merged(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        order = OrderLifecycleService.submit(self.table.id, [
            {'menu_item_id': self.curry.id, 'quantity': 1, 'notes': 'mild'},
            {'menu_item_id': self.curry.id, 'quantity': 2},
        ])

        self.assertEqual(len(order.items), 1)
        self.assertEqual(order.items[0]['quantity'], 3)
        self.assertEqual(order.items[0]['notes'], 'mild')
        self.assertEqual(order.total_amount, Decimal('360.00'))

    def test_empty_order_rejected(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        with self.assertRaises(exceptions.EmptyOrderError):
            OrderLifecycleService.submit(self.table.id, [])
        self.assertFalse(Order.objects.exists())

    def test_unavailable_item_rejected(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        with self.assertRaises(exceptions.ValidationError):
            OrderLifecycleService.submit(self.table.id, [{'menu_item_id': self.sold_out.id, 'quantity': 1}])

    def test_free_table_rejects_orders(self):
        with self.assertRaises(exceptions.InvalidSessionError):
            OrderLifecycleService.submit(self.table.id, self.lines())
        self.assertFalse(Order.objects.exists())

    def test_order_for_previous_seating_rejected(self):
        first = TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        TableLifecycleService.release(self.table.id)
        TableLifecycleService.occupy(self.table.id, 'B', '555-2222')

        with self.assertRaises(exceptions.InvalidSessionError):
            OrderLifecycleService.submit(self.table.id, self.lines(), session_id=first.session_id)

    def test_direct_entry_is_served(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        order = OrderLifecycleService.submit_served(self.table.id, self.lines())

        self.assertEqual(order.status, Order.STATUS_SERVED)
        self.assertIsNotNone(order.served_at)


class AdvanceOrderTests(MenuFixtureMixin, TestCase):
    """Kitchen status transitions"""

    def setUp(self):
        self.create_menu()
        self.table = Table.objects.create(number=5, capacity=4)
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        self.order = OrderLifecycleService.submit(self.table.id, self.lines())

    def test_forward_path(self):
        for next_status in (Order.STATUS_PREPARING, Order.STATUS_READY, Order.STATUS_SERVED):
            order = OrderLifecycleService.advance(self.order.id, next_status)
            self.assertEqual(order.status, next_status)
        self.assertIsNotNone(order.served_at)

    def test_skipping_a_step_rejected(self):
        with self.assertRaises(exceptions.InvalidTransitionError):
            OrderLifecycleService.advance(self.order.id, Order.STATUS_READY)

    def test_moving_backwards_rejected(self):
        OrderLifecycleService.advance(self.order.id, Order.STATUS_PREPARING)
        with self.assertRaises(exceptions.InvalidTransitionError):
            OrderLifecycleService.advance(self.order.id, Order.STATUS_PENDING)

    def test_repeating_current_status_is_noop(self):
        first = OrderLifecycleService.advance(self.order.id, Order.STATUS_PREPARING)
        again = OrderLifecycleService.advance(self.order.id, Order.STATUS_PREPARING)

        self.assertEqual(again.status, Order.STATUS_PREPARING)
        self.assertEqual(again.updated_at, first.updated_at)

    def test_unknown_status_rejected(self):
        with self.assertRaises(exceptions.ValidationError):
            OrderLifecycleService.advance(self.order.id, 'cancelled')


class SelectorTests(MenuFixtureMixin, TestCase):
    """Read-side views over orders"""

    def setUp(self):
        self.create_menu()
        self.table = Table.objects.create(number=5, capacity=4)
        self.other = Table.objects.create(number=6, capacity=2)

    def test_orders_stay_with_their_seating(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        old = OrderLifecycleService.submit(self.table.id, self.lines())
        TableLifecycleService.release(self.table.id)
        table = TableLifecycleService.occupy(self.table.id, 'B', '555-2222')

        self.assertNotEqual(table.session_id, old.session_id)
        orders = list(Order.objects.all())
        self.assertEqual(selectors.by_session_and_table(orders, table.id, table.session_id), [])
        self.assertEqual(list(selectors.session_orders_queryset(table)), [])

    def test_no_session_means_no_orders(self):
        self.assertEqual(selectors.by_session_and_table([], self.table.id, None), [])
        self.assertEqual(list(selectors.session_orders_queryset(self.table)), [])

    def test_ready_for_pickup_only_for_current_session(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        order = OrderLifecycleService.submit(self.table.id, self.lines())
        OrderLifecycleService.advance(order.id, Order.STATUS_PREPARING)
        OrderLifecycleService.advance(order.id, Order.STATUS_READY)

        tables = list(Table.objects.all())
        orders = list(Order.objects.all())
        self.assertEqual([o.id for o in selectors.ready_for_pickup(orders, tables)], [order.id])
        self.assertEqual([o.id for o in selectors.ready_for_pickup_queryset()], [order.id])

        TableLifecycleService.release(self.table.id)
        TableLifecycleService.occupy(self.table.id, 'B', '555-2222')

        tables = list(Table.objects.all())
        self.assertEqual(selectors.ready_for_pickup(orders, tables), [])
        self.assertFalse(selectors.ready_for_pickup_queryset().exists())

    def test_by_status_oldest_first(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        TableLifecycleService.occupy(self.other.id, 'C', '555-3333')
        first = OrderLifecycleService.submit(self.table.id, self.lines())
        second = OrderLifecycleService.submit(self.other.id, self.lines())
        Order.objects.filter(id=first.id).update(created_at=timezone.now() + timedelta(minutes=5))

        pending = selectors.by_status(list(Order.objects.all()), Order.STATUS_PENDING)
        self.assertEqual([o.id for o in pending], [second.id, first.id])

    def test_created_on(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        today = OrderLifecycleService.submit(self.table.id, self.lines())
        old = OrderLifecycleService.submit(self.table.id, self.lines())
        Order.objects.filter(id=old.id).update(created_at=timezone.now() - timedelta(days=2))

        orders = selectors.created_on(list(Order.objects.all()))
        self.assertEqual([o.id for o in orders], [today.id])

    def test_session_total(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        OrderLifecycleService.submit(self.table.id, self.lines())
        OrderLifecycleService.submit(self.table.id, [{'menu_item_id': self.naan.id, 'quantity': 2}])
        self.assertEqual(selectors.session_total(Order.objects.all()), Decimal('480.00'))


class OrderAPITests(MenuFixtureMixin, APITestCase):
    """Order endpoints"""

    def setUp(self):
        self.create_menu()
        self.table = Table.objects.create(number=5, capacity=4)
        self.client.defaults['HTTP_X_API_KEY'] = 'demo'
        self.client.defaults['HTTP_X_STAFF_UID'] = 'waiter-1'
        self.client.defaults['HTTP_X_STAFF_ROLE'] = 'waiter'

    def test_submit_order(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        response = self.client.post(
            reverse('order_list'),
            {'table_id': self.table.id, 'items': self.lines()},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('320.00'))
        self.assertEqual(response.data['waiter_id'], 'waiter-1')

    def test_submit_to_free_table(self):
        response = self.client.post(
            reverse('order_list'),
            {'table_id': self.table.id, 'items': self.lines()},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_session')

    def test_submit_with_stale_session(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        response = self.client.post(
            reverse('order_list'),
            {'table_id': self.table.id, 'session_id': str(uuid4()), 'items': self.lines()},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_session')

    def test_submit_empty_order(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        response = self.client.post(
            reverse('order_list'),
            {'table_id': self.table.id, 'items': []},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'empty_order')

    def test_direct_order(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        response = self.client.post(
            reverse('direct_order'),
            {'table_id': self.table.id, 'items': self.lines()},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'served')

    def test_advance_and_pickup(self):
        table = TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        order = OrderLifecycleService.submit(self.table.id, self.lines())

        for next_status in ('preparing', 'ready'):
            response = self.client.post(
                reverse('advance_order', kwargs={'order_id': order.id}),
                {'status': next_status},
                format='json'
            )
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['status'], next_status)

        response = self.client.get(reverse('ready_for_pickup'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['session_id'], str(table.session_id))

    def test_invalid_transition(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        order = OrderLifecycleService.submit(self.table.id, self.lines())
        response = self.client.post(
            reverse('advance_order', kwargs={'order_id': order.id}),
            {'status': 'served'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_list_orders_by_status(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        order = OrderLifecycleService.submit(self.table.id, self.lines())
        OrderLifecycleService.submit_served(self.table.id, self.lines())

        response = self.client.get(reverse('order_list'), {'status': 'pending'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o['id'] for o in response.data], [order.id])

    def test_order_detail_not_found(self):
        response = self.client.get(reverse('order_detail', kwargs={'order_id': 999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_orders_rejects_malformed_filters(self):
        response = self.client.get(reverse('order_list'), {'session_id': 'not-a-uuid'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('session_id', response.data)

        response = self.client.get(reverse('order_list'), {'table_id': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('table_id', response.data)

    def test_list_orders_by_session(self):
        table = TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        order = OrderLifecycleService.submit(self.table.id, self.lines())

        response = self.client.get(
            reverse('order_list'),
            {'session_id': str(table.session_id), 'table_id': self.table.id, 'today': 'true'}
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o['id'] for o in response.data], [order.id])
