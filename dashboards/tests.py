from datetime import timedelta
from decimal import Decimal

import pytest
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status

from billing.models import Bill
from billing.services import BillingService
from menu.models import Category, MenuItem, RestaurantSettings
from orders.models import Order
from orders.services import OrderLifecycleService
from tableside import exceptions
from tables.models import Table
from tables.services import TableLifecycleService
from .broadcast import group_name, matches_filters
from .projections import chef_view, project_for_role, reception_view, waiter_view
from .routing import websocket_urlpatterns


class DashboardFixtureMixin:
    def create_floor(self):
        cache.clear()
        category = Category.objects.create(name='Main Course')
        self.curry = MenuItem.objects.create(name='Paneer Curry', price=Decimal('120.00'), category=category)
        self.naan = MenuItem.objects.create(name='Garlic Naan', price=Decimal('80.00'), category=category)
        RestaurantSettings(gst_rate=Decimal('18')).save()
        self.table5 = Table.objects.create(number=5, capacity=4)
        self.table7 = Table.objects.create(number=7, capacity=2)

    def order(self, table, quantity=1):
        return OrderLifecycleService.submit(table.id, [{'menu_item_id': self.curry.id, 'quantity': quantity}])

    def snapshot(self):
        return list(Table.objects.all()), list(Order.objects.all()), list(Bill.objects.all())


class WaiterViewTests(DashboardFixtureMixin, TestCase):
    def setUp(self):
        self.create_floor()

    def test_tables_with_current_orders(self):
        TableLifecycleService.occupy(self.table5.id, 'Asha', '555-1111')
        self.order(self.table5, quantity=2)
        tables, orders, _ = self.snapshot()

        view = waiter_view(tables, orders)

        self.assertEqual([t['number'] for t in view['tables']], [5, 7])
        self.assertEqual(view['tables'][0]['running_total'], '240.00')
        self.assertEqual(len(view['tables'][0]['orders']), 1)
        self.assertEqual(view['tables'][1]['orders'], [])

    def test_search(self):
        TableLifecycleService.occupy(self.table5.id, 'Asha', '555-1111')
        tables, orders, _ = self.snapshot()

        self.assertEqual([t['number'] for t in waiter_view(tables, orders, 'asha')['tables']], [5])
        self.assertEqual([t['number'] for t in waiter_view(tables, orders, '7')['tables']], [7])
        self.assertEqual([t['number'] for t in waiter_view(tables, orders, 'available')['tables']], [7])

    def test_previous_seating_orders_hidden(self):
        TableLifecycleService.occupy(self.table5.id, 'A', '555-1111')
        self.order(self.table5)
        BillingService.settle(self.table5.id, 'cash')
        TableLifecycleService.occupy(self.table5.id, 'B', '555-2222')
        tables, orders, _ = self.snapshot()

        entry = waiter_view(tables, orders)['tables'][0]
        self.assertEqual(entry['guest_name'], 'B')
        self.assertEqual(entry['orders'], [])
        self.assertEqual(entry['running_total'], '0.00')


class ChefViewTests(DashboardFixtureMixin, TestCase):
    def setUp(self):
        self.create_floor()

    def test_columns(self):
        TableLifecycleService.occupy(self.table5.id, 'A', '555-1111')
        TableLifecycleService.occupy(self.table7.id, 'C', '555-3333')
        pending = self.order(self.table5)
        preparing = self.order(self.table7)
        ready = self.order(self.table5)
        OrderLifecycleService.advance(preparing.id, Order.STATUS_PREPARING)
        OrderLifecycleService.advance(ready.id, Order.STATUS_PREPARING)
        OrderLifecycleService.advance(ready.id, Order.STATUS_READY)
        tables, orders, _ = self.snapshot()

        view = chef_view(tables, orders)

        self.assertEqual([o['id'] for o in view['pending']], [pending.id])
        self.assertEqual([o['id'] for o in view['preparing']], [preparing.id])
        self.assertEqual([o['id'] for o in view['ready']], [ready.id])

    def test_ready_orders_of_released_table_drop_off(self):
        TableLifecycleService.occupy(self.table5.id, 'A', '555-1111')
        ready = self.order(self.table5)
        OrderLifecycleService.advance(ready.id, Order.STATUS_PREPARING)
        OrderLifecycleService.advance(ready.id, Order.STATUS_READY)
        TableLifecycleService.release(self.table5.id)
        tables, orders, _ = self.snapshot()

        self.assertEqual(chef_view(tables, orders)['ready'], [])


class ReceptionViewTests(DashboardFixtureMixin, TestCase):
    def setUp(self):
        self.create_floor()

    def test_active_tables_and_takings(self):
        TableLifecycleService.occupy(self.table5.id, 'A', '555-1111')
        self.order(self.table5, quantity=2)
        self.order(self.table5)
        TableLifecycleService.occupy(self.table7.id, 'C', '555-3333')
        self.order(self.table7)
        BillingService.settle(self.table7.id, 'card')
        tables, orders, bills = self.snapshot()

        view = reception_view(tables, orders, bills, now=timezone.now() + timedelta(minutes=10))

        self.assertEqual(len(view['active_tables']), 1)
        active = view['active_tables'][0]
        self.assertEqual(active['table_number'], 5)
        self.assertEqual(active['order_count'], 2)
        self.assertEqual(active['running_total'], '360.00')
        self.assertGreaterEqual(active['elapsed_minutes'], 9)

        self.assertEqual(len(view['recent_orders']), 3)
        self.assertEqual(view['order_status_counts']['pending'], 2)
        self.assertEqual(view['order_status_counts']['served'], 1)
        self.assertEqual(view['bills_today'], 1)
        self.assertEqual(view['takings_today'], '141.60')

    def test_yesterdays_bills_not_counted(self):
        TableLifecycleService.occupy(self.table7.id, 'C', '555-3333')
        self.order(self.table7)
        bill = BillingService.settle(self.table7.id, 'cash')
        Bill.objects.filter(id=bill.id).update(paid_at=timezone.now() - timedelta(days=1))
        tables, orders, bills = self.snapshot()

        view = reception_view(tables, orders, bills)
        self.assertEqual(view['bills_today'], 0)
        self.assertEqual(view['takings_today'], '0.00')


class ProjectForRoleTests(TestCase):
    def test_unknown_role(self):
        with self.assertRaises(exceptions.ValidationError):
            project_for_role('manager', [], [], [])

    def test_role_selects_view(self):
        self.assertEqual(project_for_role('chef', [], [], [])['role'], 'chef')
        self.assertEqual(project_for_role('waiter', [], [], [])['role'], 'waiter')
        self.assertEqual(project_for_role('reception', [], [], [])['role'], 'reception')


class FilterTests(TestCase):
    def test_matches_filters(self):
        document = {'id': 1, 'status': 'ready', 'table': 5, 'session_id': 'abc'}
        self.assertTrue(matches_filters('orders', document, {'status': 'ready', 'table_id': '5'}))
        self.assertFalse(matches_filters('orders', document, {'status': 'pending'}))
        # unknown parameters are ignored
        self.assertTrue(matches_filters('orders', document, {'colour': 'blue'}))


class DashboardAPITests(DashboardFixtureMixin, APITestCase):
    def setUp(self):
        self.create_floor()
        self.client.defaults['HTTP_X_API_KEY'] = 'demo'

    def test_role_from_staff_header(self):
        self.client.defaults['HTTP_X_STAFF_ROLE'] = 'chef'
        response = self.client.get(reverse('dashboard'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'chef')

    def test_role_query_overrides_header(self):
        self.client.defaults['HTTP_X_STAFF_ROLE'] = 'chef'
        TableLifecycleService.occupy(self.table5.id, 'A', '555-1111')
        response = self.client.get(reverse('dashboard'), {'role': 'reception'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['active_tables']), 1)

    def test_role_required(self):
        response = self.client.get(reverse('dashboard'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_role(self):
        response = self.client.get(reverse('dashboard'), {'role': 'manager'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_error')


def live_application():
    return URLRouter(websocket_urlpatterns)


def create_ready_order():
    category = Category.objects.create(name='Main Course')
    item = MenuItem.objects.create(name='Paneer Curry', price=Decimal('120.00'), category=category)
    table = Table.objects.create(number=5, capacity=4)
    TableLifecycleService.occupy(table.id, 'A', '555-1111')
    order = OrderLifecycleService.submit(table.id, [{'menu_item_id': item.id, 'quantity': 1}])
    OrderLifecycleService.advance(order.id, Order.STATUS_PREPARING)
    OrderLifecycleService.advance(order.id, Order.STATUS_READY)
    return order.id


@pytest.mark.django_db(transaction=True)
@pytest.mark.asyncio
class TestLiveCollections:
    """Websocket subscriptions to tables, orders and bills"""

    async def test_snapshot_then_change(self):
        await database_sync_to_async(Table.objects.create)(number=1, capacity=2)
        await database_sync_to_async(Table.objects.create)(number=2, capacity=2)

        communicator = WebsocketCommunicator(live_application(), '/ws/live/tables/?api_key=demo')
        connected, _ = await communicator.connect()
        assert connected

        snapshot = await communicator.receive_json_from()
        assert snapshot['type'] == 'snapshot'
        assert snapshot['collection'] == 'tables'
        assert [t['number'] for t in snapshot['documents']] == [1, 2]

        await get_channel_layer().group_send(group_name('tables'), {
            'type': 'collection.change',
            'collection': 'tables',
            'op': 'upsert',
            'document': {'id': 1, 'number': 1, 'status': 'occupied'},
        })
        change = await communicator.receive_json_from()
        assert change['type'] == 'change'
        assert change['op'] == 'upsert'
        assert change['document']['status'] == 'occupied'

        await communicator.disconnect()

    async def test_filtered_subscription(self):
        await database_sync_to_async(Table.objects.create)(number=1, capacity=2)

        communicator = WebsocketCommunicator(
            live_application(), '/ws/live/tables/?api_key=demo&status=occupied'
        )
        connected, _ = await communicator.connect()
        assert connected

        snapshot = await communicator.receive_json_from()
        assert snapshot['documents'] == []

        channel_layer = get_channel_layer()
        await channel_layer.group_send(group_name('tables'), {
            'type': 'collection.change',
            'collection': 'tables',
            'op': 'upsert',
            'document': {'id': 1, 'status': 'available'},
        })
        await channel_layer.group_send(group_name('tables'), {
            'type': 'collection.change',
            'collection': 'tables',
            'op': 'delete',
            'document': {'id': 1},
        })
        change = await communicator.receive_json_from()
        assert change['op'] == 'delete'
        assert await communicator.receive_nothing()

        await communicator.disconnect()

    async def test_order_leaving_filter_is_removed(self):
        order_id = await database_sync_to_async(create_ready_order)()

        communicator = WebsocketCommunicator(
            live_application(), '/ws/live/orders/?api_key=demo&status=ready'
        )
        connected, _ = await communicator.connect()
        assert connected

        snapshot = await communicator.receive_json_from()
        assert [o['id'] for o in snapshot['documents']] == [order_id]

        await database_sync_to_async(OrderLifecycleService.advance)(order_id, Order.STATUS_SERVED)

        change = await communicator.receive_json_from()
        assert change['type'] == 'change'
        assert change['op'] == 'remove'
        assert change['document']['id'] == order_id
        assert change['document']['status'] == 'served'

        # no longer tracked, so later writes stay quiet
        await get_channel_layer().group_send(group_name('orders'), {
            'type': 'collection.change',
            'collection': 'orders',
            'op': 'upsert',
            'document': {'id': order_id, 'status': 'served'},
        })
        assert await communicator.receive_nothing()

        await communicator.disconnect()

    async def test_ping(self):
        communicator = WebsocketCommunicator(live_application(), '/ws/live/orders/?api_key=demo')
        connected, _ = await communicator.connect()
        assert connected
        await communicator.receive_json_from()

        await communicator.send_json_to({'action': 'ping'})
        assert await communicator.receive_json_from() == {'type': 'pong'}

        await communicator.disconnect()

    async def test_wrong_api_key_rejected(self):
        communicator = WebsocketCommunicator(live_application(), '/ws/live/tables/?api_key=nope')
        connected, code = await communicator.connect()
        assert not connected
        assert code == 4401

    async def test_unknown_collection_rejected(self):
        communicator = WebsocketCommunicator(live_application(), '/ws/live/menu/?api_key=demo')
        connected, code = await communicator.connect()
        assert not connected
        assert code == 4404
