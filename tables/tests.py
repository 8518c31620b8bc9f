import random
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from menu.models import Category, MenuItem
from orders.models import Order
from orders.services import OrderLifecycleService
from tableside import exceptions
from tableside.authentication import StaffIdentity
from .models import Table, VoidedSession
from .services import TableLifecycleService, TableAdminService, validate_guest_details


class GuestDetailsTests(TestCase):
    """Guest form validation"""

    def test_valid_details_are_trimmed(self):
        name, phone, party_size = validate_guest_details('  Asha ', ' +91 98765-43210 ', 3)
        self.assertEqual(name, 'Asha')
        self.assertEqual(phone, '+91 98765-43210')
        self.assertEqual(party_size, 3)

    def test_missing_fields_are_reported_together(self):
        with self.assertRaises(exceptions.GuestDetailsError) as ctx:
            validate_guest_details('', '   ', 0)
        self.assertEqual(set(ctx.exception.errors), {'guest_name', 'guest_phone', 'party_size'})

    def test_phone_with_letters_rejected(self):
        with self.assertRaises(exceptions.GuestDetailsError) as ctx:
            validate_guest_details('Asha', 'call me')
        self.assertIn('guest_phone', ctx.exception.errors)


class TableLifecycleTests(TestCase):
    """Occupy and release"""

    def setUp(self):
        self.table = Table.objects.create(number=5, capacity=4)
        self.waiter = StaffIdentity(uid='waiter-1', role='waiter')

    def test_occupy_opens_session(self):
        table = TableLifecycleService.occupy(
            self.table.id, 'A', '555-1111', acting_user=self.waiter, party_size=2
        )

        self.assertEqual(table.status, Table.STATUS_OCCUPIED)
        self.assertIsNotNone(table.session_id)
        self.assertEqual(table.guest_name, 'A')
        self.assertEqual(table.party_size, 2)
        self.assertEqual(table.waiter_id, 'waiter-1')
        self.assertIsNotNone(table.occupied_at)
        self.assertEqual(table.version, 1)

    def test_occupy_twice_rejected(self):
        first = TableLifecycleService.occupy(self.table.id, 'A', '555-1111')

        with self.assertRaises(exceptions.TableNotAvailableError):
            TableLifecycleService.occupy(self.table.id, 'B', '555-2222')

        self.table.refresh_from_db()
        self.assertEqual(self.table.session_id, first.session_id)
        self.assertEqual(self.table.guest_name, 'A')

    def test_reserved_table_cannot_be_occupied(self):
        self.table.status = Table.STATUS_RESERVED
        self.table.save()

        with self.assertRaises(exceptions.TableNotAvailableError):
            TableLifecycleService.occupy(self.table.id, 'A', '555-1111')

    def test_invalid_guest_leaves_table_untouched(self):
        with self.assertRaises(exceptions.GuestDetailsError):
            TableLifecycleService.occupy(self.table.id, 'A', 'not-a-phone!')

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_AVAILABLE)
        self.assertIsNone(self.table.session_id)
        self.assertEqual(self.table.version, 0)

    def test_release_clears_guest_fields(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111', acting_user=self.waiter)
        table = TableLifecycleService.release(self.table.id)

        self.assertEqual(table.status, Table.STATUS_AVAILABLE)
        self.assertIsNone(table.session_id)
        self.assertIsNone(table.guest_name)
        self.assertIsNone(table.guest_phone)
        self.assertIsNone(table.party_size)
        self.assertIsNone(table.occupied_at)
        self.assertIsNone(table.waiter_id)

    def test_every_seating_gets_a_new_session(self):
        sessions = set()
        for guest in ('A', 'B', 'C'):
            table = TableLifecycleService.occupy(self.table.id, guest, '555-1111')
            sessions.add(table.session_id)
            TableLifecycleService.release(self.table.id)
        self.assertEqual(len(sessions), 3)

    def test_stale_version_rejected(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111', expected_version=0)

        with self.assertRaises(exceptions.ConcurrencyConflictError):
            TableLifecycleService.release(self.table.id, expected_version=0)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_OCCUPIED)

    def test_occupied_iff_session_under_random_operations(self):
        rng = random.Random(42)
        tables = [self.table] + [Table.objects.create(number=n, capacity=2) for n in (6, 7)]

        for _ in range(60):
            table = rng.choice(tables)
            try:
                if rng.random() < 0.5:
                    TableLifecycleService.occupy(table.id, 'Guest', '555-0000')
                else:
                    TableLifecycleService.release(table.id)
            except exceptions.TablesideError:
                pass

            for t in Table.objects.all():
                self.assertEqual(t.status == Table.STATUS_OCCUPIED, t.session_id is not None)


class FreeTableTests(TestCase):
    """Administrative release without a bill"""

    def setUp(self):
        self.table = Table.objects.create(number=3, capacity=2)
        category = Category.objects.create(name='Starters')
        self.item = MenuItem.objects.create(name='Soup', price=Decimal('120.00'), category=category)
        self.reception = StaffIdentity(uid='rec-1', role='reception')

    def test_free_empty_session_records_audit(self):
        table = TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        session_id = table.session_id

        TableLifecycleService.free_table(self.table.id, acting_user=self.reception, reason='walked out')

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_AVAILABLE)
        voided = VoidedSession.objects.get(session_id=session_id)
        self.assertEqual(voided.table_number, 3)
        self.assertEqual(voided.guest_name, 'A')
        self.assertEqual(voided.released_by, 'rec-1')
        self.assertEqual(voided.reason, 'walked out')

    def test_session_with_orders_must_be_settled(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        OrderLifecycleService.submit(self.table.id, [{'menu_item_id': self.item.id, 'quantity': 1}])

        with self.assertRaises(exceptions.SessionNotEmptyError):
            TableLifecycleService.free_table(self.table.id)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.STATUS_OCCUPIED)
        self.assertFalse(VoidedSession.objects.exists())

    def test_free_table_without_session(self):
        with self.assertRaises(exceptions.InconsistentStateError):
            TableLifecycleService.free_table(self.table.id)


class TableAdminTests(TestCase):
    """Table setup"""

    def test_create_table(self):
        table = TableAdminService.create_table(number=9, capacity=6)
        self.assertEqual(table.status, Table.STATUS_AVAILABLE)
        self.assertIsNone(table.session_id)

    def test_duplicate_number_rejected(self):
        TableAdminService.create_table(number=9, capacity=6)
        with self.assertRaises(exceptions.ValidationError):
            TableAdminService.create_table(number=9, capacity=2)

    def test_cannot_create_occupied_table(self):
        with self.assertRaises(exceptions.ValidationError):
            TableAdminService.create_table(number=9, capacity=2, status=Table.STATUS_OCCUPIED)

    def test_occupied_table_cannot_be_edited_or_deleted(self):
        table = TableAdminService.create_table(number=9, capacity=2)
        TableLifecycleService.occupy(table.id, 'A', '555-1111')

        with self.assertRaises(exceptions.TableOccupiedError):
            TableAdminService.update_table(table.id, capacity=8)
        with self.assertRaises(exceptions.TableOccupiedError):
            TableAdminService.delete_table(table.id)

    def test_update_bumps_version(self):
        table = TableAdminService.create_table(number=9, capacity=2)
        table = TableAdminService.update_table(table.id, expected_version=0, capacity=8)
        self.assertEqual(table.capacity, 8)
        self.assertEqual(table.version, 1)

    def test_delete_keeps_order_history(self):
        category = Category.objects.create(name='Mains')
        item = MenuItem.objects.create(name='Dal', price=Decimal('240.00'), category=category)
        table = TableAdminService.create_table(number=9, capacity=2)
        TableLifecycleService.occupy(table.id, 'A', '555-1111')
        order = OrderLifecycleService.submit(table.id, [{'menu_item_id': item.id, 'quantity': 1}])
        TableLifecycleService.release(table.id)

        TableAdminService.delete_table(table.id)

        order.refresh_from_db()
        self.assertIsNone(order.table_id)
        self.assertEqual(order.table_number, 9)


class TableAPITests(APITestCase):
    """Table endpoints"""

    def setUp(self):
        self.table = Table.objects.create(number=5, capacity=4)
        self.client.defaults['HTTP_X_API_KEY'] = 'demo'
        self.client.defaults['HTTP_X_STAFF_UID'] = 'waiter-1'
        self.client.defaults['HTTP_X_STAFF_ROLE'] = 'waiter'

    def test_missing_api_key(self):
        del self.client.defaults['HTTP_X_API_KEY']
        response = self.client.get(reverse('table_list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_wrong_api_key(self):
        self.client.defaults['HTTP_X_API_KEY'] = 'nope'
        response = self.client.get(reverse('table_list'))
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_list_tables(self):
        Table.objects.create(number=2, capacity=2)
        response = self.client.get(reverse('table_list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['number'] for t in response.data], [2, 5])

    def test_create_table(self):
        response = self.client.post(reverse('table_list'), {'number': 8, 'capacity': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'available')

    def test_create_duplicate_table(self):
        response = self.client.post(reverse('table_list'), {'number': 5, 'capacity': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_occupy_table(self):
        url = reverse('occupy_table', kwargs={'table_id': self.table.id})
        response = self.client.post(url, {'guest_name': 'A', 'guest_phone': '555-1111'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'occupied')
        self.assertIsNotNone(response.data['session_id'])
        self.assertEqual(response.data['waiter_id'], 'waiter-1')

    def test_occupy_with_bad_guest_details(self):
        url = reverse('occupy_table', kwargs={'table_id': self.table.id})
        response = self.client.post(url, {'guest_name': '', 'guest_phone': 'abc'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_guest_details')
        self.assertIn('guest_name', response.data['fields'])

    def test_occupy_stale_version(self):
        url = reverse('occupy_table', kwargs={'table_id': self.table.id})
        response = self.client.post(
            url, {'guest_name': 'A', 'guest_phone': '555-1111', 'expected_version': 3}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'version_conflict')

    def test_occupy_unknown_table(self):
        url = reverse('occupy_table', kwargs={'table_id': 999})
        response = self.client.post(url, {'guest_name': 'A', 'guest_phone': '555-1111'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_free_table(self):
        TableLifecycleService.occupy(self.table.id, 'A', '555-1111')
        url = reverse('free_table', kwargs={'table_id': self.table.id})
        response = self.client.post(url, {'reason': 'no show'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['reason'], 'no show')
        self.assertEqual(response.data['released_by'], 'waiter-1')

    def test_delete_table(self):
        url = reverse('table_detail', kwargs={'table_id': self.table.id})
        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Table.objects.filter(id=self.table.id).exists())

    def test_table_orders_empty_when_free(self):
        url = reverse('table_orders', kwargs={'table_id': self.table.id})
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])

    def test_unknown_staff_role(self):
        self.client.defaults['HTTP_X_STAFF_ROLE'] = 'manager'
        response = self.client.get(reverse('table_list'))
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))


class SeedTablesCommandTests(TestCase):
    def test_seed_tables_skips_existing(self):
        from io import StringIO
        from django.core.management import call_command

        Table.objects.create(number=2, capacity=6)
        call_command('seed_tables', '--count', '4', stdout=StringIO())

        self.assertEqual(list(Table.objects.values_list('number', flat=True)), [1, 2, 3, 4])
        self.assertEqual(Table.objects.get(number=2).capacity, 6)
