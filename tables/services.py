import logging
import re

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from tableside import exceptions
from .models import Table, VoidedSession
from .sessions import begin_session

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r'^\+?[\d\s\-()]+$')


def acting_uid(acting_user):
    return getattr(acting_user, 'uid', None)


def validate_guest_details(guest_name, guest_phone, party_size=1):
    """Return the cleaned guest fields or raise GuestDetailsError"""
    errors = {}
    name = (guest_name or '').strip()
    phone = (guest_phone or '').strip()

    if not name:
        errors['guest_name'] = 'Guest name is required'
    if not phone:
        errors['guest_phone'] = 'Phone number is required'
    elif not PHONE_PATTERN.match(phone):
        errors['guest_phone'] = 'Please enter a valid phone number'
    if party_size is None or party_size < 1:
        errors['party_size'] = 'Number of guests must be at least 1'

    if errors:
        raise exceptions.GuestDetailsError(errors)
    return name, phone, party_size


class TableLifecycleService:
    """Owns the available -> occupied -> available cycle of every table."""

    @staticmethod
    def lock(table_id):
        """Fetch a table with its row locked; call inside transaction.atomic"""
        return Table.objects.select_for_update().get(pk=table_id)

    @staticmethod
    def check_version(table, expected_version):
        if expected_version is not None and expected_version != table.version:
            raise exceptions.ConcurrencyConflictError(
                f"Table {table.number} is at version {table.version}, "
                f"request was based on version {expected_version}"
            )

    @staticmethod
    def occupy(table_id, guest_name, guest_phone, acting_user=None, party_size=1, expected_version=None):
        """
        Seat a party at an available table and open a new session.

        Raises GuestDetailsError for bad guest fields, TableNotAvailableError
        when the table is occupied or reserved and ConcurrencyConflictError
        when ``expected_version`` is stale.
        """
        name, phone, party_size = validate_guest_details(guest_name, guest_phone, party_size)

        try:
            with transaction.atomic():
                table = TableLifecycleService.lock(table_id)
                TableLifecycleService.check_version(table, expected_version)

                if table.status != Table.STATUS_AVAILABLE:
                    raise exceptions.TableNotAvailableError(
                        f"Table {table.number} is {table.status}"
                    )

                table.status = Table.STATUS_OCCUPIED
                table.session_id = begin_session()
                table.guest_name = name
                table.guest_phone = phone
                table.party_size = party_size
                table.occupied_at = timezone.now()
                table.waiter_id = acting_uid(acting_user)
                table.version += 1
                table.save()
        except DatabaseError as exc:
            logger.error(f"Failed to occupy table {table_id}: {exc}")
            raise exceptions.TransportError() from exc

        logger.info(f"Table {table.number} assigned to {name} (session {table.session_id})")
        return table

    @staticmethod
    def release_locked(table):
        """Clear a locked table back to available. Caller owns the transaction."""
        previous_session = table.session_id
        table.status = Table.STATUS_AVAILABLE
        table.session_id = None
        table.guest_name = None
        table.guest_phone = None
        table.party_size = None
        table.occupied_at = None
        table.waiter_id = None
        table.version += 1
        table.save()
        logger.info(f"Table {table.number} released (session {previous_session})")
        return table

    @staticmethod
    def release(table_id, expected_version=None):
        """
        Make a table available again.

        Orders and bills of the released session are left untouched.
        """
        try:
            with transaction.atomic():
                table = TableLifecycleService.lock(table_id)
                TableLifecycleService.check_version(table, expected_version)
                return TableLifecycleService.release_locked(table)
        except DatabaseError as exc:
            logger.error(f"Failed to release table {table_id}: {exc}")
            raise exceptions.TransportError() from exc

    @staticmethod
    def free_table(table_id, acting_user=None, reason=''):
        """
        Administrative release of a session that has nothing to bill.

        Leaves a VoidedSession record behind so the seating stays traceable.
        """
        from orders.models import Order
        from orders.selectors import session_total

        try:
            with transaction.atomic():
                table = TableLifecycleService.lock(table_id)
                if table.session_id is None:
                    raise exceptions.InconsistentStateError(
                        f"Table {table.number} has no active session"
                    )

                orders = Order.objects.filter(table=table, session_id=table.session_id)
                amount = session_total(orders)
                if amount > 0:
                    raise exceptions.SessionNotEmptyError(
                        f"Table {table.number} has {amount} outstanding; generate the bill instead"
                    )

                VoidedSession.objects.create(
                    table=table,
                    table_number=table.number,
                    session_id=table.session_id,
                    guest_name=table.guest_name or '',
                    released_by=acting_uid(acting_user),
                    reason=reason,
                )
                TableLifecycleService.release_locked(table)
        except DatabaseError as exc:
            logger.error(f"Failed to free table {table_id}: {exc}")
            raise exceptions.TransportError() from exc

        logger.info(f"Table {table.number} freed without a bill by {acting_uid(acting_user)}")
        return table


class TableAdminService:
    """Table setup for managers: create, edit and remove tables."""

    @staticmethod
    def create_table(number, capacity, status=Table.STATUS_AVAILABLE):
        if status == Table.STATUS_OCCUPIED:
            raise exceptions.ValidationError('Tables are occupied by seating a guest, not by setup')
        if Table.objects.filter(number=number).exists():
            raise exceptions.ValidationError(f"A table with number {number} already exists")
        try:
            table = Table.objects.create(number=number, capacity=capacity, status=status)
        except IntegrityError as exc:
            raise exceptions.ValidationError(f"A table with number {number} already exists") from exc
        except DatabaseError as exc:
            logger.error(f"Failed to create table {number}: {exc}")
            raise exceptions.TransportError() from exc
        logger.info(f"Table {table.number} created (capacity {table.capacity})")
        return table

    @staticmethod
    def update_table(table_id, expected_version=None, **changes):
        try:
            with transaction.atomic():
                table = TableLifecycleService.lock(table_id)
                TableLifecycleService.check_version(table, expected_version)
                if table.is_occupied:
                    raise exceptions.TableOccupiedError(
                        f"Table {table.number} is occupied and cannot be edited"
                    )
                if changes.get('status') == Table.STATUS_OCCUPIED:
                    raise exceptions.ValidationError('Tables are occupied by seating a guest, not by setup')

                number = changes.get('number')
                if number is not None and number != table.number:
                    if Table.objects.filter(number=number).exclude(pk=table.pk).exists():
                        raise exceptions.ValidationError(f"A table with number {number} already exists")

                for field in ('number', 'capacity', 'status'):
                    if changes.get(field) is not None:
                        setattr(table, field, changes[field])
                table.version += 1
                table.save()
        except IntegrityError as exc:
            raise exceptions.ValidationError('A table with this number already exists') from exc
        except DatabaseError as exc:
            logger.error(f"Failed to update table {table_id}: {exc}")
            raise exceptions.TransportError() from exc
        return table

    @staticmethod
    def delete_table(table_id):
        try:
            with transaction.atomic():
                table = TableLifecycleService.lock(table_id)
                if table.is_occupied:
                    raise exceptions.TableOccupiedError(
                        f"Table {table.number} is occupied and cannot be deleted"
                    )
                number = table.number
                table.delete()
        except DatabaseError as exc:
            logger.error(f"Failed to delete table {table_id}: {exc}")
            raise exceptions.TransportError() from exc
        logger.info(f"Table {number} deleted")
