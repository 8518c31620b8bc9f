import logging
from decimal import Decimal

from django.db import DatabaseError, transaction
from django.utils import timezone

from menu.models import MenuItem
from tableside import exceptions
from tables.services import TableLifecycleService, acting_uid
from .models import Order

logger = logging.getLogger(__name__)


class OrderLifecycleService:
    """Creates orders against a table's current session and moves them through the kitchen."""

    # Forward-only state machine; anything else is rejected
    VALID_STATUS_TRANSITIONS = {
        Order.STATUS_PENDING: Order.STATUS_PREPARING,
        Order.STATUS_PREPARING: Order.STATUS_READY,
        Order.STATUS_READY: Order.STATUS_SERVED,
    }

    @staticmethod
    def snapshot_items(items):
        """
        Copy name, price and category of each requested menu item.

        ``items`` is a list of ``{menu_item_id, quantity, notes}`` dicts. Repeat
        requests for the same menu item become one line with the quantities
        added up. Returns ``(snapshot, total_amount)``.
        """
        if not items:
            raise exceptions.EmptyOrderError()

        menu_ids = {item['menu_item_id'] for item in items}
        menu = {
            m.id: m for m in MenuItem.objects.select_related('category').filter(id__in=menu_ids)
        }

        lines = {}
        for item in items:
            menu_item = menu.get(item['menu_item_id'])
            if menu_item is None:
                raise exceptions.ValidationError(f"Menu item {item['menu_item_id']} not found")
            if not menu_item.is_available:
                raise exceptions.ValidationError(f"{menu_item.name} is not available")

            quantity = item.get('quantity', 1)
            if quantity < 1:
                raise exceptions.ValidationError('Quantity must be at least 1')

            notes = (item.get('notes') or '').strip()
            line = lines.get(menu_item.id)
            if line is None:
                lines[menu_item.id] = {
                    'id': menu_item.id,
                    'name': menu_item.name,
                    'price': str(menu_item.price),
                    'quantity': quantity,
                    'notes': notes,
                    'category': menu_item.category.name,
                }
            else:
                line['quantity'] += quantity
                if notes and notes not in line['notes']:
                    line['notes'] = f"{line['notes']}; {notes}" if line['notes'] else notes

        snapshot = list(lines.values())
        total = sum(
            (Decimal(line['price']) * line['quantity'] for line in snapshot),
            Decimal('0.00')
        )
        return snapshot, total.quantize(Decimal('0.01'))

    @staticmethod
    def _create(table_id, items, notes, acting_user, session_id, status):
        snapshot, total = OrderLifecycleService.snapshot_items(items)

        try:
            with transaction.atomic():
                table = TableLifecycleService.lock(table_id)
                if table.session_id is None:
                    raise exceptions.InvalidSessionError(
                        f"Table {table.number} is not occupied"
                    )
                if session_id is not None and str(session_id) != str(table.session_id):
                    raise exceptions.InvalidSessionError()

                now = timezone.now()
                order = Order.objects.create(
                    table=table,
                    table_number=table.number,
                    guest_name=table.guest_name or '',
                    session_id=table.session_id,
                    waiter_id=acting_uid(acting_user),
                    items=snapshot,
                    status=status,
                    total_amount=total,
                    notes=(notes or '').strip(),
                    created_at=now,
                    updated_at=now,
                    served_at=now if status == Order.STATUS_SERVED else None,
                )
        except DatabaseError as exc:
            logger.error(f"Failed to submit order for table {table_id}: {exc}")
            raise exceptions.TransportError() from exc

        logger.info(
            f"Order {order.id} for Table {order.table_number} created as {order.status} "
            f"(session {order.session_id}, total {order.total_amount})"
        )
        return order

    @staticmethod
    def submit(table_id, items, notes='', acting_user=None, session_id=None):
        """
        Send an order to the kitchen for the table's current session.

        ``session_id`` is the session the caller saw; a table that has since
        moved on to another seating rejects the order with InvalidSessionError.
        """
        return OrderLifecycleService._create(
            table_id, items, notes, acting_user, session_id, Order.STATUS_PENDING
        )

    @staticmethod
    def submit_served(table_id, items, notes='', acting_user=None, session_id=None):
        """Reception's direct entry: the order skips the kitchen and is served at once"""
        return OrderLifecycleService._create(
            table_id, items, notes, acting_user, session_id, Order.STATUS_SERVED
        )

    @staticmethod
    def advance(order_id, to_status):
        """
        Move an order one step forward.

        Asking for the status the order already has is a no-op.
        """
        if to_status not in dict(Order.STATUS_CHOICES):
            raise exceptions.ValidationError(f"Unknown order status: {to_status}")

        try:
            with transaction.atomic():
                order = Order.objects.select_for_update().get(pk=order_id)
                if order.status == to_status:
                    return order

                expected = OrderLifecycleService.VALID_STATUS_TRANSITIONS.get(order.status)
                if expected != to_status:
                    raise exceptions.InvalidTransitionError(
                        f"Cannot move order {order.id} from {order.status} to {to_status}"
                    )

                previous = order.status
                now = timezone.now()
                order.status = to_status
                order.updated_at = now
                if to_status == Order.STATUS_SERVED:
                    order.served_at = now
                order.save(update_fields=['status', 'updated_at', 'served_at'])
        except DatabaseError as exc:
            logger.error(f"Failed to advance order {order_id}: {exc}")
            raise exceptions.TransportError() from exc

        logger.info(f"Order {order.id} moved from {previous} to {to_status}")
        return order

    @staticmethod
    def mark_served(orders, now=None):
        """
        Serve every order in ``orders`` that is not served yet.

        Saves one order at a time so change listeners see each document.
        Caller owns the transaction.
        """
        now = now or timezone.now()
        served = []
        for order in orders:
            if order.status == Order.STATUS_SERVED:
                continue
            order.status = Order.STATUS_SERVED
            order.served_at = now
            order.updated_at = now
            order.save(update_fields=['status', 'served_at', 'updated_at'])
            served.append(order)
        return served
