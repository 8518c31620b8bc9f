"""
Read side of the order lifecycle.

The plain functions work on any iterable of orders (and tables) already in
memory, which is how the dashboards re-derive their views after every change.
The ``*_queryset`` helpers are the database equivalents used by the API.
"""
from decimal import Decimal

from django.db.models import F
from django.utils import timezone

from .models import Order


def _oldest_first(orders):
    return sorted(orders, key=lambda o: (o.created_at, o.id))


def by_status(orders, status):
    """Orders in one kitchen column, oldest first"""
    return _oldest_first(o for o in orders if o.status == status)


def by_session_and_table(orders, table_id, session_id):
    """
    Orders of one seating.

    Table ids are reused by every party seated at the table, so the session id
    is what tells seatings apart. No session means no orders.
    """
    if session_id is None:
        return []
    return _oldest_first(
        o for o in orders
        if o.table_id == table_id and o.session_id == session_id
    )


def ready_for_pickup(orders, tables):
    """Ready orders whose table is still held by the session that placed them"""
    current_sessions = {t.id: t.session_id for t in tables}
    return _oldest_first(
        o for o in orders
        if o.status == Order.STATUS_READY
        and current_sessions.get(o.table_id) is not None
        and current_sessions.get(o.table_id) == o.session_id
    )


def created_on(orders, day=None):
    """Orders created on a local calendar day (today by default)"""
    day = day or timezone.localdate()
    return _oldest_first(
        o for o in orders
        if timezone.localtime(o.created_at).date() == day
    )


def session_total(orders):
    return sum((Decimal(o.total_amount) for o in orders), Decimal('0.00'))


def session_orders_queryset(table):
    if table.session_id is None:
        return Order.objects.none()
    return Order.objects.filter(table=table, session_id=table.session_id)


def ready_for_pickup_queryset():
    return Order.objects.filter(
        status=Order.STATUS_READY,
        table__session_id=F('session_id'),
    )
