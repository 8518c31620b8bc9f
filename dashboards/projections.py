"""
Role specific read views over the shared tables, orders and bills.

Everything here is a pure function of the documents passed in, so every
dashboard can rebuild its view from scratch whenever a change arrives.
"""
from decimal import Decimal

from django.utils import timezone

from orders import selectors
from orders.models import Order
from orders.serializers import OrderSerializer
from tables.serializers import TableSerializer
from tableside import exceptions

RECENT_ORDER_LIMIT = 10


def _money(value):
    return str(Decimal(value).quantize(Decimal('0.01')))


def _table_matches(table, query):
    if not query:
        return True
    return (
        query in str(table.number)
        or (table.guest_name and query in table.guest_name.lower())
        or query in table.status.lower()
    )


def waiter_view(tables, orders, search=''):
    """Floor plan: every table with the current seating's orders"""
    query = (search or '').strip().lower()
    entries = []
    for table in sorted(tables, key=lambda t: t.number):
        if not _table_matches(table, query):
            continue
        session_orders = selectors.by_session_and_table(orders, table.id, table.session_id)
        entry = dict(TableSerializer(table).data)
        entry['orders'] = OrderSerializer(session_orders, many=True).data
        entry['running_total'] = _money(selectors.session_total(session_orders))
        entries.append(entry)
    return {'role': 'waiter', 'tables': entries}


def chef_view(tables, orders):
    """Kitchen board columns"""
    return {
        'role': 'chef',
        'pending': OrderSerializer(selectors.by_status(orders, Order.STATUS_PENDING), many=True).data,
        'preparing': OrderSerializer(selectors.by_status(orders, Order.STATUS_PREPARING), many=True).data,
        'ready': OrderSerializer(selectors.ready_for_pickup(orders, tables), many=True).data,
    }


def reception_view(tables, orders, bills, now=None):
    """Active tables with running totals, recent orders and today's takings"""
    now = now or timezone.now()
    today = timezone.localdate(now)

    active = []
    occupied = [t for t in tables if t.is_occupied]
    for table in sorted(occupied, key=lambda t: (t.occupied_at or now, t.number)):
        session_orders = selectors.by_session_and_table(orders, table.id, table.session_id)
        elapsed = int((now - table.occupied_at).total_seconds() // 60) if table.occupied_at else 0
        active.append({
            'table_id': table.id,
            'table_number': table.number,
            'guest_name': table.guest_name,
            'session_id': str(table.session_id),
            'elapsed_minutes': elapsed,
            'order_count': len(session_orders),
            'running_total': _money(selectors.session_total(session_orders)),
        })

    todays_orders = selectors.created_on(orders, today)
    recent = sorted(todays_orders, key=lambda o: (o.created_at, o.id), reverse=True)[:RECENT_ORDER_LIMIT]
    status_counts = {
        status: len(selectors.by_status(todays_orders, status))
        for status, _ in Order.STATUS_CHOICES
    }

    paid_today = [
        b for b in bills
        if b.status == 'paid' and b.paid_at and timezone.localtime(b.paid_at).date() == today
    ]

    return {
        'role': 'reception',
        'active_tables': active,
        'recent_orders': OrderSerializer(recent, many=True).data,
        'order_status_counts': status_counts,
        'bills_today': len(paid_today),
        'takings_today': _money(sum((b.total for b in paid_today), Decimal('0.00'))),
    }


def project_for_role(role, tables, orders, bills, now=None, search=''):
    if role == 'waiter':
        return waiter_view(tables, orders, search)
    if role == 'chef':
        return chef_view(tables, orders)
    if role == 'reception':
        return reception_view(tables, orders, bills, now)
    raise exceptions.ValidationError(f"No dashboard for role: {role}")
