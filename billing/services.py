import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from uuid import UUID, uuid4

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, transaction
from django.utils import timezone

from menu.models import RestaurantSettings
from orders.selectors import session_orders_queryset
from orders.services import OrderLifecycleService
from tableside import exceptions
from tables.models import Table
from tables.services import TableLifecycleService, acting_uid
from .models import Bill

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
PAYMENT_METHODS = [choice for choice, _ in Bill.PAYMENT_METHOD_CHOICES]


@dataclass(frozen=True)
class BillDraft:
    table_id: Optional[int]
    table_number: int
    guest_name: str
    session_id: Optional[UUID]
    order_ids: List[int]
    items: List[dict] = field(default_factory=list)
    subtotal: Decimal = Decimal('0.00')
    gst_rate: Decimal = Decimal('0.00')
    tax: Decimal = Decimal('0.00')
    total: Decimal = Decimal('0.00')


def get_gst_rate():
    """GST percentage from restaurant settings, or DEFAULT_GST_RATE when unset"""
    try:
        return Decimal(RestaurantSettings.current_gst_rate())
    except DatabaseError as exc:
        logger.warning(f"Could not read GST rate, using default: {exc}")
        return Decimal(settings.DEFAULT_GST_RATE)


def compute_bill(table, session_orders, gst_rate):
    """
    Price a seating from its orders' item snapshots.

    Pure: nothing is read from the live menu and nothing is written.
    """
    ordered = sorted(session_orders, key=lambda o: (o.created_at, o.id))
    items = [dict(item) for order in ordered for item in order.items]

    subtotal = sum(
        (Decimal(str(item['price'])) * item['quantity'] for item in items),
        Decimal('0.00')
    ).quantize(CENT)
    rate = Decimal(gst_rate)
    tax = (subtotal * rate / Decimal('100')).quantize(CENT, rounding=ROUND_HALF_UP)

    return BillDraft(
        table_id=table.id,
        table_number=table.number,
        guest_name=table.guest_name or '',
        session_id=table.session_id,
        order_ids=[order.id for order in ordered],
        items=items,
        subtotal=subtotal,
        gst_rate=rate,
        tax=tax,
        total=subtotal + tax,
    )


class BillingService:
    """Produces bills and closes out table sessions."""

    @staticmethod
    def preview(table_id, gst_rate=None):
        """The bill the table's current session would get, without writing anything"""
        table = Table.objects.get(pk=table_id)
        if table.session_id is None:
            raise exceptions.InconsistentStateError(f"Table {table.number} has no active session")

        orders = list(session_orders_queryset(table))
        if not orders:
            raise exceptions.NothingToBillError(f"No orders found for Table {table.number}")

        rate = get_gst_rate() if gst_rate is None else gst_rate
        return compute_bill(table, orders, rate)

    @staticmethod
    def _acquire_settle_lock(lock_key, owner):
        try:
            acquired = cache.add(lock_key, owner, timeout=settings.SETTLE_LOCK_TIMEOUT)
        except Exception as exc:
            logger.error(f"Settle lock {lock_key} unavailable: {exc}")
            raise exceptions.TransportError() from exc
        if not acquired:
            raise exceptions.OperationInFlightError(
                'A bill for this table is already being processed'
            )

    @staticmethod
    def _release_settle_lock(lock_key, owner):
        # An expired lock may already belong to another settle
        if cache.get(lock_key) == owner:
            cache.delete(lock_key)

    @staticmethod
    def settle(table_id, payment_method, acting_user=None, expected_version=None, gst_rate=None):
        """
        Bill the table's current session and free the table.

        In one transaction: writes the paid Bill, releases the table and marks
        the session's orders served. A failure in any step rolls back all
        three, so a paid bill never sits next to a still occupied table.
        """
        if payment_method not in PAYMENT_METHODS:
            raise exceptions.ValidationError(f"Unknown payment method: {payment_method}")

        lock_key = f"settle_lock:{table_id}"
        lock_owner = f"{acting_uid(acting_user) or 'settle'}:{uuid4().hex}"
        BillingService._acquire_settle_lock(lock_key, lock_owner)

        try:
            with transaction.atomic():
                table = TableLifecycleService.lock(table_id)
                TableLifecycleService.check_version(table, expected_version)

                if table.session_id is None:
                    raise exceptions.InconsistentStateError(
                        f"Table {table.number} has no active session to bill"
                    )

                orders = list(session_orders_queryset(table).select_for_update())
                if not orders:
                    raise exceptions.NothingToBillError(f"No orders found for Table {table.number}")

                if Bill.objects.filter(session_id=table.session_id).exists():
                    raise exceptions.InconsistentStateError(
                        f"Session {table.session_id} has already been billed"
                    )

                rate = get_gst_rate() if gst_rate is None else gst_rate
                draft = compute_bill(table, orders, rate)
                now = timezone.now()

                bill = Bill.objects.create(
                    table=table,
                    table_number=draft.table_number,
                    guest_name=draft.guest_name,
                    session_id=draft.session_id,
                    items=draft.items,
                    subtotal=draft.subtotal,
                    gst_rate=draft.gst_rate,
                    tax=draft.tax,
                    total=draft.total,
                    status='paid',
                    payment_method=payment_method,
                    generated_at=now,
                    paid_at=now,
                )
                bill.orders.set(orders)

                TableLifecycleService.release_locked(table)
                OrderLifecycleService.mark_served(orders, now)
        except DatabaseError as exc:
            logger.error(f"Settlement of table {table_id} failed and was rolled back: {exc}")
            raise exceptions.TransportError(
                'Failed to process payment. Nothing was saved, please try again.'
            ) from exc
        finally:
            BillingService._release_settle_lock(lock_key, lock_owner)

        logger.info(
            f"Bill {bill.id} paid by {payment_method} for Table {bill.table_number}: "
            f"subtotal {bill.subtotal}, tax {bill.tax}, total {bill.total}"
        )
        return bill
