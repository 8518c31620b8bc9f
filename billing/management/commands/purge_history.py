import logging

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from billing.models import Bill
from orders.models import Order
from tables.models import Table

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Delete served orders of closed sessions and paid bills. This cannot be undone.'

    def add_arguments(self, parser):
        parser.add_argument('--orders', action='store_true', help='Delete served orders')
        parser.add_argument('--bills', action='store_true', help='Delete paid bills')

    def handle(self, *args, **options):
        if not options['orders'] and not options['bills']:
            raise CommandError('Pass --orders and/or --bills')

        with transaction.atomic():
            if options['orders']:
                open_sessions = Table.objects.filter(session_id__isnull=False).values('session_id')
                served = Order.objects.filter(status=Order.STATUS_SERVED).exclude(session_id__in=open_sessions)
                count = served.count()
                served.delete()
                logger.info(f"Purged {count} served orders")
                self.stdout.write(self.style.SUCCESS(f'Deleted {count} served orders'))

            if options['bills']:
                paid = Bill.objects.filter(status='paid')
                count = paid.count()
                paid.delete()
                logger.info(f"Purged {count} paid bills")
                self.stdout.write(self.style.SUCCESS(f'Deleted {count} paid bills'))
