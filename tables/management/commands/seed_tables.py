from django.core.management.base import BaseCommand
from tables.models import Table


class Command(BaseCommand):
    help = 'Create tables numbered 1..N that do not exist yet'

    def add_arguments(self, parser):
        parser.add_argument('--count', type=int, default=10, help='Number of tables (default: 10)')
        parser.add_argument('--capacity', type=int, default=4, help='Seats per table (default: 4)')

    def handle(self, *args, **options):
        created = 0
        for number in range(1, options['count'] + 1):
            _, was_created = Table.objects.get_or_create(
                number=number,
                defaults={'capacity': options['capacity']}
            )
            if was_created:
                created += 1
                self.stdout.write(f"Created: Table {number} ({options['capacity']} seats)")

        self.stdout.write(self.style.SUCCESS(f'\nTotal new tables created: {created}'))
