from decimal import Decimal

from django.core.management.base import BaseCommand
from menu.models import Category, MenuItem, RestaurantSettings


CATEGORIES = ['Starters', 'Main Course', 'Breads', 'Desserts', 'Beverages']

MENU_ITEMS = [
    {"name": "Paneer Tikka", "category": "Starters", "price": "220.00", "preparation_time": 15},
    {"name": "Veg Manchurian", "category": "Starters", "price": "180.00", "preparation_time": 12},
    {"name": "Dal Makhani", "category": "Main Course", "price": "240.00", "preparation_time": 20},
    {"name": "Paneer Butter Masala", "category": "Main Course", "price": "280.00", "preparation_time": 20},
    {"name": "Butter Naan", "category": "Breads", "price": "60.00", "preparation_time": 8},
    {"name": "Tandoori Roti", "category": "Breads", "price": "30.00", "preparation_time": 6},
    {"name": "Gulab Jamun", "category": "Desserts", "price": "90.00", "preparation_time": 5},
    {"name": "Masala Chaas", "category": "Beverages", "price": "50.00", "preparation_time": 3},
    {"name": "Fresh Lime Soda", "category": "Beverages", "price": "80.00", "preparation_time": 4},
]


class Command(BaseCommand):
    help = 'Seed the database with menu categories, menu items and the GST rate'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing menu items and categories before seeding',
        )
        parser.add_argument(
            '--gst',
            type=Decimal,
            default=Decimal('5'),
            help='GST rate in percent (default: 5)',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing menu items...')
            MenuItem.objects.all().delete()
            Category.objects.all().delete()
            self.stdout.write(
                self.style.SUCCESS('Successfully cleared menu items')
            )

        categories = {}
        for position, name in enumerate(CATEGORIES):
            category, _ = Category.objects.get_or_create(
                name__iexact=name,
                defaults={'name': name, 'display_order': position}
            )
            categories[name] = category

        created_items = []
        for item_data in MENU_ITEMS:
            item, created = MenuItem.objects.get_or_create(
                name=item_data['name'],
                defaults={
                    'category': categories[item_data['category']],
                    'price': Decimal(item_data['price']),
                    'preparation_time': item_data['preparation_time'],
                }
            )
            if created:
                created_items.append(item)
                self.stdout.write(f"Created: {item.name} - ₹{item.price}")
            else:
                self.stdout.write(f"Already exists: {item.name}")

        RestaurantSettings(gst_rate=options['gst']).save()

        self.stdout.write(
            self.style.SUCCESS(f'\nTotal new menu items created: {len(created_items)}')
        )
        self.stdout.write(f"GST rate set to {options['gst']}%")

        self.stdout.write("\nAll menu items in database:")
        self.stdout.write("-" * 50)
        for item in MenuItem.objects.select_related('category').order_by('name'):
            self.stdout.write(
                f"ID: {item.id:2d} | {item.name:22s} | {item.category.name:12s} | ₹{item.price:8.2f}"
            )
