from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from .models import Category, MenuItem, RestaurantSettings


class RestaurantSettingsTests(TestCase):
    """GST rate lookup"""

    @override_settings(DEFAULT_GST_RATE=Decimal('12'))
    def test_falls_back_to_default(self):
        self.assertEqual(RestaurantSettings.current_gst_rate(), Decimal('12'))

    def test_single_row(self):
        RestaurantSettings(gst_rate=Decimal('5')).save()
        RestaurantSettings(gst_rate=Decimal('18')).save()

        self.assertEqual(RestaurantSettings.objects.count(), 1)
        self.assertEqual(RestaurantSettings.current_gst_rate(), Decimal('18.00'))


class CategoryTests(TestCase):
    def test_names_unique_ignoring_case(self):
        Category.objects.create(name='Starters')
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Category.objects.create(name='starters')


class SeedMenuCommandTests(TestCase):
    """seed_menu management command"""

    def test_seed_menu(self):
        out = StringIO()
        call_command('seed_menu', '--gst', '18', stdout=out)

        self.assertTrue(MenuItem.objects.filter(name='Paneer Tikka').exists())
        self.assertEqual(RestaurantSettings.current_gst_rate(), Decimal('18.00'))
        self.assertIn('GST rate set to 18%', out.getvalue())

    def test_seed_menu_is_idempotent(self):
        call_command('seed_menu', stdout=StringIO())
        count = MenuItem.objects.count()
        call_command('seed_menu', stdout=StringIO())
        self.assertEqual(MenuItem.objects.count(), count)


class MenuAPITests(APITestCase):
    """Menu endpoints"""

    def setUp(self):
        starters = Category.objects.create(name='Starters', display_order=0)
        breads = Category.objects.create(name='Breads', display_order=1)
        MenuItem.objects.create(name='Paneer Tikka', price=Decimal('220.00'), category=starters)
        MenuItem.objects.create(name='Butter Naan', price=Decimal('60.00'), category=breads)
        MenuItem.objects.create(name='Kulcha', price=Decimal('70.00'), category=breads, is_available=False)
        self.client.defaults['HTTP_X_API_KEY'] = 'demo'

    def test_menu_lists_available_items(self):
        response = self.client.get(reverse('menu_list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual({item['name'] for item in response.data}, {'Paneer Tikka', 'Butter Naan'})

    def test_menu_filter_by_category(self):
        response = self.client.get(reverse('menu_list'), {'category': 'BREADS'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['name'] for item in response.data], ['Butter Naan'])
        self.assertEqual(response.data[0]['category'], 'Breads')

    def test_categories(self):
        response = self.client.get(reverse('category_list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in response.data], ['Starters', 'Breads'])

    def test_menu_requires_api_key(self):
        del self.client.defaults['HTTP_X_API_KEY']
        response = self.client.get(reverse('menu_list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
