from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models.functions import Lower


class Category(models.Model):
	name = models.CharField(max_length=50)
	display_order = models.PositiveIntegerField(default=0)

	class Meta:
		ordering = ['display_order', 'name']
		verbose_name_plural = 'categories'
		constraints = [
			models.UniqueConstraint(Lower('name'), name='menu_category_name_ci_unique'),
		]

	def __str__(self):
		return self.name


class MenuItem(models.Model):
	name = models.CharField(max_length=100)
	description = models.TextField(blank=True, default='')
	price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
	category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='items')
	is_available = models.BooleanField(default=True)
	preparation_time = models.PositiveIntegerField(default=0, help_text='Minutes')
	allergens = models.JSONField(default=list, blank=True)

	class Meta:
		ordering = ['category__display_order', 'name']

	def __str__(self):
		return self.name


class RestaurantSettings(models.Model):
	"""Singleton row holding restaurant wide settings"""
	gst_rate = models.DecimalField(max_digits=5, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		verbose_name_plural = 'restaurant settings'

	def save(self, *args, **kwargs):
		self.pk = 1
		super().save(*args, **kwargs)

	@classmethod
	def current_gst_rate(cls):
		row = cls.objects.filter(pk=1).first()
		if row is None:
			return Decimal(settings.DEFAULT_GST_RATE)
		return row.gst_rate

	def __str__(self):
		return f"GST {self.gst_rate}%"
