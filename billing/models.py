from django.db import models
from orders.models import Order
from tables.models import Table


class Bill(models.Model):
	STATUS_CHOICES = [
		('pending', 'Pending'),
		('paid', 'Paid'),
	]
	PAYMENT_METHOD_CHOICES = [
		('cash', 'Cash'),
		('card', 'Card'),
	]

	table = models.ForeignKey(Table, on_delete=models.SET_NULL, null=True, related_name='bills')
	table_number = models.PositiveIntegerField()
	guest_name = models.CharField(max_length=100)
	session_id = models.UUIDField(unique=True)  # one bill per seating
	orders = models.ManyToManyField(Order, related_name='bills')
	# Flattened order item snapshots
	items = models.JSONField(default=list)
	subtotal = models.DecimalField(max_digits=10, decimal_places=2)
	gst_rate = models.DecimalField(max_digits=5, decimal_places=2)
	tax = models.DecimalField(max_digits=10, decimal_places=2)
	total = models.DecimalField(max_digits=10, decimal_places=2)
	status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending')
	payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, null=True, blank=True)
	generated_at = models.DateTimeField()
	paid_at = models.DateTimeField(null=True, blank=True)

	class Meta:
		ordering = ['-generated_at']

	def __str__(self):
		return f"Bill {self.id} for Table {self.table_number} - {self.status}"
