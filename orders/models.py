from django.db import models
from tables.models import Table


class Order(models.Model):
	STATUS_PENDING = 'pending'
	STATUS_PREPARING = 'preparing'
	STATUS_READY = 'ready'
	STATUS_SERVED = 'served'
	STATUS_CHOICES = [
		(STATUS_PENDING, 'Pending'),
		(STATUS_PREPARING, 'Preparing'),
		(STATUS_READY, 'Ready'),
		(STATUS_SERVED, 'Served'),
	]

	table = models.ForeignKey(Table, on_delete=models.SET_NULL, null=True, related_name='orders')
	table_number = models.PositiveIntegerField()
	guest_name = models.CharField(max_length=100)
	session_id = models.UUIDField(db_index=True)
	waiter_id = models.CharField(max_length=128, null=True, blank=True)
	# Snapshot of the menu at order time: [{id, name, price, quantity, notes, category}]
	items = models.JSONField(default=list)
	status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
	total_amount = models.DecimalField(max_digits=10, decimal_places=2)
	notes = models.TextField(blank=True, default='')
	created_at = models.DateTimeField()
	updated_at = models.DateTimeField()
	served_at = models.DateTimeField(null=True, blank=True)

	class Meta:
		ordering = ['created_at', 'id']
		indexes = [
			models.Index(fields=['table', 'session_id'], name='order_table_session_idx'),
			models.Index(fields=['status'], name='order_status_idx'),
		]

	def __str__(self):
		return f"Order {self.id} for Table {self.table_number} ({self.status})"
