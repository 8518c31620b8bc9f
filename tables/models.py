from django.db import models
from django.db.models import Q


class Table(models.Model):
	STATUS_AVAILABLE = 'available'
	STATUS_OCCUPIED = 'occupied'
	STATUS_RESERVED = 'reserved'
	STATUS_CHOICES = [
		(STATUS_AVAILABLE, 'Available'),
		(STATUS_OCCUPIED, 'Occupied'),
		(STATUS_RESERVED, 'Reserved'),
	]

	number = models.PositiveIntegerField(unique=True)
	capacity = models.PositiveIntegerField(default=2)
	status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_AVAILABLE)
	guest_name = models.CharField(max_length=100, null=True, blank=True)
	guest_phone = models.CharField(max_length=30, null=True, blank=True)
	party_size = models.PositiveIntegerField(null=True, blank=True)
	occupied_at = models.DateTimeField(null=True, blank=True)
	waiter_id = models.CharField(max_length=128, null=True, blank=True)
	session_id = models.UUIDField(null=True, blank=True, unique=True)
	version = models.PositiveIntegerField(default=0)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ['number']
		constraints = [
			models.CheckConstraint(
				condition=(
					Q(status='occupied', session_id__isnull=False)
					| (~Q(status='occupied') & Q(session_id__isnull=True))
				),
				name='table_session_iff_occupied',
			),
		]

	@property
	def is_occupied(self):
		return self.status == self.STATUS_OCCUPIED

	def __str__(self):
		return f"Table {self.number} ({self.status})"


class VoidedSession(models.Model):
	"""Audit trail for occupied tables freed without a bill"""
	table = models.ForeignKey(Table, on_delete=models.SET_NULL, null=True, related_name='voided_sessions')
	table_number = models.PositiveIntegerField()
	session_id = models.UUIDField(unique=True)
	guest_name = models.CharField(max_length=100, blank=True, default='')
	released_by = models.CharField(max_length=128, null=True, blank=True)
	reason = models.CharField(max_length=200, blank=True, default='')
	released_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['-released_at']

	def __str__(self):
		return f"Voided session {self.session_id} (Table {self.table_number})"
