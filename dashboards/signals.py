from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from billing.models import Bill
from orders.models import Order
from tables.models import Table
from .broadcast import broadcast_change, collection_for_model, serialize_document


def _publish_upsert(model, pk):
    collection = collection_for_model(model)
    # Re-read after commit so the document reflects every write of the transaction
    instance = model.objects.filter(pk=pk).first()
    if instance is None:
        return
    broadcast_change(collection, 'upsert', serialize_document(collection, instance))


@receiver(post_save, sender=Table)
@receiver(post_save, sender=Order)
@receiver(post_save, sender=Bill)
def handle_document_saved(sender, instance, created, **kwargs):
    pk = instance.pk
    transaction.on_commit(lambda: _publish_upsert(sender, pk))


@receiver(post_delete, sender=Table)
@receiver(post_delete, sender=Order)
@receiver(post_delete, sender=Bill)
def handle_document_deleted(sender, instance, **kwargs):
    collection = collection_for_model(sender)
    document = {'id': instance.pk}
    transaction.on_commit(lambda: broadcast_change(collection, 'delete', document))
