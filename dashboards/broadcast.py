import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from billing.models import Bill
from billing.serializers import BillSerializer
from orders.models import Order
from orders.serializers import OrderSerializer
from tables.models import Table
from tables.serializers import TableSerializer

logger = logging.getLogger(__name__)

COLLECTIONS = {
    'tables': (Table, TableSerializer),
    'orders': (Order, OrderSerializer),
    'bills': (Bill, BillSerializer),
}

# query parameter -> document field, per collection
FILTER_FIELDS = {
    'tables': {'status': 'status'},
    'orders': {'status': 'status', 'table_id': 'table', 'session_id': 'session_id'},
    'bills': {'session_id': 'session_id', 'table_number': 'table_number'},
}


def group_name(collection):
    return f'live_{collection}'


def collection_for_model(model):
    for name, (model_class, _) in COLLECTIONS.items():
        if model is model_class:
            return name
    return None


def serialize_document(collection, instance):
    _, serializer_class = COLLECTIONS[collection]
    return dict(serializer_class(instance).data)


def load_documents(collection):
    model, _ = COLLECTIONS[collection]
    queryset = model.objects.all()
    if collection == 'bills':
        queryset = queryset.prefetch_related('orders')
    return [serialize_document(collection, instance) for instance in queryset]


def matches_filters(collection, document, filters):
    fields = FILTER_FIELDS.get(collection, {})
    for param, value in filters.items():
        field = fields.get(param)
        if field is None:
            continue
        if str(document.get(field)) != str(value):
            return False
    return True


def broadcast_change(collection, op, document):
    """Push one committed write to every subscriber of the collection"""
    channel_layer = get_channel_layer()
    if not channel_layer:
        logger.warning("No channel layer available for live updates")
        return

    try:
        async_to_sync(channel_layer.group_send)(
            group_name(collection),
            {
                'type': 'collection.change',
                'collection': collection,
                'op': op,
                'document': document,
            }
        )
        logger.debug(f"Broadcast {op} on {collection} {document.get('id')}")
    except Exception as e:
        logger.error(f"Error broadcasting {op} on {collection}: {e}")
