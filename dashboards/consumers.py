import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.conf import settings

from .broadcast import COLLECTIONS, group_name, load_documents, matches_filters

logger = logging.getLogger(__name__)

CLOSE_UNAUTHORIZED = 4401
CLOSE_UNKNOWN_COLLECTION = 4404


class LiveCollectionConsumer(AsyncJsonWebsocketConsumer):
    """
    Live view of one collection (tables, orders or bills).

    Sends a ``snapshot`` of the matching documents on connect, then a
    ``change`` message for every committed write that matches the filter.
    A document that stops matching is announced once with op ``remove``.
    Filters come from the query string, e.g. ``?status=ready``.
    """

    async def connect(self):
        self.collection = self.scope['url_route']['kwargs'].get('collection')
        self.group_name = None
        self.visible_ids = set()

        if self.collection not in COLLECTIONS:
            logger.warning(f"Live subscription to unknown collection {self.collection}")
            await self.close(code=CLOSE_UNKNOWN_COLLECTION)
            return

        params = {k: v[-1] for k, v in parse_qs(self.scope.get('query_string', b'').decode()).items()}
        if params.pop('api_key', None) != getattr(settings, 'API_KEY', 'demo'):
            await self.close(code=CLOSE_UNAUTHORIZED)
            return
        self.filters = params

        self.group_name = group_name(self.collection)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        await self.send_snapshot()
        logger.info(f"Live subscription opened: {self.collection} {self.filters}")

    async def disconnect(self, close_code):
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
            logger.info(f"Live subscription closed: {self.collection}, code={close_code}")

    async def send_snapshot(self):
        documents = await database_sync_to_async(load_documents)(self.collection)
        documents = [d for d in documents if matches_filters(self.collection, d, self.filters)]
        self.visible_ids = {d['id'] for d in documents}
        await self.send_json({
            'type': 'snapshot',
            'collection': self.collection,
            'documents': documents,
        })

    async def receive_json(self, content, **kwargs):
        if content.get('action') == 'refresh':
            await self.send_snapshot()
        elif content.get('action') == 'ping':
            await self.send_json({'type': 'pong'})
        else:
            await self.send_json({'type': 'error', 'message': f"Unknown action: {content.get('action')}"})

    async def collection_change(self, event):
        document = event['document']
        op = event['op']
        doc_id = document.get('id')

        if op == 'delete':
            self.visible_ids.discard(doc_id)
        elif matches_filters(self.collection, document, self.filters):
            self.visible_ids.add(doc_id)
        elif doc_id in self.visible_ids:
            # Document left the filtered set
            self.visible_ids.discard(doc_id)
            op = 'remove'
        else:
            return

        await self.send_json({
            'type': 'change',
            'collection': event['collection'],
            'op': op,
            'document': document,
        })
