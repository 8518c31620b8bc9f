from django.urls import re_path

from . import consumers

websocket_urlpatterns = [
    re_path(r'ws/live/(?P<collection>\w+)/$', consumers.LiveCollectionConsumer.as_asgi()),
]
