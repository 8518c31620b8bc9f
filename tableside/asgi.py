"""
ASGI config for the tableside project.

HTTP goes to Django, websockets to the live collection consumers.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'tableside.settings')

# Populate the app registry before importing consumers that touch models
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402

import dashboards.routing  # noqa: E402

application = ProtocolTypeRouter(
    {
        'http': django_asgi_app,
        'websocket': URLRouter(dashboards.routing.websocket_urlpatterns),
    }
)
