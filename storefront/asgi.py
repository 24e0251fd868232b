import os
# Daphne starts Django outside of manage.py.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "storefront.settings")

from django.core.asgi import get_asgi_application

django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter
from order.routing import websocket_urlpatterns
from order.ws_middleware import JWTAuthMiddleware

application = ProtocolTypeRouter({
    "http": django_asgi_app, # normal HTTP requests
    "websocket": JWTAuthMiddleware(URLRouter(websocket_urlpatterns)),
})
