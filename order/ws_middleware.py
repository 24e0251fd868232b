from channels.db import database_sync_to_async
from django.conf import settings
import jwt

from storefront.conf import storefront_setting


# Take the JWT from the access_token cookie, verify it, attach the user to the socket
@database_sync_to_async
def get_user(user_id):
    from django.contrib.auth import get_user_model
    from django.contrib.auth.models import AnonymousUser

    User = get_user_model()
    try:
        return User.objects.get(id=user_id)
    except User.DoesNotExist:
        return AnonymousUser()


def token_from_headers(headers):
    prefix = storefront_setting("ACCESS_COOKIE") + "="
    cookies = headers.get(b"cookie", b"").decode()
    for part in cookies.split(";"):
        part = part.strip()
        if part.startswith(prefix):
            return part[len(prefix):]
    return None


class JWTAuthMiddleware:
    def __init__(self, inner):
        self.inner = inner

    async def __call__(self, scope, receive, send):
        from django.contrib.auth.models import AnonymousUser

        token = token_from_headers(dict(scope.get("headers", [])))
        scope["user"] = AnonymousUser()

        if token:
            signing_key = settings.SIMPLE_JWT.get("SIGNING_KEY", settings.SECRET_KEY)
            try:
                payload = jwt.decode(token, signing_key, algorithms=["HS256"])
            except jwt.PyJWTError:
                payload = None
            if payload and "user_id" in payload:
                scope["user"] = await get_user(payload["user_id"])

        return await self.inner(scope, receive, send)
