from django.utils.deprecation import MiddlewareMixin

from storefront.conf import storefront_setting


class JWTAuthCookieMiddleware(MiddlewareMixin):
    """
    Browser clients keep the access token in the httponly cookie set at login.
    simplejwt only reads the Authorization header, so the cookie is copied
    into it unless the client already sent one.
    """

    def process_request(self, request):
        if "HTTP_AUTHORIZATION" in request.META:
            return
        token = request.COOKIES.get(storefront_setting("ACCESS_COOKIE"))
        if token:
            request.META["HTTP_AUTHORIZATION"] = f"Bearer {token}"
