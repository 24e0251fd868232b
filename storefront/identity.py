# storefront/identity.py
# Every service takes the acting user explicitly instead of reading the request.
from rest_framework.exceptions import NotAuthenticated, PermissionDenied


def require_user(user):
    if user is None or not getattr(user, "is_authenticated", False):
        raise NotAuthenticated("You need to sign in.")
    return user


def require_admin(user):
    require_user(user)
    if not user.is_staff:
        raise PermissionDenied("You do not have permission to perform this action.")
    return user
