# user/views.py
import logging

from django.conf import settings
from django.contrib.auth import authenticate
from rest_framework import permissions, status
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.views import APIView
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import RefreshToken

from storefront.conf import storefront_setting
from storefront.responses import success
from .serializers import RegisterSerializer, LoginSerializer, UserSerializer, ProfileSerializer

logger = logging.getLogger(__name__)


def _issue_tokens(response, user):
    refresh = RefreshToken.for_user(user)
    access_token = str(refresh.access_token)

    response.set_cookie(
        key=storefront_setting("ACCESS_COOKIE"),
        value=access_token,
        httponly=True,
        secure=not settings.DEBUG,
        samesite="Lax",
        max_age=int(jwt_settings.ACCESS_TOKEN_LIFETIME.total_seconds()),
    )
    response.set_cookie(
        key=storefront_setting("REFRESH_COOKIE"),
        value=str(refresh),
        httponly=True,
        secure=not settings.DEBUG,
        samesite="Lax",
        max_age=int(jwt_settings.REFRESH_TOKEN_LIFETIME.total_seconds()),
    )
    return access_token


class RegisterView(APIView):
    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("Registered user %s", user.email)

        response = success(
            {"user": UserSerializer(user).data},
            message="Registration successful",
            status_code=status.HTTP_201_CREATED,
        )
        response.data["data"]["token"] = _issue_tokens(response, user)
        return response


class LoginView(APIView):
    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = authenticate(
            request,
            email=serializer.validated_data["email"],
            password=serializer.validated_data["password"],
        )
        if user is None:
            raise AuthenticationFailed("Invalid email or password")

        response = success({"user": UserSerializer(user).data}, message="Login successful")
        response.data["data"]["token"] = _issue_tokens(response, user)
        return response

    def get_authenticate_header(self, request):
        # keeps bad credentials a 401 although no authenticator runs here
        return 'Bearer realm="api"'


class LogoutView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        response = success(message="Logged out")
        response.delete_cookie(storefront_setting("ACCESS_COOKIE"))
        response.delete_cookie(storefront_setting("REFRESH_COOKIE"))
        return response


class ProfileView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return success(ProfileSerializer(request.user).data)

    def patch(self, request):
        serializer = ProfileSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return success(serializer.data, message="Profile updated")
