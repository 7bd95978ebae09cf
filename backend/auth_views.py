"""
DSP DB Admin Authentication Views

JWT-Login für die Browser-Oberfläche. Die Tokens werden als HTTP-only Cookies
gesetzt und von ``backend.custom_auth.JWTAuthentication`` gelesen.

Views:
- CookieTokenObtainPairView: Login, setzt access_token / refresh_token
- CookieTokenRefreshView: neues Token-Paar aus dem refresh_token Cookie
- LogoutView: refresh_token auf die Blacklist setzen und Cookies löschen

Author: DSP Development Team
Version: 1.0.0
"""

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .custom_auth import ACCESS_TOKEN_COOKIE

logger = logging.getLogger(__name__)

REFRESH_TOKEN_COOKIE = "refresh_token"


def set_token_cookies(response, access=None, refresh=None):
    """Setzt die Token-Cookies; ``secure`` nur außerhalb von DEBUG."""
    options = {"httponly": True, "secure": not settings.DEBUG, "samesite": "Lax", "path": "/"}
    if refresh:
        response.set_cookie(
            REFRESH_TOKEN_COOKIE,
            refresh,
            max_age=settings.SIMPLE_JWT["REFRESH_TOKEN_LIFETIME"],
            **options,
        )
    if access:
        response.set_cookie(
            ACCESS_TOKEN_COOKIE,
            access,
            max_age=settings.SIMPLE_JWT["ACCESS_TOKEN_LIFETIME"],
            **options,
        )


class CookieTokenObtainPairView(TokenObtainPairView):
    """
    Login mit Benutzername und Passwort. Die Tokens landen in Cookies statt im
    Response Body.
    """

    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        if response.status_code == status.HTTP_200_OK:
            data = response.data
            set_token_cookies(response, access=data.pop("access", None), refresh=data.pop("refresh", None))
            data["detail"] = "Login successful."
            logger.info(f"Login: {request.data.get('username')}")
        return response


class CookieTokenRefreshView(TokenRefreshView):
    def post(self, request, *args, **kwargs):
        refresh_token = request.COOKIES.get(REFRESH_TOKEN_COOKIE)
        if not refresh_token:
            return Response({"detail": "Refresh token not provided"}, status=status.HTTP_400_BAD_REQUEST)

        serializer = TokenRefreshSerializer(data={"refresh": refresh_token})
        try:
            serializer.is_valid(raise_exception=True)
        except TokenError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        response = Response(status=status.HTTP_200_OK)
        set_token_cookies(response, access=data.get("access"), refresh=data.get("refresh"))
        return response


class LogoutView(APIView):
    """
    Setzt den refresh_token auf die Blacklist und löscht beide Cookies.
    Antwortet immer mit 205 Reset Content.
    """

    permission_classes = [IsAuthenticated]

    def post(self, request):
        refresh_token = request.COOKIES.get(REFRESH_TOKEN_COOKIE)
        if refresh_token:
            try:
                RefreshToken(refresh_token).blacklist()
            except TokenError as e:
                logger.info(f"Logout mit ungültigem Refresh Token: {e}")

        response = Response({"detail": "Successfully logged out."}, status=status.HTTP_205_RESET_CONTENT)
        response.delete_cookie(REFRESH_TOKEN_COOKIE)
        response.delete_cookie(ACCESS_TOKEN_COOKIE)
        return response
