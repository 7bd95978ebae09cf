from typing import Optional, TypeVar

from django.contrib.auth.models import AbstractBaseUser
from rest_framework import HTTP_HEADER_ENCODING
from rest_framework.request import Request

from rest_framework_simplejwt.exceptions import InvalidToken
from rest_framework_simplejwt.models import TokenUser
from rest_framework_simplejwt.tokens import Token
from rest_framework_simplejwt.authentication import JWTAuthentication as original_auth

AuthUser = TypeVar("AuthUser", AbstractBaseUser, TokenUser)

ACCESS_TOKEN_COOKIE = "access_token"


class JWTAuthentication(original_auth):
    """
    JWT aus dem Cookie lesen (Browser-Oberfläche), sonst wie gewohnt aus dem
    Authorization-Header (CLI / API-Clients). Ein abgelaufenes Cookie verdeckt
    keinen gültigen Header.
    """

    www_authenticate_realm = "api"
    media_type = "application/json"

    def authenticate(self, request: Request) -> Optional[tuple[AuthUser, Token]]:
        cookie = request.COOKIES.get(ACCESS_TOKEN_COOKIE) or None
        if cookie is None:
            return super().authenticate(request)

        raw_token = cookie.encode(HTTP_HEADER_ENCODING)
        try:
            validated_token = self.get_validated_token(raw_token)
        except InvalidToken:
            if self.get_header(request) is None:
                raise
            return super().authenticate(request)

        return self.get_user(validated_token), validated_token
