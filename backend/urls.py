"""
URL configuration for the dsp_dbadmin project.

Routes:
- /admin/: Django admin
- /api/token/: JWT login, refresh and logout (HTTP-only cookies)
- /api/db-admin/: Routines management and database tools

Author: DSP Development Team
Version: 1.0.0
"""

from django.contrib import admin
from django.urls import path, include

from .auth_views import CookieTokenObtainPairView, CookieTokenRefreshView, LogoutView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/token/", CookieTokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/token/refresh/", CookieTokenRefreshView.as_view(), name="token_refresh"),
    path("api/token/logout/", LogoutView.as_view(), name="token_logout"),
    path("api/db-admin/", include("db_admin.urls")),
]
