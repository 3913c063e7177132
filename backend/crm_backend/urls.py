# File: backend/crm_backend/urls.py
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView, TokenVerifyView

from core.views import DatabaseHealthView


def root(_r):
    return JsonResponse({
        "service": "crm-backend",
        "docs": "/api/docs/",
        "health": "/health/",
    })


urlpatterns = [
    path("admin/", admin.site.urls),
    path("health/", DatabaseHealthView.as_view(), name="health"),

    # API docs
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),

    path("api/v1/core/", include("core.urls")),
    path("api/v1/crm/", include(("crm.urls", "crm"), namespace="crm")),

    # SimpleJWT
    path("api/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("api/token/verify/", TokenVerifyView.as_view(), name="token_verify"),

    path("", root),
]
