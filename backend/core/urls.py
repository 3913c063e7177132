from django.urls import path

from .views import healthz, DatabaseHealthView

urlpatterns = [
    path('healthz/', healthz, name="core-healthz"),
    path('deep-health/', DatabaseHealthView.as_view(), name="core-deep-health"),
]
