from django.urls import path

from .views import CustomerCollectionView, CustomerDetailView, CustomerInteractionsView, InteractionDetailView
from .wiring import build_crm_services

app_name = "crm"

services = build_crm_services(using="default")

urlpatterns = [
    path("customers/", CustomerCollectionView.as_view(services=services), name="customer-list"),
    path("customers/<uuid:pk>/", CustomerDetailView.as_view(services=services), name="customer-detail"),
    path(
        "customers/<uuid:pk>/interactions/",
        CustomerInteractionsView.as_view(services=services),
        name="customer-interactions",
    ),
    path("interactions/<uuid:pk>/", InteractionDetailView.as_view(services=services), name="interaction-detail"),
]
