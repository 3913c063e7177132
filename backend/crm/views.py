import logging

from django.urls import reverse
from rest_framework import status
from rest_framework.views import APIView

from common.etag import decode
from common.responses import failure_response, no_content_response, outcome_response

from .serializers import (
    CustomerSearchSerializer, CustomerSerializer, CustomerWriteSerializer,
    InteractionSerializer, InteractionWriteSerializer,
)

logger = logging.getLogger(__name__)

SEARCH_FILTERS = ("status", "source", "industry", "keyword")


class CrmAPIView(APIView):
    """
    Base for the CRM endpoints. `services` (see crm.wiring) is injected through
    `as_view(services=...)`; views only validate input and map outcomes.
    """
    services = None

    @staticmethod
    def expected_version(request):
        # An unparseable If-Match counts as no precondition at all.
        return decode(request.headers.get("If-Match"))

    @staticmethod
    def validated(serializer_class, request, partial=False):
        serializer = serializer_class(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data


# ---------- Customers ----------
class CustomerCollectionView(CrmAPIView):
    """
    GET  /customers/?status=&source=&industry=&keyword=&page=&page_size=&order=
    POST /customers/
    """
    def get(self, request):
        params = CustomerSearchSerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        query = params.validated_data
        filters = {k: query[k] for k in SEARCH_FILTERS if query.get(k)}

        outcome = self.services.customers.search(
            filters, page=query["page"], page_size=query.get("page_size"), order=query["order"],
        )
        return outcome_response(outcome, lambda page: {
            "items": CustomerSerializer(page.items, many=True).data,
            "total": page.total,
            "page": page.page,
            "page_size": page.page_size,
        })

    def post(self, request):
        data = self.validated(CustomerWriteSerializer, request)
        outcome = self.services.customers.create(data)
        if not outcome.ok:
            return failure_response(outcome)
        location = request.build_absolute_uri(reverse("crm:customer-detail", kwargs={"pk": outcome.value.pk}))
        return outcome_response(
            outcome, lambda c: CustomerSerializer(c).data,
            status_code=status.HTTP_201_CREATED, headers={"Location": location},
        )


class CustomerDetailView(CrmAPIView):
    """GET / PUT / PATCH / DELETE /customers/<id>/ (writes honour If-Match)."""

    def get(self, request, pk):
        outcome = self.services.customers.get_by_id(pk)
        return outcome_response(outcome, lambda c: CustomerSerializer(c).data)

    def put(self, request, pk):
        return self._update(request, pk, partial=False)

    def patch(self, request, pk):
        return self._update(request, pk, partial=True)

    def _update(self, request, pk, partial):
        data = self.validated(CustomerWriteSerializer, request, partial=partial)
        outcome = self.services.customers.update(pk, data, expected_version=self.expected_version(request))
        return outcome_response(outcome, lambda c: CustomerSerializer(c).data)

    def delete(self, request, pk):
        outcome = self.services.customers.soft_delete(pk, expected_version=self.expected_version(request))
        if not outcome.ok:
            return failure_response(outcome)
        return no_content_response(outcome)


# ---------- Interactions ----------
class CustomerInteractionsView(CrmAPIView):
    """
    GET  /customers/<id>/interactions/   timeline, newest first
    POST /customers/<id>/interactions/
    """
    def get(self, request, pk):
        outcome = self.services.interactions.list_by_customer(pk)
        return outcome_response(outcome, lambda items: InteractionSerializer(items, many=True).data)

    def post(self, request, pk):
        data = self.validated(InteractionWriteSerializer, request)
        outcome = self.services.interactions.create(pk, data)
        if not outcome.ok:
            return failure_response(outcome)
        location = request.build_absolute_uri(reverse("crm:interaction-detail", kwargs={"pk": outcome.value.pk}))
        return outcome_response(
            outcome, lambda i: InteractionSerializer(i).data,
            status_code=status.HTTP_201_CREATED, headers={"Location": location},
        )


class InteractionDetailView(CrmAPIView):
    def get(self, request, pk):
        outcome = self.services.interactions.get_by_id(pk)
        return outcome_response(outcome, lambda i: InteractionSerializer(i).data)

    def put(self, request, pk):
        return self._update(request, pk, partial=False)

    def patch(self, request, pk):
        return self._update(request, pk, partial=True)

    def _update(self, request, pk, partial):
        data = self.validated(InteractionWriteSerializer, request, partial=partial)
        outcome = self.services.interactions.update(pk, data, expected_version=self.expected_version(request))
        return outcome_response(outcome, lambda i: InteractionSerializer(i).data)

    def delete(self, request, pk):
        outcome = self.services.interactions.delete(pk, expected_version=self.expected_version(request))
        if not outcome.ok:
            return failure_response(outcome)
        return no_content_response(outcome)
