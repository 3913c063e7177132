"""
Customer and interaction stores.

Each public method is one atomic unit (see `common.transactions.run_atomic`)
and returns an `Outcome`; expected failures (not found, duplicate name,
version conflict, validation) are values, not exceptions. Every write goes
through the concurrency guard.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import timezone as dt_timezone
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from common.concurrency import check_and_apply, conditional_delete, conditional_update
from common.etag import encode
from common.outcomes import ErrorKind, Outcome, not_found
from common.transactions import checkpoint, run_atomic

from .filters import CustomerFilter
from .models import Customer, Interaction

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = (
    "company_name", "contact_name", "wechat", "phone", "email",
    "industry", "source", "status", "tags", "score",
)
INTERACTION_FIELDS = (
    "happened_at", "channel", "stage", "title", "summary",
    "raw_content", "next_action", "attachments",
)
SORT_FIELDS = ("last_interaction_at", "created_at", "updated_at")
DEFAULT_ORDER = "-last_interaction_at"


class NameTaken(Exception):
    pass


@dataclass(frozen=True)
class Page:
    items: List[Customer]
    total: int
    page: int
    page_size: int


def _as_uuid(value) -> Optional[uuid.UUID]:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        return None


def _utc(instant):
    if timezone.is_naive(instant):
        return timezone.make_aware(instant, dt_timezone.utc)
    return instant.astimezone(dt_timezone.utc)


def _pick(fields: Dict[str, Any], names) -> Dict[str, Any]:
    return {k: fields[k] for k in names if k in fields}


def _duplicate(company_name: str, contact_name: str) -> Outcome:
    return Outcome.failure(
        ErrorKind.DUPLICATE_NAME,
        f"An active customer named {company_name} / {contact_name} already exists",
    )


class CustomerStore:
    entity = "Customer"

    def __init__(self, using: str = "default"):
        self.using = using

    def _objects(self):
        return Customer.objects.using(self.using)

    def _active(self):
        return self._objects().filter(is_deleted=False)

    def _name_taken(self, company_name, contact_name, exclude=None) -> bool:
        qs = self._active().filter(company_name=company_name, contact_name=contact_name)
        if exclude is not None:
            qs = qs.exclude(pk=exclude)
        return qs.exists()

    # ---- reads ----
    def search(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        order: Optional[str] = None,
        cancel=None,
    ) -> Outcome:
        if page_size is None:
            page_size = settings.CRM_DEFAULT_PAGE_SIZE
        max_size = settings.CRM_MAX_PAGE_SIZE
        if page < 1:
            return Outcome.failure(ErrorKind.VALIDATION_FAILED, "page must be >= 1")
        if page_size < 1 or page_size > max_size:
            return Outcome.failure(ErrorKind.VALIDATION_FAILED, f"page_size must be between 1 and {max_size}")

        order = order or DEFAULT_ORDER
        descending = order.startswith("-")
        field = order[1:] if descending else order
        if field not in SORT_FIELDS:
            return Outcome.failure(ErrorKind.VALIDATION_FAILED, f"Cannot order by {field}")

        filterset = CustomerFilter(data=filters or {}, queryset=self._active())
        if not filterset.is_valid():
            return Outcome.failure(ErrorKind.VALIDATION_FAILED, filterset.errors.as_text())

        key = F(field).desc(nulls_last=True) if descending else F(field).asc(nulls_last=True)
        qs = filterset.qs.order_by(key, "id")

        def unit():
            total = qs.count()
            start = (page - 1) * page_size
            items = list(qs[start:start + page_size])
            return Outcome.success(Page(items=items, total=total, page=page, page_size=page_size))

        return run_atomic(unit, using=self.using, cancel=cancel, label="customer.search")

    def get_by_id(self, customer_id, cancel=None) -> Outcome:
        pk = _as_uuid(customer_id)
        if pk is None:
            return not_found(self.entity)

        def unit():
            customer = self._active().filter(pk=pk).first()
            if customer is None:
                return not_found(self.entity)
            return Outcome.success(customer, version=encode(customer.updated_at))

        return run_atomic(unit, using=self.using, cancel=cancel, label="customer.get")

    # ---- writes ----
    def create(self, fields: Dict[str, Any], cancel=None) -> Outcome:
        data = _pick(fields, CUSTOMER_FIELDS)
        company, contact = data["company_name"], data["contact_name"]

        def unit():
            if self._name_taken(company, contact):
                raise NameTaken()
            checkpoint(cancel)
            now = timezone.now()
            try:
                with transaction.atomic(using=self.using):
                    customer = self._objects().create(created_at=now, updated_at=now, **data)
            except IntegrityError:
                if self._name_taken(company, contact):
                    raise NameTaken()
                raise
            logger.info("Customer %s created (%s / %s)", customer.pk, company, contact)
            return Outcome.success(customer, version=encode(customer.updated_at))

        try:
            return run_atomic(unit, using=self.using, cancel=cancel, label="customer.create")
        except NameTaken:
            logger.info("Duplicate customer name rejected: %s / %s", company, contact)
            return _duplicate(company, contact)

    def update(self, customer_id, fields: Dict[str, Any], expected_version=None, cancel=None) -> Outcome:
        pk = _as_uuid(customer_id)
        if pk is None:
            return not_found(self.entity)
        data = _pick(fields, CUSTOMER_FIELDS)

        def unit():
            customer = self._active().select_for_update().filter(pk=pk).first()
            if customer is None:
                return not_found(self.entity)
            company = data.get("company_name", customer.company_name)
            contact = data.get("contact_name", customer.contact_name)
            renamed = (company, contact) != (customer.company_name, customer.contact_name)
            if renamed and self._name_taken(company, contact, exclude=pk):
                raise NameTaken()

            def mutation():
                checkpoint(cancel)
                try:
                    with transaction.atomic(using=self.using):
                        conditional_update(
                            self._active(), pk, customer.updated_at,
                            updated_at=customer.next_version(), **data,
                        )
                except IntegrityError:
                    if self._name_taken(company, contact, exclude=pk):
                        raise NameTaken()
                    raise
                return self._objects().get(pk=pk)

            outcome = check_and_apply(
                customer.updated_at, expected_version, mutation,
                entity=self.entity, entity_id=pk,
            )
            if outcome.ok:
                logger.info("Customer %s updated -> %s", pk, outcome.version)
            return outcome

        try:
            return run_atomic(unit, using=self.using, cancel=cancel, label="customer.update")
        except NameTaken:
            return _duplicate(data.get("company_name"), data.get("contact_name"))

    def soft_delete(self, customer_id, expected_version=None, cancel=None) -> Outcome:
        pk = _as_uuid(customer_id)
        if pk is None:
            return not_found(self.entity)

        def unit():
            customer = self._active().select_for_update().filter(pk=pk).first()
            if customer is None:
                return not_found(self.entity)

            def mutation():
                checkpoint(cancel)
                # interactions are left in place
                conditional_update(
                    self._active(), pk, customer.updated_at,
                    is_deleted=True, updated_at=customer.next_version(),
                )
                return None

            outcome = check_and_apply(
                customer.updated_at, expected_version, mutation,
                entity=self.entity, entity_id=pk,
            )
            if outcome.ok:
                logger.info("Customer %s soft-deleted", pk)
            return outcome

        return run_atomic(unit, using=self.using, cancel=cancel, label="customer.delete")


class InteractionStore:
    entity = "Interaction"

    def __init__(self, coordinator, using: str = "default"):
        self.coordinator = coordinator
        self.using = using

    def _objects(self):
        return Interaction.objects.using(self.using)

    @staticmethod
    def _clean(fields: Dict[str, Any]) -> Dict[str, Any]:
        data = _pick(fields, INTERACTION_FIELDS)
        if data.get("happened_at") is not None:
            data["happened_at"] = _utc(data["happened_at"])
        if "attachments" in data:
            data["attachments"] = [dict(a) for a in (data["attachments"] or [])]
        return data

    def list_by_customer(self, customer_id, cancel=None) -> Outcome:
        pk = _as_uuid(customer_id)
        if pk is None:
            return not_found("Customer")

        def unit():
            if not Customer.objects.using(self.using).filter(pk=pk, is_deleted=False).exists():
                return not_found("Customer")
            items = list(
                self._objects().filter(customer_id=pk)
                .order_by("-happened_at", "-created_at", "id")
            )
            return Outcome.success(items)

        return run_atomic(unit, using=self.using, cancel=cancel, label="interaction.list")

    def get_by_id(self, interaction_id, cancel=None) -> Outcome:
        pk = _as_uuid(interaction_id)
        if pk is None:
            return not_found(self.entity)

        def unit():
            interaction = self._objects().filter(pk=pk).first()
            if interaction is None:
                return not_found(self.entity)
            return Outcome.success(interaction, version=encode(interaction.updated_at))

        return run_atomic(unit, using=self.using, cancel=cancel, label="interaction.get")

    def _insert(self, customer: Customer, data: Dict[str, Any]) -> Interaction:
        now = timezone.now()
        return self._objects().create(customer=customer, created_at=now, updated_at=now, **data)

    def _remove(self, interaction: Interaction) -> None:
        conditional_delete(self._objects(), interaction.pk, interaction.updated_at)

    def create(self, customer_id, fields: Dict[str, Any], cancel=None) -> Outcome:
        pk = _as_uuid(customer_id)
        if pk is None:
            return not_found("Customer")
        data = self._clean(fields)
        return self.coordinator.create_interaction(
            pk, lambda customer: self._insert(customer, data), cancel=cancel,
        )

    def update(self, interaction_id, fields: Dict[str, Any], expected_version=None, cancel=None) -> Outcome:
        pk = _as_uuid(interaction_id)
        if pk is None:
            return not_found(self.entity)
        data = self._clean(fields)
        recompute = settings.CRM_RECOMPUTE_ON_EVENT_TIME_EDIT and "happened_at" in data

        def unit():
            if recompute:
                owner_id = self._objects().filter(pk=pk).values_list("customer_id", flat=True).first()
                if owner_id is not None:
                    self.coordinator.lock_customer(owner_id, active_only=False)
            interaction = self._objects().select_for_update().filter(pk=pk).first()
            if interaction is None:
                return not_found(self.entity)
            moved = recompute and data["happened_at"] != interaction.happened_at

            def mutation():
                checkpoint(cancel)
                conditional_update(
                    self._objects(), pk, interaction.updated_at,
                    updated_at=interaction.next_version(), **data,
                )
                if moved:
                    self.coordinator.refresh_last_interaction(interaction.customer_id)
                return self._objects().get(pk=pk)

            outcome = check_and_apply(
                interaction.updated_at, expected_version, mutation,
                entity=self.entity, entity_id=pk,
            )
            if outcome.ok:
                logger.info("Interaction %s updated -> %s", pk, outcome.version)
            return outcome

        return run_atomic(unit, using=self.using, cancel=cancel, label="interaction.update")

    def delete(self, interaction_id, expected_version=None, cancel=None) -> Outcome:
        pk = _as_uuid(interaction_id)
        if pk is None:
            return not_found(self.entity)
        return self.coordinator.delete_interaction(pk, expected_version, self._remove, cancel=cancel)
