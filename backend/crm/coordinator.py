"""
Keeps `Customer.last_interaction_at` in step with the interaction rows.

Interaction create and delete run here as one atomic unit together with the
derived-field write, so no reader ever sees one without the other. The owning
customer row is locked first, which serializes interaction writes per
customer (lock order is always customer, then interaction).
"""
import logging
from typing import Callable, Optional

from common.concurrency import StaleWrite, check_and_apply, conditional_update
from common.etag import encode
from common.outcomes import Outcome, not_found
from common.transactions import checkpoint, run_atomic

from .models import Customer, Interaction

logger = logging.getLogger(__name__)


class ConsistencyCoordinator:
    def __init__(self, using: str = "default"):
        self.using = using

    def _customers(self):
        return Customer.objects.using(self.using)

    def _interactions(self):
        return Interaction.objects.using(self.using)

    def lock_customer(self, customer_id, active_only: bool = True) -> Optional[Customer]:
        qs = self._customers().select_for_update()
        if active_only:
            qs = qs.filter(is_deleted=False)
        return qs.filter(pk=customer_id).first()

    def _stamp(self, customer: Customer, last_interaction_at) -> None:
        conditional_update(
            self._customers(), customer.pk, customer.updated_at,
            last_interaction_at=last_interaction_at,
            updated_at=customer.next_version(),
        )

    def _latest_happened_at(self, customer_id, exclude=None):
        qs = self._interactions().filter(customer_id=customer_id)
        if exclude is not None:
            qs = qs.exclude(pk=exclude)
        return qs.order_by("-happened_at").values_list("happened_at", flat=True).first()

    def create_interaction(
        self,
        customer_id,
        insert: Callable[[Customer], Interaction],
        cancel=None,
    ) -> Outcome:
        def unit():
            customer = self.lock_customer(customer_id)
            if customer is None:
                logger.info("Interaction not created: customer %s not found", customer_id)
                return not_found("Customer")
            checkpoint(cancel)
            interaction = insert(customer)
            checkpoint(cancel)
            # Most recently inserted wins; the stored value is not compared.
            self._stamp(customer, interaction.happened_at)
            logger.info("Interaction %s created for customer %s", interaction.pk, customer.pk)
            return Outcome.success(interaction, version=encode(interaction.updated_at))

        return run_atomic(unit, using=self.using, cancel=cancel, label="interaction.create")

    def delete_interaction(
        self,
        interaction_id,
        expected_version,
        remove: Callable[[Interaction], None],
        cancel=None,
    ) -> Outcome:
        def unit():
            owner_id = (
                self._interactions().filter(pk=interaction_id)
                .values_list("customer_id", flat=True).first()
            )
            if owner_id is None:
                return not_found("Interaction")
            customer = self.lock_customer(owner_id, active_only=False)
            interaction = self._interactions().select_for_update().filter(pk=interaction_id).first()
            if customer is None or interaction is None:
                return not_found("Interaction")

            def mutation():
                checkpoint(cancel)
                remove(interaction)
                latest = self._latest_happened_at(customer.pk, exclude=interaction.pk)
                try:
                    self._stamp(customer, latest)
                except StaleWrite:
                    # report against the row the caller holds a version of
                    raise StaleWrite(Interaction, interaction.pk)
                checkpoint(cancel)
                logger.info(
                    "Interaction %s deleted; customer %s last_interaction_at=%s",
                    interaction.pk, customer.pk, latest,
                )
                return None

            return check_and_apply(
                interaction.updated_at, expected_version, mutation,
                entity="Interaction", entity_id=interaction.pk,
            )

        return run_atomic(unit, using=self.using, cancel=cancel, label="interaction.delete")

    def refresh_last_interaction(self, customer_id) -> None:
        """Recompute from all rows. Must run inside the caller's atomic unit."""
        customer = self.lock_customer(customer_id, active_only=False)
        if customer is None:
            return
        latest = self._latest_happened_at(customer.pk)
        self._stamp(customer, latest)
        logger.info("Customer %s last_interaction_at recomputed: %s", customer.pk, latest)
