import threading
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.db import connection, connections

from crm.models import Customer, Interaction

# SQLite has no row locks; this needs a real Postgres (set POSTGRES_HOST).
pytestmark = [
    pytest.mark.django_db(transaction=True),
    pytest.mark.skipif(connection.vendor != "postgresql", reason="row locking requires PostgreSQL"),
]

BASE = datetime(2024, 6, 1, tzinfo=dt_timezone.utc)


def test_concurrent_creates_for_one_customer_are_serialized(services, make_customer):
    customer = make_customer()
    workers = 8
    barrier = threading.Barrier(workers)
    outcomes = []

    def create(n):
        try:
            barrier.wait()
            outcomes.append(services.interactions.create(
                customer.pk, {"happened_at": BASE + timedelta(hours=n), "channel": "Phone", "title": f"Call {n}"},
            ))
        finally:
            connections.close_all()

    threads = [threading.Thread(target=create, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(outcomes) == workers
    assert all(o.ok for o in outcomes)
    assert Interaction.objects.filter(customer_id=customer.pk).count() == workers

    # the last committed insert owns the derived field
    last = Interaction.objects.filter(customer_id=customer.pk).order_by("-created_at").first()
    assert Customer.objects.get(pk=customer.pk).last_interaction_at == last.happened_at
