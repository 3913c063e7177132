import itertools
import threading

import pytest
from rest_framework.test import APIClient

from crm.wiring import build_crm_services


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def services():
    return build_crm_services()


@pytest.fixture
def make_customer(services):
    counter = itertools.count(1)

    def _make(**overrides):
        n = next(counter)
        fields = {"company_name": f"Acme {n}", "contact_name": f"Contact {n}"}
        fields.update(overrides)
        outcome = services.customers.create(fields)
        assert outcome.ok, outcome.message
        return outcome.value

    return _make


@pytest.fixture
def make_interaction(services):
    def _make(customer, happened_at, **overrides):
        fields = {"happened_at": happened_at, "channel": "Phone", "title": "Follow-up call"}
        fields.update(overrides)
        outcome = services.interactions.create(customer.pk, fields)
        assert outcome.ok, outcome.message
        return outcome.value

    return _make


@pytest.fixture
def cancelled():
    flag = threading.Event()
    flag.set()
    return flag
