import uuid

import pytest
from django.db import IntegrityError, OperationalError, transaction

from common import transactions
from common.concurrency import StaleWrite
from common.etag import encode
from common.outcomes import ErrorKind, Outcome, StorageFailure
from common.transactions import checkpoint, run_atomic
from crm.models import Customer


class Flaky:
    """Raises `exc` for the first `failures` calls, then succeeds."""

    def __init__(self, failures, exc=OperationalError("connection reset")):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return Outcome.success("done")


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(transactions.time, "sleep", recorded.append)
    return recorded


@pytest.mark.django_db
def test_returns_unit_outcome():
    assert run_atomic(lambda: Outcome.success(42)).value == 42


@pytest.mark.django_db(transaction=True)
def test_transient_failures_are_retried_with_backoff(settings, sleeps):
    settings.CRM_DB_RETRY_ATTEMPTS = 3
    settings.CRM_DB_RETRY_MAX_DELAY = 5
    unit = Flaky(failures=2)

    outcome = run_atomic(unit, label="flaky")

    assert outcome.value == "done"
    assert unit.calls == 3
    assert sleeps == [pytest.approx(0.2), pytest.approx(0.4)]


@pytest.mark.django_db(transaction=True)
def test_retry_budget_exhausted_raises_storage_failure(settings, sleeps):
    settings.CRM_DB_RETRY_ATTEMPTS = 3
    unit = Flaky(failures=10)

    with pytest.raises(StorageFailure):
        run_atomic(unit)
    assert unit.calls == 3


@pytest.mark.django_db
def test_nested_unit_is_not_replayed(sleeps):
    unit = Flaky(failures=1)
    with pytest.raises(StorageFailure):
        with transaction.atomic():
            run_atomic(unit)
    assert unit.calls == 1
    assert sleeps == []


@pytest.mark.django_db
def test_non_transient_database_error_is_not_retried(sleeps):
    unit = Flaky(failures=1, exc=IntegrityError("boom"))
    with pytest.raises(StorageFailure):
        run_atomic(unit)
    assert unit.calls == 1


@pytest.mark.django_db
def test_cancelled_before_start_runs_nothing(cancelled):
    unit = Flaky(failures=0)
    outcome = run_atomic(unit, cancel=cancelled)
    assert outcome.error == ErrorKind.CANCELLED
    assert unit.calls == 0


@pytest.mark.django_db
def test_cancellation_rolls_back_partial_work():
    class Flag:
        value = False

        def is_set(self):
            return self.value

    flag = Flag()

    def unit():
        Customer.objects.create(company_name="Half", contact_name="Written")
        flag.value = True
        checkpoint(flag)
        return Outcome.success()

    outcome = run_atomic(unit, cancel=flag)
    assert outcome.error == ErrorKind.CANCELLED
    assert not Customer.objects.filter(company_name="Half").exists()


@pytest.mark.django_db
def test_stale_write_becomes_conflict_with_current_version():
    customer = Customer.objects.create(company_name="Stale", contact_name="Row")

    def unit():
        raise StaleWrite(Customer, customer.pk)

    outcome = run_atomic(unit)
    assert outcome.error == ErrorKind.VERSION_CONFLICT
    assert outcome.version == encode(customer.updated_at)


@pytest.mark.django_db
def test_stale_write_on_vanished_row_is_not_found():
    def unit():
        raise StaleWrite(Customer, uuid.uuid4())

    assert run_atomic(unit).error == ErrorKind.NOT_FOUND
