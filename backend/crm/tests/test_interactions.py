import uuid
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest

from common.etag import decode, encode
from common.outcomes import ErrorKind
from crm.models import Customer, Interaction

pytestmark = pytest.mark.django_db

JAN = datetime(2024, 1, 1, 9, 30, tzinfo=dt_timezone.utc)
FEB = datetime(2024, 2, 1, 14, 0, tzinfo=dt_timezone.utc)
MAR = datetime(2024, 3, 1, 8, 15, tzinfo=dt_timezone.utc)


def _version(obj):
    return decode(encode(obj.updated_at))


def _reload(customer):
    return Customer.objects.get(pk=customer.pk)


# ---- create ----
def test_create_stamps_last_interaction_and_bumps_customer(make_customer, make_interaction):
    customer = make_customer()
    interaction = make_interaction(customer, FEB, attachments=[{"file_name": "quote.pdf", "url": "https://files.test/q.pdf"}])

    fresh = _reload(customer)
    assert fresh.last_interaction_at == FEB
    assert fresh.updated_at > customer.updated_at
    assert interaction.customer_id == customer.pk
    assert Interaction.objects.get(pk=interaction.pk).attachments == [
        {"file_name": "quote.pdf", "url": "https://files.test/q.pdf"}
    ]


def test_most_recently_inserted_interaction_wins(make_customer, make_interaction):
    customer = make_customer()
    make_interaction(customer, MAR)
    make_interaction(customer, JAN)  # back-filled, older event
    assert _reload(customer).last_interaction_at == JAN


def test_create_normalizes_to_utc(make_customer, make_interaction):
    customer = make_customer()
    shanghai = dt_timezone(timedelta(hours=8))
    interaction = make_interaction(customer, datetime(2024, 2, 1, 22, 0, tzinfo=shanghai))
    assert Interaction.objects.get(pk=interaction.pk).happened_at == FEB


@pytest.mark.parametrize("deleted", [True, False])
def test_create_for_missing_customer_is_not_found(services, make_customer, deleted):
    if deleted:
        customer = make_customer()
        services.customers.soft_delete(customer.pk, _version(customer))
        customer_id = customer.pk
    else:
        customer_id = uuid.uuid4()
    outcome = services.interactions.create(customer_id, {"happened_at": JAN, "channel": "Email", "title": "Hi"})
    assert outcome.error == ErrorKind.NOT_FOUND
    assert not Interaction.objects.exists()


def test_cancelled_create_leaves_nothing_behind(services, make_customer, cancelled):
    customer = make_customer()
    outcome = services.interactions.create(
        customer.pk, {"happened_at": JAN, "channel": "Email", "title": "Hi"}, cancel=cancelled,
    )
    assert outcome.error == ErrorKind.CANCELLED
    assert not Interaction.objects.exists()
    fresh = _reload(customer)
    assert fresh.last_interaction_at is None
    assert fresh.updated_at == customer.updated_at


# ---- list / get ----
def test_timeline_is_newest_first(services, make_customer, make_interaction):
    customer = make_customer()
    jan = make_interaction(customer, JAN)
    mar = make_interaction(customer, MAR)
    feb = make_interaction(customer, FEB)
    outcome = services.interactions.list_by_customer(customer.pk)
    assert [i.pk for i in outcome.value] == [mar.pk, feb.pk, jan.pk]


def test_timeline_of_deleted_customer_is_not_found(services, make_customer, make_interaction):
    customer = make_customer()
    interaction = make_interaction(customer, JAN)
    assert services.customers.soft_delete(customer.pk, _version(_reload(customer))).ok
    assert services.interactions.list_by_customer(customer.pk).error == ErrorKind.NOT_FOUND
    # soft delete never cascades
    assert Interaction.objects.filter(customer_id=customer.pk).count() == 1
    fetched = services.interactions.get_by_id(interaction.pk)
    assert fetched.ok
    assert fetched.value.customer_id == customer.pk


def test_get_interaction(services, make_customer, make_interaction):
    interaction = make_interaction(make_customer(), JAN)
    outcome = services.interactions.get_by_id(interaction.pk)
    assert outcome.ok
    assert outcome.version == encode(interaction.updated_at)
    assert services.interactions.get_by_id(uuid.uuid4()).error == ErrorKind.NOT_FOUND


# ---- delete ----
def test_delete_latest_recomputes_from_remaining(services, make_customer, make_interaction):
    customer = make_customer()
    make_interaction(customer, JAN)
    make_interaction(customer, FEB)
    mar = make_interaction(customer, MAR)

    outcome = services.interactions.delete(mar.pk, _version(mar))
    assert outcome.ok
    assert not Interaction.objects.filter(pk=mar.pk).exists()
    assert _reload(customer).last_interaction_at == FEB


def test_delete_last_remaining_clears_last_interaction(services, make_customer, make_interaction):
    customer = make_customer()
    only = make_interaction(customer, JAN)
    assert services.interactions.delete(only.pk, _version(only)).ok
    assert _reload(customer).last_interaction_at is None


def test_delete_with_stale_version_conflicts(services, make_customer, make_interaction):
    customer = make_customer()
    interaction = make_interaction(customer, JAN)
    edited = services.interactions.update(interaction.pk, {"title": "Edited"}, _version(interaction))
    assert edited.ok

    outcome = services.interactions.delete(interaction.pk, _version(interaction))
    assert outcome.error == ErrorKind.VERSION_CONFLICT
    assert outcome.version == edited.version
    assert Interaction.objects.filter(pk=interaction.pk).exists()
    assert _reload(customer).last_interaction_at == JAN


def test_delete_unknown_is_not_found(services):
    assert services.interactions.delete(uuid.uuid4()).error == ErrorKind.NOT_FOUND


def test_delete_without_precondition_warns(services, make_customer, make_interaction):
    interaction = make_interaction(make_customer(), JAN)
    outcome = services.interactions.delete(interaction.pk)
    assert outcome.ok
    assert outcome.warnings


def test_row_changed_during_delete_rolls_back_as_conflict(services, make_customer, make_interaction):
    customer = make_customer()
    interaction = make_interaction(customer, JAN)

    def racing_remove(row):
        Interaction.objects.filter(pk=row.pk).update(updated_at=row.updated_at + timedelta(seconds=1))
        services.interactions._remove(row)

    outcome = services.coordinator.delete_interaction(interaction.pk, _version(interaction), racing_remove)
    assert outcome.error == ErrorKind.VERSION_CONFLICT
    assert Interaction.objects.filter(pk=interaction.pk).exists()
    assert _reload(customer).last_interaction_at == JAN


def test_interaction_delete_invalidates_stale_customer_version(services, make_customer, make_interaction):
    customer = make_customer()
    interaction = make_interaction(customer, JAN)
    seen = _reload(customer)
    services.interactions.delete(interaction.pk, _version(interaction))

    outcome = services.customers.update(customer.pk, {"score": 50}, _version(seen))
    assert outcome.error == ErrorKind.VERSION_CONFLICT


# ---- update ----
def test_update_with_version(services, make_customer, make_interaction):
    interaction = make_interaction(make_customer(), JAN)
    outcome = services.interactions.update(
        interaction.pk, {"summary": "Asked for a quote", "stage": "Quoted"}, _version(interaction),
    )
    assert outcome.ok
    assert outcome.value.summary == "Asked for a quote"
    assert outcome.value.stage == "Quoted"
    assert outcome.version != encode(interaction.updated_at)


def test_update_stale_version_conflicts(services, make_customer, make_interaction):
    interaction = make_interaction(make_customer(), JAN)
    services.interactions.update(interaction.pk, {"title": "One"}, _version(interaction))
    outcome = services.interactions.update(interaction.pk, {"title": "Two"}, _version(interaction))
    assert outcome.error == ErrorKind.VERSION_CONFLICT
    assert Interaction.objects.get(pk=interaction.pk).title == "One"


def test_event_time_edit_keeps_last_interaction_by_default(services, make_customer, make_interaction):
    customer = make_customer()
    make_interaction(customer, JAN)
    feb = make_interaction(customer, FEB)

    outcome = services.interactions.update(feb.pk, {"happened_at": JAN - timedelta(days=30)}, _version(feb))
    assert outcome.ok
    assert _reload(customer).last_interaction_at == FEB


def test_event_time_edit_recomputes_when_enabled(settings, services, make_customer, make_interaction):
    settings.CRM_RECOMPUTE_ON_EVENT_TIME_EDIT = True
    customer = make_customer()
    make_interaction(customer, JAN)
    feb = make_interaction(customer, FEB)

    outcome = services.interactions.update(feb.pk, {"happened_at": JAN - timedelta(days=30)}, _version(feb))
    assert outcome.ok
    assert _reload(customer).last_interaction_at == JAN

    later = services.interactions.update(feb.pk, {"happened_at": MAR}, decode(outcome.version))
    assert later.ok
    assert _reload(customer).last_interaction_at == MAR
