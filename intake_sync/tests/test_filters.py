"""Tests for record inclusion filters."""

from intake_sync.mapping.field_mapper import GHL_CONTACT, INTAKEQ_CONTACT
from intake_sync.mapping.filters import apply_filters, matches_filters, matches_id_filter
from intake_sync.mapping.models import SyncFilters

CLIENTS = [
    {"ClientId": 1, "Email": "A@X.com", "Tags": ["VIP"], "Status": "Active"},
    {"ClientId": 2, "Email": "b@y.com", "Tags": [], "Status": "Inactive"},
]


def test_empty_filters_keep_everything():
    assert apply_filters(CLIENTS, SyncFilters(), INTAKEQ_CONTACT) == CLIENTS


def test_id_filter_matches_email_case_insensitively():
    assert matches_id_filter(CLIENTS[0], ["a@x.com"], INTAKEQ_CONTACT)
    assert not matches_id_filter(CLIENTS[1], ["a@x.com"], INTAKEQ_CONTACT)


def test_id_filter_matches_ids_exactly():
    assert matches_id_filter(CLIENTS[1], ["2"], INTAKEQ_CONTACT)
    assert matches_id_filter({"id": "abc", "email": "c@z.com"}, ["abc"], GHL_CONTACT)
    assert not matches_id_filter({"id": "abc"}, ["ABC"], GHL_CONTACT)


def test_tag_and_status_filters():
    filters = SyncFilters(tags=["vip"], status=["active"])
    assert apply_filters(CLIENTS, filters, INTAKEQ_CONTACT) == [CLIENTS[0]]


def test_form_ids_only_apply_to_forms():
    filters = SyncFilters(form_ids=["f-1"])
    assert matches_filters(CLIENTS[0], filters, INTAKEQ_CONTACT, "contact")
    assert matches_filters({"FormId": "f-1"}, filters, INTAKEQ_CONTACT, "form")
    assert not matches_filters({"FormId": "f-2"}, filters, INTAKEQ_CONTACT, "form")
