"""Tests for applying field mappings to records."""

from intake_sync.mapping.field_mapper import (
    GHL_CONTACT,
    INTAKEQ_CONTACT,
    SOURCE,
    TARGET,
    apply_mapping,
    key_attribute,
    read_side,
    read_value,
    write_side,
    write_value,
)
from intake_sync.mapping.models import (
    CategoryMapping,
    Direction,
    FieldMapping,
    FieldSpec,
    SyncFilters,
    default_field_mapping,
)

S2T = Direction.SOURCE_TO_TARGET
T2S = Direction.TARGET_TO_SOURCE


def test_full_name_is_split_for_target():
    mapping = CategoryMapping(
        key_field="email",
        fields={
            "first_name": FieldSpec(source_field="firstName", target_field="firstName"),
            "last_name": FieldSpec(source_field="lastName", target_field="lastName"),
            "email": FieldSpec(is_key_field=True),
        },
    )
    record = {"Email": "a@x.com", "Name": "Jane Doe", "Phone": "555-1000"}

    fragment = apply_mapping("contact", mapping, S2T, record)

    assert fragment == {
        "email": "a@x.com",
        "firstName": "Jane",
        "lastName": "Doe",
        "phone": "555-1000",
    }


def test_multi_word_last_name():
    fragment = apply_mapping(
        "contact", CategoryMapping(), S2T, {"Name": "Ana Maria de la Cruz"},
    )
    assert fragment["firstName"] == "Ana"
    assert fragment["lastName"] == "Maria de la Cruz"


def test_default_mapping_source_to_target():
    mapping = default_field_mapping()["contact"]
    record = {"FirstName": "Jo", "LastName": "Bloggs", "Email": "jo@x.com", "Phone": "1"}
    assert apply_mapping("contact", mapping, S2T, record) == {
        "firstName": "Jo",
        "lastName": "Bloggs",
        "phone": "1",
        "email": "jo@x.com",
    }


def test_reverse_leg_swaps_fields():
    mapping = default_field_mapping()["contact"]
    record = {"firstName": "Jo", "lastName": "Bloggs", "email": "jo@x.com", "phone": "1"}
    assert apply_mapping("contact", mapping, T2S, record) == {
        "FirstName": "Jo",
        "LastName": "Bloggs",
        "Phone": "1",
        "Email": "jo@x.com",
    }


def test_mapping_round_trip_preserves_mapped_fields():
    mapping = default_field_mapping()["contact"]
    source = {"FirstName": "Jo", "LastName": "Bloggs", "Email": "jo@x.com", "Phone": "1"}
    there = apply_mapping("contact", mapping, S2T, source)
    back = apply_mapping("contact", mapping, T2S, there)
    assert back == source


def test_unsynced_and_one_way_fields_are_skipped():
    mapping = CategoryMapping(fields={
        "phone": FieldSpec(sync=False, source_field="Phone", target_field="phone"),
        "notes": FieldSpec(
            direction=Direction.TARGET_TO_SOURCE, source_field="Notes", target_field="notes",
        ),
    })
    fragment = apply_mapping("appointment", mapping, S2T, {"Phone": "1", "Notes": "x"})
    assert fragment == {}

    fragment = apply_mapping("appointment", mapping, T2S, {"phone": "1", "notes": "x"})
    assert fragment == {"Notes": "x"}


def test_missing_attributes_are_not_written():
    mapping = default_field_mapping()["contact"]
    fragment = apply_mapping("contact", mapping, S2T, {"Email": "a@x.com"})
    assert fragment == {"email": "a@x.com"}


def test_email_travels_even_when_not_synced():
    mapping = CategoryMapping(fields={"email": FieldSpec(sync=False)})
    fragment = apply_mapping("contact", mapping, S2T, {"Email": "a@x.com"})
    assert fragment["email"] == "a@x.com"


def test_nested_read():
    record = {"Profile": {"City": "Austin"}}
    assert read_value(record, "Profile.City") == "Austin"
    assert read_value(record, "Profile.State", "n/a") == "n/a"
    assert read_value(record, "Missing") is None


def test_nested_write_mirrors_read():
    record = {"Profile": "flat"}
    write_value(record, "Profile.City", "Austin")
    write_value(record, "Profile.City", "Dallas", replace=False)
    write_value(record, "Email", "a@x.com", replace=False)

    assert record == {"Profile": {"City": "Austin"}, "Email": "a@x.com"}
    assert read_value(record, "Profile.City") == "Austin"


def test_dotted_target_field_is_nested():
    mapping = CategoryMapping(fields={
        "city": FieldSpec(source_field="City", target_field="address.city"),
    })
    fragment = apply_mapping("appointment", mapping, S2T, {"City": "Austin"})
    assert fragment == {"address": {"city": "Austin"}}


def test_sides():
    assert read_side(S2T) == SOURCE
    assert write_side(S2T) == TARGET
    assert read_side(T2S) == TARGET
    assert write_side(T2S) == SOURCE


def test_key_attribute():
    spec = FieldSpec(source_field="ClientPhone", target_field="phone")
    assert key_attribute("phone", spec, SOURCE) == "ClientPhone"
    assert key_attribute("phone", spec, TARGET) == "phone"
    assert key_attribute("email", FieldSpec(), SOURCE) == INTAKEQ_CONTACT.email
    assert key_attribute("email", None, TARGET) == GHL_CONTACT.email
    assert key_attribute("external_id", None, TARGET) == "external_id"


def test_direction_parse_aliases():
    assert Direction.parse("one_way_intakeq_to_ghl") is S2T
    assert Direction.parse("ghl_to_intakeq") is T2S
    assert Direction.parse("source_to_target") is S2T
    assert Direction.parse("sideways") is Direction.BIDIRECTIONAL
    assert Direction.parse(None) is Direction.BIDIRECTIONAL
    assert Direction.BIDIRECTIONAL.legs() == [S2T, T2S]


def test_field_mapping_accepts_legacy_names():
    mapping = FieldMapping.from_dict({
        "contact": {
            "keyField": "email",
            "fields": {
                "first_name": {"sync": True, "intakeqField": "FirstName", "ghlField": "firstName"},
            },
        },
    })
    spec = mapping["contact"].fields["first_name"]
    assert spec.source_field == "FirstName"
    assert spec.target_field == "firstName"
    assert mapping.to_dict()["contact"]["fields"]["first_name"]["sourceField"] == "FirstName"


def test_filters_accept_contact_ids():
    filters = SyncFilters.from_dict({"contactIds": ["a@x.com", " "], "tags": ["vip"]})
    assert filters.ids == ["a@x.com"]
    assert filters.tags == ["vip"]
    assert not filters.is_empty
    assert SyncFilters.from_dict(None).is_empty
