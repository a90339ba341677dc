"""
Tests - FIELD_REGISTRY and FILLABLE_FIELDS (pure, no DB).
"""

from immigration.services.field_registry import (
    ENTITY_TYPES,
    FIELD_REGISTRY,
    FILLABLE_FIELD_NAMES,
    FILLABLE_FIELD_TYPES,
    FILLABLE_FIELDS,
    entity_type_options,
    get_field_entry,
    get_fields_metadata,
    get_fillable_field,
    invalid_field_names,
    validate_field_names,
)


class TestFieldRegistry:
    def test_every_entity_type_has_fields(self):
        for entity_type in ENTITY_TYPES:
            assert FIELD_REGISTRY[entity_type], entity_type

    def test_field_paths_unique_per_entity(self):
        for entity_type, entries in FIELD_REGISTRY.items():
            paths = [e.field_path for e in entries]
            assert len(paths) == len(set(paths)), entity_type

    def test_lookup(self):
        entry = get_field_entry("passport", "expiry_date")
        assert entry.field_type == "date"
        assert entry.label_en == "Valid until"
        assert get_field_entry("passport", "nope") is None
        assert get_field_entry("spaceship", "name") is None

    def test_entity_type_options(self):
        values = [o["value"] for o in entity_type_options()]
        assert values == list(ENTITY_TYPES)


class TestFillableFields:
    def test_closed_vocabulary(self):
        assert "protocol_number" in FILLABLE_FIELD_NAMES
        assert "notes" not in FILLABLE_FIELD_NAMES
        assert len(FILLABLE_FIELD_NAMES) == len(FILLABLE_FIELDS)

    def test_types(self):
        for meta in FILLABLE_FIELDS:
            assert meta.field_type in FILLABLE_FIELD_TYPES
            if meta.field_type == "reference":
                assert meta.reference_table

    def test_validate_field_names(self):
        assert validate_field_names(["rnm_number", "dou_date"])
        assert validate_field_names([])
        assert not validate_field_names(["rnm_number", "favourite_colour"])
        assert invalid_field_names(["rnm_number", "x", "y"]) == ["x", "y"]

    def test_metadata_keeps_order_and_drops_unknown(self):
        metas = get_fields_metadata(["rnm_deadline", "bogus", "passport_id"])
        assert [m.field_name for m in metas] == ["rnm_deadline", "passport_id"]
        assert metas[1].reference_table == "passports"
        assert metas[0].label_key == "individual_processes.fields.rnm_deadline"

    def test_get_fillable_field(self):
        assert get_fillable_field("appointment_date_time").field_type == "datetime"
        assert get_fillable_field("nope") is None
