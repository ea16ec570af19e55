"""
Tests for the mitigation schema and has_any_mitigation_set().
"""

import dataclasses

import pytest

from procmit import schema as schema_module
from procmit.errors import SchemaError
from procmit.records import MitigationRecord
from procmit.schema import SCHEMA, build_schema, has_any_mitigation_set


class TestBuildSchema:
    """Tests for the registration table and build_schema()."""

    def test_covers_every_record_field(self):
        """Every MitigationRecord field has exactly one schema entry."""
        assert len(SCHEMA) == len(dataclasses.fields(MitigationRecord))

    def test_keys_are_lower_cased_display_names(self):
        """Keys are the lower-cased form of each display name."""
        for key, attr in SCHEMA.items():
            assert key == attr.name.lower()

    def test_ordered_by_name(self):
        """Schema iteration follows sorted display names."""
        names = [attr.name for attr in SCHEMA.values()]
        assert names == sorted(names)

    def test_schema_is_read_only(self):
        """The process-wide schema cannot be modified."""
        with pytest.raises(TypeError):
            SCHEMA["bogus"] = SCHEMA["depenabled"]

    def test_accessor_reads_record(self):
        """Accessors return the matching record flag."""
        record = MitigationRecord(enable_control_flow_guard=True)
        assert SCHEMA["enablecontrolflowguard"](record) is True
        assert SCHEMA["depenabled"](record) is False

    def test_case_collision_rejected(self):
        """Two names differing only in case are a schema error."""
        with pytest.raises(SchemaError):
            build_schema({
                "DepEnabled": lambda m: m.dep_enabled,
                "DEPENABLED": lambda m: m.dep_enabled,
            })

    def test_incomplete_table_rejected(self, monkeypatch):
        """The default table must register every record field."""
        partial = dict(schema_module.MITIGATION_TABLE)
        partial.pop("StrictMode")
        monkeypatch.setattr(schema_module, "MITIGATION_TABLE", partial)
        with pytest.raises(SchemaError):
            build_schema()

    def test_broken_accessor_rejected(self, monkeypatch):
        """An accessor naming a missing field is caught at build time."""
        broken = dict(schema_module.MITIGATION_TABLE)
        broken["StrictMode"] = lambda m: m.no_such_field
        monkeypatch.setattr(schema_module, "MITIGATION_TABLE", broken)
        with pytest.raises(SchemaError):
            build_schema()


class TestHasAnyMitigationSet:
    """Tests for OR-matching of mitigation names."""

    def test_empty_names_is_false(self, dep_only):
        assert has_any_mitigation_set(dep_only, []) is False
        assert has_any_mitigation_set(MitigationRecord(), set()) is False

    def test_unknown_name_is_false(self, dep_only):
        """Unknown names never raise and never match."""
        assert has_any_mitigation_set(dep_only, {"unknownFlag"}) is False

    def test_set_flag_matches(self, dep_only):
        assert has_any_mitigation_set(dep_only, {"depenabled"}) is True

    def test_case_insensitive(self, dep_only):
        assert has_any_mitigation_set(dep_only, {"DEPENABLED"}) is True
        assert has_any_mitigation_set(dep_only, {"DepEnabled"}) is True

    def test_any_of_several(self, dep_only):
        """One set flag among unset and unknown names is enough."""
        names = ["enablehighentropy", "bogus", "depenabled"]
        assert has_any_mitigation_set(dep_only, names) is True

    def test_none_set(self, aslr_only):
        assert has_any_mitigation_set(aslr_only, {"depenabled", "strictmode"}) is False

    def test_custom_schema(self, small_schema, dep_only):
        assert has_any_mitigation_set(dep_only, {"dep"}, small_schema) is True
        assert has_any_mitigation_set(dep_only, {"aslr"}, small_schema) is False
