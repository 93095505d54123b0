"""Tests for the Statsig user → LaunchDarkly context transformer."""

import pytest

from flagport.core.ast_parser.literals import RawExpression, render_js
from flagport.core.migration.context_transformer import is_multi_entity, transform
from flagport.core.migration.errors import (
    AttributeCollisionError,
    MissingRequiredFieldError,
    ReservedAttributeError,
    UnresolvableUserError,
)


# ── Tests: single-entity contexts ────────────────────────────────────


class TestSingleContext:
    """Field mapping rules for a plain user object."""

    def test_documented_example(self):
        user = {"userID": "u1", "custom": {"tier": "gold"}, "privateAttributes": {"salary": 1}}
        result = transform(user)
        assert result.context == {
            "kind": "user",
            "key": "u1",
            "tier": "gold",
            "salary": 1,
            "_meta": {"privateAttributes": ["salary"]},
        }
        assert list(result.context) == ["kind", "key", "tier", "salary", "_meta"]

    def test_missing_user_id_fails(self):
        with pytest.raises(MissingRequiredFieldError):
            transform({"email": "a@example.com"})

    def test_null_user_id_fails(self):
        with pytest.raises(MissingRequiredFieldError):
            transform({"userID": None})

    def test_expression_user_id_is_kept(self):
        key = RawExpression("currentUser.id")
        assert transform({"userID": key}).context["key"] is key

    def test_passthrough_scalars(self):
        result = transform({"userID": "u1", "email": "a@example.com", "country": "NZ", "appVersion": "1.2"})
        assert result.context == {
            "kind": "user", "key": "u1", "email": "a@example.com", "country": "NZ", "appVersion": "1.2",
        }
        assert result.warnings == []

    def test_ip_and_user_agent_dropped_with_warning(self):
        result = transform({"userID": "u1", "ip": "1.2.3.4", "userAgent": "Mozilla"})
        assert "ip" not in result.context
        assert "userAgent" not in result.context
        assert len(result.warnings) == 2

    def test_custom_ids_flattened_with_bucketing_warning(self):
        result = transform({"userID": "u1", "customIDs": {"stableID": "s-1"}})
        assert result.context["stableID"] == "s-1"
        assert any("affects bucketing differently" in w for w in result.warnings)

    def test_private_attribute_names_deduplicated_in_first_seen_order(self):
        result = transform({"userID": "u1", "privateAttributes": {"b": 1, "a": 2}})
        assert result.context["_meta"] == {"privateAttributes": ["b", "a"]}

    def test_statsig_environment_dropped(self):
        result = transform({"userID": "u1", "statsigEnvironment": {"tier": "staging"}})
        assert "statsigEnvironment" not in result.context
        assert result.warnings

    def test_unknown_field_passes_through_with_warning(self):
        result = transform({"userID": "u1", "plan": "pro"})
        assert result.context["plan"] == "pro"
        assert any("plan" in w for w in result.warnings)


class TestContextErrors:
    """Collisions are errors, never silent overwrites."""

    @pytest.mark.parametrize("reserved", ["kind", "key", "_meta"])
    def test_custom_reserved_name(self, reserved):
        with pytest.raises(ReservedAttributeError):
            transform({"userID": "u1", "custom": {reserved: "x"}})

    def test_custom_collides_with_private_attribute(self):
        with pytest.raises(AttributeCollisionError):
            transform({"userID": "u1", "custom": {"tier": "a"}, "privateAttributes": {"tier": "b"}})

    def test_custom_collides_with_passthrough(self):
        with pytest.raises(AttributeCollisionError):
            transform({"userID": "u1", "email": "a@example.com", "custom": {"email": "b@example.com"}})

    def test_dynamic_custom_bundle(self):
        with pytest.raises(UnresolvableUserError):
            transform({"userID": "u1", "custom": RawExpression("buildCustom()")})

    def test_not_an_object(self):
        with pytest.raises(UnresolvableUserError):
            transform(RawExpression("getUser()"))


# ── Tests: multi-entity contexts ─────────────────────────────────────


class TestMultiContext:
    """Objects with several entities each carrying a userID."""

    USER = {
        "user": {"userID": "u1", "custom": {"tier": "gold"}},
        "org": {"userID": "o1", "email": "ops@example.com"},
    }

    def test_detects_multi_entity(self):
        assert is_multi_entity(self.USER)
        assert not is_multi_entity({"userID": "u1", "custom": {"userID": "x"}})

    def test_each_entity_transformed_with_its_own_kind(self):
        result = transform(self.USER)
        assert result.context == {
            "kind": "multi",
            "user": {"kind": "user", "key": "u1", "tier": "gold"},
            "org": {"kind": "org", "key": "o1", "email": "ops@example.com"},
        }


class TestDeterminism:
    """Same input renders to byte-identical output."""

    def test_repeated_runs_render_identically(self):
        user = {
            "userID": "u1",
            "email": "a@example.com",
            "custom": {"tier": "gold", "beta": True},
            "customIDs": {"companyID": "c1"},
            "privateAttributes": {"salary": 1},
        }
        outputs = {render_js(transform(dict(user)).context) for _ in range(5)}
        assert len(outputs) == 1
