"""Tests for the flag naming policy."""

import pytest

from flagport.core.migration.models import SdkVariant
from flagport.core.migration.naming import camel_case, to_target_name


NAMES = [
    "admin_panel_access",
    "new-feature",
    "checkout_flow_v2",
    "already_camelCase_mix",
    "single",
    "__leading_underscores",
    "trailing_",
    "a--b__c",
    "",
]


class TestCamelCase:
    """snake/kebab → camelCase conversion."""

    def test_snake_case(self):
        assert camel_case("admin_panel_access") == "adminPanelAccess"

    def test_kebab_case(self):
        assert camel_case("new-feature-flag") == "newFeatureFlag"

    def test_name_without_separators_is_unchanged(self):
        assert camel_case("enableDarkMode") == "enableDarkMode"

    def test_repeated_separators_collapse(self):
        assert camel_case("a--b__c") == "aBC"


class TestToTargetName:
    """Variant-dependent naming."""

    def test_react_variant_camel_cases(self):
        assert to_target_name("admin_panel_access", SdkVariant.REACT) == "adminPanelAccess"

    def test_javascript_variant_is_identity(self):
        assert to_target_name("admin_panel_access", SdkVariant.JAVASCRIPT) == "admin_panel_access"

    def test_typescript_variant_is_identity(self):
        assert to_target_name("new-feature", SdkVariant.TYPESCRIPT) == "new-feature"

    @pytest.mark.parametrize("variant", list(SdkVariant))
    @pytest.mark.parametrize("name", NAMES)
    def test_idempotent(self, name, variant):
        once = to_target_name(name, variant)
        assert to_target_name(once, variant) == once
