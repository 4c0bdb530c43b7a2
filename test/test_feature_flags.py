"""
Feature Flags Tests - Tests für das Feature Flag System
"""

from config.tolerances import validate_tolerances
from config.feature_flags import (
    is_enabled,
    set_flag,
    get_all_flags,
    FEATURE_FLAGS
)


class TestFeatureFlagsBasic:
    """Tests für grundlegende Feature Flag Funktionalität."""

    def test_is_enabled_existing_flag_true(self):
        """Test: Existierendes Flag mit Wert True."""
        assert is_enabled("connection_auto_apply") is True

    def test_is_enabled_existing_flag_false(self):
        """Test: Existierendes Flag mit Wert False."""
        assert is_enabled("snap_debug") is False

    def test_is_enabled_nonexistent_flag(self):
        """Test: Nicht existierendes Flag gibt False zurück."""
        assert is_enabled("nonexistent_flag_xyz123") is False

    def test_get_all_flags_returns_copy(self):
        """Test: get_all_flags gibt eine Kopie zurück."""
        flags = get_all_flags()
        flags["new_flag"] = True
        assert "new_flag" not in FEATURE_FLAGS

    def test_set_flag_runtime(self):
        """Test: Set Flag zur Laufzeit."""
        set_flag("recipe_debug", True)
        assert is_enabled("recipe_debug") is True

        set_flag("recipe_debug", False)
        assert is_enabled("recipe_debug") is False


class TestFeatureFlagDefaults:
    """Die Registry muss mit den Test-Defaults in conftest.py synchron sein."""

    def test_registered_flags(self):
        assert set(get_all_flags()) == {
            "snap_debug", "connection_debug", "recipe_debug",
            "connection_auto_apply",
        }

    def test_debug_flags_off_by_default(self):
        for flag in ("snap_debug", "connection_debug", "recipe_debug"):
            assert is_enabled(flag) is False


class TestTolerances:

    def test_shipped_tolerances_are_consistent(self):
        assert validate_tolerances() == []
