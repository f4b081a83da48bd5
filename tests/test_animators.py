import pytest

from src.booking.animators import (
    add_animator,
    clear_unavailable,
    is_animator_available,
    mark_unavailable,
    remove_animator,
    rename_animator,
    set_inactive_slots,
)
from src.booking.errors import ReferentialBlock
from src.booking.models import AnimatorSettings

from tests.fakes import THURSDAY, TUESDAY


class TestAvailability:
    def test_no_animator_is_unconstrained(self):
        assert is_animator_available(None, TUESDAY, 9, {})
        assert is_animator_available("  ", TUESDAY, 9, {})

    def test_missing_settings_entry_means_no_constraints(self):
        assert is_animator_available("Alice", TUESDAY, 9, {})

    def test_inactive_slot_blocks_that_hour_only(self):
        entry = {"Alice": AnimatorSettings(inactive_slots=[9])}
        assert not is_animator_available("Alice", TUESDAY, 9, entry)
        assert is_animator_available("Alice", TUESDAY, 10, entry)

    def test_unavailable_date_blocks_whole_day(self):
        entry = {"Alice": AnimatorSettings(unavailable_dates=["2025-10-07"])}
        for hour in (9, 10, 14, 15):
            assert not is_animator_available("Alice", TUESDAY, hour, entry)
        assert is_animator_available("Alice", THURSDAY, 9, entry)


class TestUnavailability:
    def test_mark_keeps_dates_sorted_and_unique(self, settings):
        updated = mark_unavailable(settings, "Alice", [THURSDAY, TUESDAY])
        updated = mark_unavailable(updated, "Alice", [TUESDAY])
        assert updated.settings_for("Alice").unavailable_dates == ["2025-10-07", "2025-10-09"]

    def test_inputs_are_not_mutated(self, settings):
        mark_unavailable(settings, "Alice", [TUESDAY])
        assert settings.animator_settings == {}

    def test_clear(self, settings):
        updated = mark_unavailable(settings, "Alice", [TUESDAY, THURSDAY])
        updated = clear_unavailable(updated, "Alice", TUESDAY)
        assert updated.settings_for("Alice").unavailable_dates == ["2025-10-09"]

    def test_set_inactive_slots(self, settings):
        updated = set_inactive_slots(settings, "Bob", [15, 14, 14])
        assert updated.settings_for("Bob").inactive_slots == [14, 15]

    def test_set_inactive_slots_rejects_unknown_hour(self, settings):
        with pytest.raises(ValueError, match="Unknown time slots"):
            set_inactive_slots(settings, "Bob", [11])


class TestAnimatorList:
    def test_add_keeps_names_sorted(self, settings):
        updated = add_animator(settings, " Aaron ", "aaron@example.org")
        assert [a.name for a in updated.animators] == ["Aaron", "Alice", "Bob"]

    @pytest.mark.parametrize("name", ["", "   ", "Alice"])
    def test_add_rejects_blank_or_duplicate(self, settings, name):
        with pytest.raises(ValueError):
            add_animator(settings, name)

    def test_rename_migrates_settings_and_animations(self, settings, animations):
        settings = mark_unavailable(settings, "Alice", [TUESDAY])

        migrated, changed = rename_animator(settings, animations, "Alice", "Alicia")

        assert migrated.find_animator("Alicia") is not None
        assert migrated.find_animator("Alice") is None
        assert "Alice" not in migrated.animator_settings
        assert migrated.settings_for("Alicia").unavailable_dates == ["2025-10-07"]
        assert [a.id for a in changed] == ["contes"]
        assert changed[0].animator == "Alicia"
        # originals untouched
        assert animations[0].animator == "Alice"

    def test_rename_to_same_name_is_a_no_op(self, settings, animations):
        migrated, changed = rename_animator(settings, animations, "Alice", "Alice")
        assert migrated is settings
        assert changed == []

    def test_rename_errors(self, settings, animations):
        with pytest.raises(KeyError):
            rename_animator(settings, animations, "Nobody", "X")
        with pytest.raises(ValueError):
            rename_animator(settings, animations, "Alice", "Bob")
        with pytest.raises(ValueError):
            rename_animator(settings, animations, "Alice", " ")

    def test_remove_blocked_while_assigned(self, settings, animations):
        with pytest.raises(ReferentialBlock) as excinfo:
            remove_animator(settings, animations, "Alice")
        assert excinfo.value.dependents == ["contes"]

    def test_remove_drops_settings_entry(self, settings, animations):
        settings = set_inactive_slots(settings, "Bob", [9])
        unassigned = [a for a in animations if a.animator != "Bob"]

        updated = remove_animator(settings, unassigned, "Bob")

        assert updated.find_animator("Bob") is None
        assert "Bob" not in updated.animator_settings
