"""Tests for the settings registry."""

from __future__ import annotations

import pytest

from settingstore.exceptions import ConfigurationError, KeyNotFound, ValidationError
from settingstore.models import Setting
from settingstore.services.registry import SettingsRegistry, coerce_input
from settingstore.setting_types import SettingType


def test_string_setting(registry):
    registry.create("test_string", "value", type="string", rules="nullable|string")

    assert registry.get_value("test_string") == "value"
    # Second read comes from the cache
    assert registry.get_value("test_string") == "value"
    rules = registry.get_validation_rules()
    assert rules == {"test_string": "nullable|string|string"}
    assert registry.validate_new_value("test_string", registry.get_value("test_string"))


def test_integer_setting(registry):
    registry.create("test_integer", 344, type="integer", rules="nullable|integer")

    actual = registry.get_value("test_integer")
    assert isinstance(actual, int)
    assert actual == 344


def test_boolean_settings(registry):
    registry.create("test_boolean", False, type="bool", rules="nullable|bool")
    registry.create("test_boolean2", True, type="boolean", rules="nullable|bool")

    assert registry.get_value("test_boolean") is False
    assert registry.get_value("test_boolean2") is True

    registry.set_value("test_boolean2", False)
    assert registry.get_value("test_boolean2") is False
    registry.set_value("test_boolean2", True)
    assert registry.get_value("test_boolean2") is True


@pytest.mark.parametrize(
    "value, expected",
    [(0, False), ("0", False), (1, True), ("1", True)],
)
def test_boolean_flag_values_survive_the_store(registry, repository, value, expected):
    registry.create("flag", not expected, type="boolean", rules="boolean")

    registry.set_value("flag", value)

    assert registry.get_value("flag") is expected
    assert repository.get("flag").value == ("true" if expected else "false")


def test_boolean_flag_values_on_create(registry):
    registry.create("off", 0, type="boolean")
    registry.create("on", "1", type="bool")

    assert registry.get_value("off") is False
    assert registry.get_value("on") is True


def test_type_alias_is_stored_canonically(registry, repository):
    registry.create("flag", True, type="bool")

    assert repository.get("flag").type == "boolean"
    assert registry.all_settings()["flag"].type is SettingType.BOOLEAN


def test_array_setting(registry):
    value = {"hans": "dampf", "in": "allen", "0": "gassen"}
    registry.create("test_array", type="arr", rules="array")
    registry.set_value("test_array", value)

    assert registry.get_value("test_array") == value


@pytest.mark.parametrize(
    "setting_type, value",
    [
        ("string", ""),
        ("integer", 0),
        ("boolean", False),
        ("array", [[1, 2], {"nested": ["x"]}]),
        ("regex", r"#\d{3}/[0-9]#"),
    ],
)
def test_values_survive_the_store(registry, setting_type, value):
    registry.create("key", value, type=setting_type, rules="nullable")

    assert registry.get_value("key") == value


def test_regex_round_trip(registry):
    regex = r"#\d{3}/[0-9]#"
    registry.create("regex", type="regex")
    registry.set_value("regex", regex)

    assert registry.get_value("regex") == regex
    assert registry.get_value_as_string("regex") == regex


def test_boolean_text_false_decodes_false(registry, repository):
    registry.create("flag", type="boolean")
    row = repository.get("flag")
    row.value = "false"
    repository.update(row)
    registry.flush_cache()

    assert registry.get_value("flag") is False


def test_has_value(registry):
    registry.create("false", False, type="boolean", rules="nullable|bool")
    registry.create("true", True, type="boolean", rules="nullable|bool")
    registry.create("zero", 0, type="integer")
    registry.create("empty", "", type="string")
    registry.create("empty_array", [], type="array")
    registry.create("no_value", type="boolean", rules="nullable|bool")

    assert registry.has_value("false")
    assert registry.has_value("true")
    assert registry.has_value("zero")
    assert registry.has_value("empty")
    assert not registry.has_value("empty_array")
    assert not registry.has_value("no_value")
    assert not registry.has_value("missing")


def test_default_is_returned_without_value(registry):
    registry.create("test", "hans", type="string", rules="nullable|string")
    registry.create("test2", None, type="string", rules="nullable|string")

    assert registry.get_value("test", "hi") == "hans"
    assert registry.get_value("test2", "hi") == "hi"
    assert registry.get_value_as_string("test2", "hi") == "hi"


def test_get_value_missing_key_raises(registry):
    registry.create("test", type="string", rules="nullable|string")

    with pytest.raises(KeyNotFound) as excinfo:
        registry.get_value("test2")
    assert excinfo.value.key == "test2"

    with pytest.raises(KeyNotFound):
        registry.get_value_as_string("test2")


def test_is_editable(registry, repository):
    registry.create("test", "hans", type="string")
    assert registry.is_editable("test") is True

    registry.set("test", "hans", editable=False)
    assert registry.is_editable("test") is False

    registry.set("test", "hans", editable=1)
    assert registry.is_editable("test") is True

    with pytest.raises(KeyNotFound):
        registry.is_editable("missing")


def test_null_editable_column_reads_true(registry, session_factory):
    with session_factory() as session:
        session.add(Setting(key="legacy", value='"x"', type="string", editable=None))

    assert registry.is_editable("legacy") is True


def test_set_value_validation_rejects_and_keeps_value(registry):
    registry.create("test", 5, type="int", rules="nullable|integer")

    with pytest.raises(ValidationError) as excinfo:
        registry.set_value("test", "string")

    assert "test" in excinfo.value.errors
    assert registry.get_value("test") == 5


def test_set_value_without_rules_still_checks_type(registry):
    registry.create("test", type="integer")

    with pytest.raises(ValidationError):
        registry.set_value("test", "string")

    registry.set_value("test", 333)
    assert registry.get_value("test") == 333


def test_set_value_can_skip_validation(registry):
    registry.create("test", type="integer")

    assert registry.set_value("test", "abc", validate=False)
    assert registry.get_value("test") == 0


def test_set_value_string_rule(registry):
    registry.create("string", type="string", rules="nullable|string")

    assert registry.validate_new_value("string", "string value")
    assert not registry.validate_new_value("string", 22)
    registry.set_value("string", "neuer string value")
    assert registry.get_value("string") == "neuer string value"


def test_set_value_missing_key(registry):
    with pytest.raises(KeyNotFound):
        registry.set_value("missing", "x")


def test_set_value_coerces_command_line_text(registry):
    registry.create("flag", True, type="boolean")
    registry.create("count", 1, type="integer", rules="min:1")

    registry.set_value("flag", "false")
    registry.set_value("count", "42")

    assert registry.get_value("flag") is False
    assert registry.get_value("count") == 42


def test_coerce_input_leaves_other_text_alone():
    assert coerce_input("TRUE", SettingType.BOOLEAN) == "TRUE"
    assert coerce_input("-5", SettingType.INTEGER) == "-5"
    assert coerce_input("5", SettingType.STRING) == "5"
    assert coerce_input("true", SettingType.BOOLEAN) is True
    assert coerce_input("0", SettingType.BOOLEAN) is False
    assert coerce_input(1, SettingType.BOOLEAN) is True
    assert coerce_input(2, SettingType.BOOLEAN) == 2


def test_set_creates_then_updates(registry):
    created = registry.set("site.name", "Demo", scope="site", description="Site name")
    assert created.type is SettingType.STRING
    assert created.editable is True

    updated = registry.set("site.name", "Prod", type="string")
    assert updated.value == "Prod"
    assert updated.scope == "site"
    assert updated.description == "Site name"
    assert registry.get_value("site.name") == "Prod"


def test_set_without_value_keeps_stored_value(registry):
    registry.set("site.name", "Demo", scope="site")

    record = registry.set("site.name", description="Public name")

    assert record.value == "Demo"
    assert record.description == "Public name"
    assert registry.get_value("site.name") == "Demo"


def test_set_with_explicit_none_clears_value(registry):
    registry.set("site.name", "Demo")

    registry.set("site.name", None)

    assert not registry.has_value("site.name")


def test_set_rejects_type_change(registry):
    registry.set("port", 8080, type="integer")

    with pytest.raises(ConfigurationError):
        registry.set("port", "eighty", type="string")

    record = registry.all_settings()["port"]
    assert record.type is SettingType.INTEGER
    assert record.value == 8080


def test_set_validates_against_new_rules(registry):
    registry.set("retries", 3, type="integer")

    with pytest.raises(ValidationError):
        registry.set("retries", 20, rules="max:10")

    assert registry.get_validation_rules()["retries"] == "integer"


def test_create_rejects_unknown_type_and_attribute(registry):
    with pytest.raises(ConfigurationError):
        registry.create("regex", r"#\d{3}/[0-9]#", type="bla")
    with pytest.raises(ConfigurationError):
        registry.create("x", "y", colour="red")

    assert not registry.has("regex")


def test_create_duplicate_key(registry):
    registry.create("dup", "a")

    with pytest.raises(ConfigurationError):
        registry.create("dup", "b")


def test_cache_coherence_after_mutations(registry):
    registry.create("color", "red")
    assert registry.get_value("color") == "red"

    registry.set_value("color", "blue")
    assert registry.get_value("color") == "blue"

    registry.remove("color")
    assert not registry.has("color")


def test_rules_cache_is_flushed_on_create(registry):
    registry.create("a", 1, type="integer")
    assert set(registry.get_validation_rules()) == {"a"}

    registry.create("b", "x")
    assert set(registry.get_validation_rules()) == {"a", "b"}


def test_get_by_scope(registry):
    registry.create("one", "1", scope="admin")
    registry.create("two", "2", scope="user")
    registry.create("three", "3", scope="admin")

    records = registry.get_by_scope("admin")

    assert [r.key for r in records] == ["one", "three"]
    assert registry.get_by_scope("nobody") == []


def test_remove(registry):
    registry.create("test1", type="string", rules="nullable|string")
    registry.create("test2", type="string", rules="nullable|string")
    registry.create("test3", type="string", rules="nullable|string")

    assert registry.remove("test2") is True

    assert len(registry.all_settings()) == 2
    assert len(registry.list_settings()) == 2
    assert not registry.has("test2")
    with pytest.raises(KeyNotFound):
        registry.get_value("test2")


def test_remove_missing_key(registry):
    registry.create("test1", type="string")

    with pytest.raises(KeyNotFound):
        registry.remove("test5")


def test_get_value_as_string(registry):
    registry.create("integer", type="integer")
    registry.set_value("integer", 333)
    registry.create("array", type="array")
    registry.set_value("array", ["hübertus", "antonius"])
    registry.create("bool", type="bool")
    registry.set_value("bool", True)

    assert registry.get_value_as_string("integer") == "333"
    assert registry.get_value_as_string("array") == '["hübertus","antonius"]'
    assert registry.get_value_as_string("bool") == "true"


def test_corrupt_stored_value_propagates(registry, session_factory):
    with session_factory() as session:
        session.add(Setting(key="broken", value="{not json", type="array"))

    with pytest.raises(ValueError):
        registry.get_value("broken")


def test_uncached_registry_reads_store_every_time(uncached_registry, repository):
    uncached_registry.create("k", "v")
    row = repository.get("k")
    row.value = '"changed"'
    repository.update(row)

    assert uncached_registry.get_value("k") == "changed"


def test_changing_a_returned_array_does_not_touch_the_cache(registry):
    registry.create("hosts", ["a"], type="array")

    registry.get_value("hosts").append("injected")
    registry.all_settings()["hosts"].value.append("injected")

    assert registry.get_value("hosts") == ["a"]


def test_changing_a_scoped_record_value_does_not_touch_the_cache(registry):
    registry.create("limits", {"max": 1}, type="array", scope="api")

    registry.get_by_scope("api")[0].value["max"] = 99

    assert registry.get_value("limits") == {"max": 1}


def test_cached_registry_serves_snapshot_until_flushed(registry, repository):
    registry.create("k", "v")
    assert registry.get_value("k") == "v"

    # Write behind the registry's back
    row = repository.get("k")
    row.value = '"changed"'
    repository.update(row)

    assert registry.get_value("k") == "v"
    registry.flush_cache()
    assert registry.get_value("k") == "changed"


def test_registries_share_backend(repository, cache_backend):
    from settingstore.cache import SettingsCache

    writer = SettingsRegistry(repository, SettingsCache(cache_backend))
    reader = SettingsRegistry(repository, SettingsCache(cache_backend))
    writer.create("k", "v")

    assert reader.get_value("k") == "v"
