"""
API key registry loading, explicit reload and bounded polling
"""

import json
import os

import pytest

from id_tracker.services.key_registry import KeyRegistry, KeyRegistryError, parse_key_entries


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def write_keys(path, entries, mtime=None):
    path.write_text(json.dumps({"keys": entries}), encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))


class TestParseKeyEntries:

    @pytest.mark.parametrize("data", [
        {"keys": [{"key": "k1", "user": "alice"}]},
        [{"key": "k1", "user": "alice"}],
        {"k1": "alice"},
    ])
    def test_accepted_shapes(self, data):
        assert parse_key_entries(data, "test") == {"k1": "alice"}

    def test_missing_user_falls_back_to_key(self):
        assert parse_key_entries([{"key": "k1"}], "test") == {"k1": "k1"}

    @pytest.mark.parametrize("data", [
        [{"user": "alice"}],
        ["k1"],
        "k1",
        {"k1": 5},
    ])
    def test_rejected_shapes(self, data):
        with pytest.raises(KeyRegistryError):
            parse_key_entries(data, "test")


class TestKeyRegistry:

    def test_loads_file_and_inline_with_inline_winning(self, tmp_path):
        keys_file = tmp_path / "keys.json"
        write_keys(keys_file, [{"key": "k1", "user": "alice"}, {"key": "k2", "user": "bob"}])

        registry = KeyRegistry(str(keys_file), inline_json='{"k2": "robert", "k3": "carol"}')

        assert len(registry) == 3
        assert registry.resolve("k1") == "alice"
        assert registry.resolve("k2") == "robert"
        assert registry.resolve("unknown") is None

    def test_missing_file_gives_empty_registry(self, tmp_path):
        registry = KeyRegistry(str(tmp_path / "absent.json"))
        assert len(registry) == 0

    def test_malformed_file_fails_construction(self, tmp_path):
        keys_file = tmp_path / "keys.json"
        keys_file.write_text("{oops", encoding="utf-8")

        with pytest.raises(KeyRegistryError):
            KeyRegistry(str(keys_file))

    def test_explicit_reload_picks_up_changes(self, tmp_path):
        keys_file = tmp_path / "keys.json"
        write_keys(keys_file, [{"key": "k1", "user": "alice"}])
        registry = KeyRegistry(str(keys_file))

        write_keys(keys_file, [{"key": "k1", "user": "alice"}, {"key": "k2", "user": "bob"}])
        assert registry.resolve("k2") is None, "No polling configured, changes need reload()"

        assert registry.reload() == 2
        assert registry.resolve("k2") == "bob"

    def test_failed_reload_keeps_previous_keys(self, tmp_path):
        keys_file = tmp_path / "keys.json"
        write_keys(keys_file, [{"key": "k1", "user": "alice"}])
        registry = KeyRegistry(str(keys_file))

        keys_file.write_text("not json", encoding="utf-8")
        with pytest.raises(KeyRegistryError):
            registry.reload()
        assert registry.resolve("k1") == "alice"

    def test_polling_respects_interval(self, tmp_path):
        keys_file = tmp_path / "keys.json"
        write_keys(keys_file, [{"key": "k1", "user": "alice"}], mtime=1_000_000)
        clock = FakeClock()
        registry = KeyRegistry(str(keys_file), poll_interval=10, clock=clock)

        write_keys(keys_file, [{"key": "k1", "user": "alicia"}], mtime=1_000_100)

        clock.now = 5
        assert registry.resolve("k1") == "alice", "Interval not yet elapsed"

        clock.now = 11
        assert registry.resolve("k1") == "alicia"

    def test_polling_survives_broken_file(self, tmp_path):
        keys_file = tmp_path / "keys.json"
        write_keys(keys_file, [{"key": "k1", "user": "alice"}], mtime=1_000_000)
        clock = FakeClock()
        registry = KeyRegistry(str(keys_file), poll_interval=1, clock=clock)

        keys_file.write_text("broken", encoding="utf-8")
        os.utime(keys_file, (1_000_100, 1_000_100))
        clock.now = 2

        assert registry.resolve("k1") == "alice"

    def test_from_mapping(self):
        registry = KeyRegistry.from_mapping({"k1": "alice"})
        assert "k1" in registry
        assert registry.resolve("k1") == "alice"
