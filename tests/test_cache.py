"""Tests for the file-backed TTL cache."""

import json

import pytest

from services.cache import FileTTLCache


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock):
    return FileTTLCache(tmp_path / "cache", clock=clock)


class TestFreshReads:
    def test_round_trip(self, store):
        value = {"districts": ["Kollam"], "nested": {"n": 1.5, "ok": True, "none": None}}
        store.set("k", value, ttl_seconds=60)
        assert store.get("k") == value

    @pytest.mark.parametrize("value", [[1, 2, 3], "text", 42, 0.25, False])
    def test_scalars_and_arrays(self, store, value):
        store.set("k", value, ttl_seconds=60)
        assert store.get("k") == value

    def test_absent_key(self, store):
        assert store.get("never-set-key") is None
        assert store.get("never-set-key", allow_stale=True) is None

    def test_directory_created_lazily(self, tmp_path, clock):
        root = tmp_path / "not" / "yet"
        store = FileTTLCache(root, clock=clock)
        assert not root.exists()
        assert store.get("k") is None
        assert not root.exists()
        store.set("k", 1)
        assert root.is_dir()


class TestExpiry:
    def test_fresh_until_expiry_instant(self, store, clock):
        store.set("k", "v", ttl_seconds=1)
        assert store.get("k") == "v"
        clock.advance(1)
        assert store.get("k") == "v"
        clock.advance(1)
        assert store.get("k") is None

    def test_stale_read_after_expiry(self, store, clock):
        store.set("k", {"a": [1, 2]}, ttl_seconds=1)
        clock.advance(5)
        assert store.get("k") is None
        assert store.get("k", allow_stale=True) == {"a": [1, 2]}

    def test_expired_record_is_not_deleted(self, store, clock):
        store.set("k", "v", ttl_seconds=1)
        clock.advance(10)
        store.get("k")
        assert store.path_for("k").exists()

    def test_record_fields(self, store, clock):
        store.set("k", "v", ttl_seconds=300)
        record = json.loads(store.path_for("k").read_text(encoding="utf-8"))
        assert record["expires_at"] == int(clock.now) + 300
        assert record["stored_at"] == int(clock.now * 1000)
        assert record["value"] == "v"

    def test_default_ttl_is_one_hour(self, store, clock):
        store.set("k", "v")
        clock.advance(3600)
        assert store.get("k") == "v"
        clock.advance(1)
        assert store.get("k") is None


class TestOverwrite:
    def test_second_write_replaces_value_and_expiry(self, store, clock):
        store.set("k", "v1", ttl_seconds=10)
        clock.advance(5)
        store.set("k", "v2", ttl_seconds=100)
        assert store.get("k") == "v2"
        clock.advance(50)
        assert store.get("k") == "v2"

    def test_shorter_ttl_on_overwrite(self, store, clock):
        store.set("k", "v1", ttl_seconds=1000)
        store.set("k", "v2", ttl_seconds=1)
        clock.advance(2)
        assert store.get("k") is None
        assert store.get("k", allow_stale=True) == "v2"

    def test_no_merge_of_dicts(self, store):
        store.set("k", {"a": 1, "b": 2})
        store.set("k", {"c": 3})
        assert store.get("k") == {"c": 3}


class TestKeyOpacity:
    def test_shared_prefixes_do_not_collide(self, store):
        store.set("mgnrega:uttar pradesh:varanasi:recent:12", "twelve")
        store.set("mgnrega:uttar pradesh:varanasi:recent:1", "one")
        assert store.get("mgnrega:uttar pradesh:varanasi:recent:12") == "twelve"
        assert store.get("mgnrega:uttar pradesh:varanasi:recent:1") == "one"

    def test_case_is_significant(self, store):
        store.set("districts:KERALA", "upper")
        store.set("districts:kerala", "lower")
        assert store.get("districts:KERALA") == "upper"
        assert store.get("districts:kerala") == "lower"

    @pytest.mark.parametrize(
        "key",
        [
            "geolocate:gps:26.8467:80.9462",
            "mgnrega:तमिल नाडु:चेन्नई:recent:6",
            "path/like/../key?with=query&chars",
            "???>>>",
            " leading and trailing ",
        ],
    )
    def test_unsafe_characters(self, store, key):
        store.set(key, {"key": key})
        assert store.get(key) == {"key": key}
        assert store.path_for(key).parent == store.root

    def test_long_keys(self, store):
        long_a = "mgnrega:" + "x" * 500 + ":a"
        long_b = "mgnrega:" + "x" * 500 + ":b"
        store.set(long_a, "a")
        store.set(long_b, "b")
        assert store.get(long_a) == "a"
        assert store.get(long_b) == "b"
        assert len(store.path_for(long_a).name) < 255

    def test_lone_surrogate_in_key(self, store):
        key = "geolocate:gps:\ud800:1"
        assert store.get(key) is None
        store.set(key, {"district": "Lucknow"})
        assert store.write_failures == 0
        assert store.get(key) == {"district": "Lucknow"}
        assert store.get("geolocate:gps:\ud801:1") is None

    def test_record_for_another_key_is_a_miss(self, store):
        store.set("real", "value")
        store.path_for("real").rename(store.path_for("other"))
        assert store.get("other") is None


class TestCorruption:
    @pytest.mark.parametrize(
        "content",
        ["{not json", "", "[1, 2, 3]", '"just a string"', '{"value": 1}', '{"expires_at": "soon", "value": 1}'],
    )
    def test_unparsable_record_is_a_miss(self, store, content):
        store.set("k", "v")
        store.path_for("k").write_text(content, encoding="utf-8")
        assert store.get("k") is None
        assert store.get("k", allow_stale=True) is None

    def test_binary_garbage(self, store):
        store.set("k", "v")
        store.path_for("k").write_bytes(b"\xff\xfe\x00garbage")
        assert store.get("k") is None


class TestWriteFailures:
    def test_unserializable_value_is_swallowed(self, store):
        store.set("k", {"fn": object()})
        assert store.write_failures == 1
        assert store.get("k") is None

    def test_failed_write_keeps_previous_record(self, store):
        store.set("k", "good")
        store.set("k", {"bad": object()})
        assert store.get("k") == "good"

    def test_unwritable_root_is_swallowed(self, tmp_path, clock):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = FileTTLCache(blocker / "cache", clock=clock)
        store.set("k", "v")
        assert store.write_failures == 1
        assert store.get("k") is None

    def test_no_temp_files_left_behind(self, store):
        store.set("k", "v")
        store.set("k", {"bad": object()})
        assert [p.name for p in store.root.iterdir()] == [store.path_for("k").name]


def test_districts_scenario(store, clock):
    value = {"districts": ["Kollam", "Kottayam"], "count": 2}
    store.set("districts:KERALA", value, 86400)
    assert store.get("districts:KERALA") == value

    clock.advance(86400 + 1)
    assert store.get("districts:KERALA") is None
    assert store.get("districts:KERALA", allow_stale=True) == value


def test_state_survives_new_instance(tmp_path, clock):
    FileTTLCache(tmp_path, clock=clock).set("k", [1, 2])
    assert FileTTLCache(tmp_path, clock=clock).get("k") == [1, 2]
