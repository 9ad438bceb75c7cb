"""Tests for the version store."""
import gc
import json
import threading
from datetime import datetime, timezone

import pytest

from confkeeper.errors import CorruptionError, NotFoundError, ParseError
from confkeeper.version_store import (
    ConfigVersion,
    VersionIndex,
    VersionMetadata,
    VersionStore,
    checksum,
    plan_cleanup,
)


def make_metadata(version_id: str, is_auto_save: bool) -> VersionMetadata:
    return VersionMetadata(
        id=version_id,
        software_id="zsh",
        timestamp=datetime(2026, 1, 13, 10, 0, 0, tzinfo=timezone.utc),
        note=None,
        is_auto_save=is_auto_save,
        checksum="0" * 16,
        file_name=f"{version_id}.json",
    )


class TestChecksum:
    """Tests for the content checksum."""

    def test_deterministic(self):
        """Same content always hashes the same."""
        assert checksum("export A=1") == checksum("export A=1")

    def test_fixed_width_hex(self):
        """Digest is 16 lowercase hex characters regardless of input size."""
        for content in ["", "x", "y" * 100_000]:
            digest = checksum(content)
            assert len(digest) == 16
            int(digest, 16)

    def test_differs_on_change(self):
        """Different content gives a different digest."""
        assert checksum("export A=1") != checksum("export A=2")

    def test_lone_surrogate(self):
        """Content that is not valid UTF-8 still hashes."""
        assert checksum("\ud800") != checksum("\udc00")
        assert len(checksum("\ud800")) == 16


class TestVersionIndex:
    """Tests for VersionIndex structure operations."""

    def test_defaults(self):
        """Fresh index is empty with the default bound."""
        index = VersionIndex()
        assert len(index) == 0
        assert index.max_versions == 20
        assert index.last is None

    def test_append_find_remove(self):
        """Entries can be appended, found and removed by id."""
        index = VersionIndex()
        index.append(make_metadata("a", True))
        index.append(make_metadata("b", False))

        assert index.last.id == "b"
        assert index.find_by_id("a").id == "a"
        assert index.find_by_id("zzz") is None

        removed = index.remove_by_id("a")
        assert removed.id == "a"
        assert index.remove_by_id("a") is None
        assert [v.id for v in index.versions] == ["b"]

    def test_append_duplicate_id(self):
        """Ids are unique within an index."""
        index = VersionIndex()
        index.append(make_metadata("a", True))
        with pytest.raises(ValueError):
            index.append(make_metadata("a", False))

    def test_tail(self):
        """Tail returns the newest entries in chronological order."""
        index = VersionIndex()
        for version_id in "abcd":
            index.append(make_metadata(version_id, True))

        assert [v.id for v in index.tail()] == ["a", "b", "c", "d"]
        assert [v.id for v in index.tail(2)] == ["c", "d"]
        assert [v.id for v in index.tail(10)] == ["a", "b", "c", "d"]
        assert index.tail(0) == []

    def test_dict_roundtrip(self):
        """Index survives serialization to its persisted form."""
        index = VersionIndex(max_versions=5)
        index.append(make_metadata("a", True))

        restored = VersionIndex.from_dict(json.loads(json.dumps(index.to_dict())))

        assert restored.max_versions == 5
        assert restored.versions == index.versions

    def test_from_dict_rejects_bad_shapes(self):
        """Malformed records raise ParseError."""
        with pytest.raises(ParseError):
            VersionIndex.from_dict([])
        with pytest.raises(ParseError):
            VersionIndex.from_dict({"versions": {}, "max_versions": 3})
        with pytest.raises(ParseError):
            VersionIndex.from_dict({"versions": [], "max_versions": -1})
        with pytest.raises(ParseError):
            VersionIndex.from_dict({"versions": [{"id": "a"}]})

    def test_from_dict_rejects_duplicate_ids(self):
        """A persisted index listing the same id twice is malformed."""
        entry = make_metadata("a", True).to_dict()
        with pytest.raises(ParseError) as exc:
            VersionIndex.from_dict({"versions": [entry, dict(entry)], "max_versions": 20})
        assert "Duplicate" in str(exc.value)


class TestConfigVersion:
    """Tests for ConfigVersion serialization."""

    def test_to_dict_exposes_created_at(self):
        """The timestamp is exposed to callers as created_at."""
        version = ConfigVersion.from_metadata(make_metadata("a", False), "text", {"k": 1})

        data = version.to_dict()

        assert data == {
            "id": "a",
            "software_id": "zsh",
            "content": "text",
            "parsed_content": {"k": 1},
            "created_at": "2026-01-13T10:00:00+00:00",
            "note": None,
            "is_auto_save": False,
            "checksum": "0" * 16,
        }
        assert "timestamp" not in data


class TestRetention:
    """Tests for the auto-save retention function."""

    def test_under_limit_keeps_all(self):
        """Nothing is evicted while auto-saves fit in the bound."""
        versions = [make_metadata("a", True), make_metadata("b", True)]
        kept, evicted = plan_cleanup(versions, 2)
        assert kept == versions
        assert evicted == []

    def test_evicts_oldest_auto_saves(self):
        """The oldest excess auto-saves go, order is preserved."""
        versions = [make_metadata(i, True) for i in "abcde"]
        kept, evicted = plan_cleanup(versions, 3)
        assert [v.id for v in kept] == ["c", "d", "e"]
        assert [v.id for v in evicted] == ["a", "b"]

    def test_manual_saves_never_evicted(self):
        """Manual saves stay in place regardless of the bound."""
        versions = [
            make_metadata("a1", True),
            make_metadata("m1", False),
            make_metadata("a2", True),
            make_metadata("m2", False),
            make_metadata("a3", True),
        ]
        kept, evicted = plan_cleanup(versions, 1)
        assert [v.id for v in kept] == ["m1", "m2", "a3"]
        assert [v.id for v in evicted] == ["a1", "a2"]

    def test_zero_bound(self):
        """A bound of zero keeps only manual saves."""
        versions = [make_metadata("m", False), make_metadata("a", True)]
        kept, evicted = plan_cleanup(versions, 0)
        assert [v.id for v in kept] == ["m"]
        assert [v.id for v in evicted] == ["a"]


class TestVersionStore:
    """Tests for VersionStore."""

    @pytest.fixture
    def store(self, tmp_path):
        """Create a VersionStore in a temporary directory."""
        return VersionStore(tmp_path / "versions")

    def test_directory_creation(self, tmp_path):
        """The versions root is created on init."""
        VersionStore(tmp_path / "data" / "versions")
        assert (tmp_path / "data" / "versions").is_dir()

    def test_save_writes_blob_and_index(self, store):
        """A save lays out index.json and one blob per version."""
        version = store.save_version("zsh", "export A=1", note="first")

        software_dir = store.base_path / "zsh"
        index = json.loads((software_dir / "index.json").read_text())
        blob = json.loads((software_dir / f"{version.id}.json").read_text())

        assert index["max_versions"] == 20
        assert index["versions"][0]["id"] == version.id
        assert index["versions"][0]["note"] == "first"
        assert index["versions"][0]["checksum"] == checksum("export A=1")
        assert blob == {"content": "export A=1", "parsed_content": None}

    def test_idempotent_auto_save(self, store):
        """Unchanged consecutive auto-saves collapse into one entry."""
        first = store.save_version("zsh", "export A=1", is_auto_save=True)
        second = store.save_version("zsh", "export A=1", is_auto_save=True)

        assert second.id == first.id
        assert second.timestamp == first.timestamp
        assert len(store.get_history("zsh")) == 1

    def test_auto_save_echoes_caller_parsed_content(self, store):
        """A deduplicated auto-save still returns what the caller passed."""
        store.save_version("zsh", "export A=1", {"old": True}, is_auto_save=True)
        echoed = store.save_version("zsh", "export A=1", {"new": True}, is_auto_save=True)

        assert echoed.parsed_content == {"new": True}
        assert store.get_version("zsh", echoed.id).parsed_content == {"old": True}

    def test_auto_save_dedups_against_manual(self, store):
        """Dedup compares with the last entry whatever its kind."""
        manual = store.save_version("zsh", "export A=1", note="edit")
        auto = store.save_version("zsh", "export A=1", is_auto_save=True)

        assert auto.id == manual.id
        assert auto.note == "edit"
        assert len(store.get_history("zsh")) == 1

    def test_dedup_only_consecutive(self, store):
        """Content seen earlier in history is saved again if it is not the last entry."""
        store.save_version("zsh", "A", is_auto_save=True)
        store.save_version("zsh", "B", is_auto_save=True)
        store.save_version("zsh", "A", is_auto_save=True)

        assert [v.content for v in store.get_history("zsh")] == ["A", "B", "A"]

    def test_manual_save_always_appends(self, store):
        """Identical manual saves create distinct entries."""
        first = store.save_version("zsh", "export A=1")
        second = store.save_version("zsh", "export A=1")

        assert first.id != second.id
        assert len(store.get_history("zsh")) == 2

    def test_retention_bound(self, store):
        """Only the newest max_versions auto-saves are kept."""
        store.set_max_versions("zsh", 3)
        for i in range(5):
            store.save_version("zsh", f"export A={i}", is_auto_save=True)

        history = store.get_history("zsh")

        assert [v.content for v in history] == ["export A=4", "export A=3", "export A=2"]
        blobs = [p for p in (store.base_path / "zsh").glob("*.json") if p.name != "index.json"]
        assert len(blobs) == 3

    def test_manual_saves_survive_eviction(self, store):
        """Manual saves are exempt from auto-save cleanup."""
        store.set_max_versions("zsh", 1)
        manual = store.save_version("zsh", "manual", note="keep me")
        for i in range(3):
            store.save_version("zsh", f"auto {i}", is_auto_save=True)

        history = store.get_history("zsh")

        assert [v.content for v in history] == ["auto 2", "manual"]
        assert history[1].id == manual.id

    def test_manual_save_does_not_trigger_cleanup(self, store):
        """Cleanup only runs after auto-saves."""
        for i in range(3):
            store.save_version("zsh", f"auto {i}", is_auto_save=True)
        store.indexes.save("zsh", VersionIndex(store.indexes.load("zsh").versions, max_versions=1))

        store.save_version("zsh", "manual")

        assert len(store.get_history("zsh")) == 4

    def test_set_max_versions_evicts_immediately(self, store):
        """Lowering the bound prunes old auto-saves and their blobs."""
        saved = [store.save_version("zsh", f"auto {i}", is_auto_save=True) for i in range(4)]

        store.set_max_versions("zsh", 2)

        assert store.get_max_versions("zsh") == 2
        assert [v.id for v in store.get_history("zsh")] == [saved[3].id, saved[2].id]
        assert not (store.base_path / "zsh" / f"{saved[0].id}.json").exists()

    def test_set_max_versions_rejects_negative(self, store):
        """The bound must be a non-negative integer."""
        with pytest.raises(ValueError):
            store.set_max_versions("zsh", -1)

    def test_get_max_versions_default(self, tmp_path):
        """Unknown software reports the configured default."""
        store = VersionStore(tmp_path, default_max_versions=7)
        assert store.get_max_versions("vim") == 7

    def test_round_trip(self, store):
        """Stored content and parsed content come back unchanged."""
        content = "set number\n\" ünïcödé comment\n"
        parsed = {"settings": {"number": True}, "lines": ["a", "b"], "count": 3, "none": None}

        saved = store.save_version("vim", content, parsed, note="n")
        loaded = store.get_version("vim", saved.id)

        assert loaded.content == content
        assert loaded.parsed_content == parsed
        assert loaded.note == "n"
        assert loaded.timestamp == saved.timestamp
        assert loaded.checksum == saved.checksum

    def test_history_limit(self, store):
        """Limit selects the newest versions, newest first."""
        for i in range(4):
            store.save_version("zsh", f"v{i}")

        assert [v.content for v in store.get_history("zsh", limit=2)] == ["v3", "v2"]
        assert store.get_history("zsh", limit=0) == []
        assert len(store.get_history("zsh", limit=10)) == 4
        with pytest.raises(ValueError):
            store.get_history("zsh", limit=-1)

    def test_history_empty(self, store):
        """Software with no saves has an empty history."""
        assert store.get_history("nothing") == []

    def test_get_version_not_found(self, store):
        """Unknown version ids raise NotFoundError."""
        store.save_version("zsh", "x")
        with pytest.raises(NotFoundError):
            store.get_version("zsh", "missing")

    def test_delete_is_idempotent(self, store):
        """Deleting twice, or deleting an unknown id, succeeds."""
        version = store.save_version("zsh", "x")

        store.delete_version("zsh", version.id)
        store.delete_version("zsh", version.id)
        store.delete_version("zsh", "never-existed")
        store.delete_version("unknown-software", "never-existed")

        with pytest.raises(NotFoundError):
            store.get_version("zsh", version.id)
        assert not (store.base_path / "zsh" / f"{version.id}.json").exists()

    def test_delete_with_blob_already_gone(self, store):
        """A missing blob does not block deleting its entry."""
        version = store.save_version("zsh", "x")
        (store.base_path / "zsh" / f"{version.id}.json").unlink()

        store.delete_version("zsh", version.id)

        assert store.get_history("zsh") == []

    def test_missing_blob_is_corruption(self, store):
        """A referenced blob that vanished fails the whole read."""
        store.save_version("zsh", "a")
        broken = store.save_version("zsh", "b")
        (store.base_path / "zsh" / f"{broken.id}.json").unlink()

        with pytest.raises(CorruptionError):
            store.get_history("zsh")
        with pytest.raises(CorruptionError):
            store.get_version("zsh", broken.id)

    def test_malformed_index_is_parse_error(self, store):
        """Garbage in index.json raises ParseError."""
        software_dir = store.base_path / "zsh"
        software_dir.mkdir()
        (software_dir / "index.json").write_text("{not json")

        with pytest.raises(ParseError):
            store.get_history("zsh")
        with pytest.raises(ParseError):
            store.save_version("zsh", "x")

    def test_malformed_blob_is_parse_error(self, store):
        """A blob without string content raises ParseError."""
        version = store.save_version("zsh", "x")
        (store.base_path / "zsh" / f"{version.id}.json").write_text('{"content": 5}')

        with pytest.raises(ParseError):
            store.get_version("zsh", version.id)

    def test_software_are_partitioned(self, store):
        """Histories of different software never mix."""
        store.save_version("zsh", "zsh config")
        store.save_version("vim", "vim config")

        assert [v.content for v in store.get_history("zsh")] == ["zsh config"]
        assert [v.content for v in store.get_history("vim")] == ["vim config"]
        assert store.list_software() == ["vim", "zsh"]

    @pytest.mark.parametrize("bad_id", ["", ".", "..", "../etc", "a/b", "a\\b"])
    def test_invalid_software_id(self, store, bad_id):
        """Ids that could escape the versions root are rejected."""
        with pytest.raises(ValueError):
            store.save_version(bad_id, "x")

    def test_no_temp_files_left(self, store):
        """Atomic writes clean up after themselves."""
        store.save_version("zsh", "x")
        leftovers = list((store.base_path / "zsh").glob("*.tmp"))
        assert leftovers == []

    def test_concrete_scenario(self, store):
        """Auto-save dedup followed by a manual edit."""
        s1 = store.save_version("zsh", "export A=1", is_auto_save=True)
        again = store.save_version("zsh", "export A=1", is_auto_save=True)
        s2 = store.save_version("zsh", "export A=2", note="edit")

        assert again.id == s1.id
        assert s2.id != s1.id
        assert [v.id for v in store.get_history("zsh")] == [s2.id, s1.id]

    def test_concurrent_saves_are_not_lost(self, store):
        """Parallel saves for one software all land in the index."""
        threads_count = 8
        saves_per_thread = 10

        def worker(n):
            for i in range(saves_per_thread):
                store.save_version("zsh", f"thread {n} save {i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(threads_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        history = store.get_history("zsh")
        assert len(history) == threads_count * saves_per_thread
        assert len({v.id for v in history}) == len(history)

    def test_get_max_versions_takes_lock(self, store):
        """Reading the bound goes through the per-software lock."""
        lock = store._lock_for("zsh")
        seen = []

        def reader():
            seen.append(store.get_max_versions("zsh"))

        with lock:
            thread = threading.Thread(target=reader)
            thread.start()
            thread.join(timeout=0.2)
            assert thread.is_alive()
            assert seen == []
        thread.join()
        assert seen == [20]

    def test_invalid_software_id_creates_no_lock(self, store):
        """Rejected ids never get a lock entry."""
        with pytest.raises(ValueError):
            store.get_max_versions("../etc")
        assert "../etc" not in store._locks

    def test_locks_released_after_use(self, store):
        """Per-software locks do not outlive the operations using them."""
        store.save_version("zsh", "x")
        store.get_history("zsh")
        gc.collect()
        assert "zsh" not in store._locks

    def test_list_software_ignores_dirs_without_index(self, store):
        """Only directories holding an index count as software."""
        store.save_version("zsh", "x")
        (store.base_path / "stray").mkdir()
        (store.base_path / "notes.txt").write_text("hi")

        assert store.list_software() == ["zsh"]
        assert store.indexes.exists("zsh")
        assert not store.indexes.exists("stray")

    def test_lone_surrogate_round_trips(self, store):
        """Strings that are not valid UTF-8 are stored and read back intact."""
        saved = store.save_version("vscode", '{"a": "\\ud800"}', {"a": "\ud800"})

        loaded = store.get_version("vscode", saved.id)

        assert loaded.parsed_content == {"a": "\ud800"}
        assert loaded.content == '{"a": "\\ud800"}'
        assert list((store.base_path / "vscode").glob("*.tmp")) == []

    def test_lone_surrogate_in_raw_content_round_trips(self, store):
        """Raw content with an unpaired surrogate also survives storage."""
        saved = store.save_version("vscode", "x = \udc80")

        assert store.get_version("vscode", saved.id).content == "x = \udc80"
        assert saved.checksum == checksum("x = \udc80")

    def test_unserializable_parsed_content_is_parse_error(self, store):
        """A value JSON cannot hold fails cleanly and records nothing."""
        with pytest.raises(ParseError):
            store.save_version("vscode", "{}", object())

        assert store.get_history("vscode") == []
        software_dir = store.base_path / "vscode"
        if software_dir.exists():
            assert list(software_dir.iterdir()) == []

    def test_parsed_content_comes_back_as_json(self, store):
        """Structured content is stored as JSON: keys become strings, tuples lists."""
        saved = store.save_version("vscode", "{}", {1: "a", "pair": (1, 2)})

        loaded = store.get_version("vscode", saved.id)

        assert loaded.parsed_content == {"1": "a", "pair": [1, 2]}
