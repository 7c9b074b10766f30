"""
Tests for the Pantry store handle.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path, PurePath

import pytest

from pantry.config import Settings
from pantry.exceptions import InvalidKeyError
from pantry.filestore import MemoryFileStore
from pantry.pantry import Pantry
from pantry.types import Expiry, StorageRoot
from support import Address, ManualClock, Person


def write_legacy(pantry: Pantry, key: str, document: dict) -> Path:
    path = Path(pantry.path_for(key, StorageRoot.LEGACY))
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


class TestRoundTrip:
    """Test that packed values come back unchanged."""

    @pytest.mark.parametrize(
        "value",
        [
            {"name": "Ann", "age": 30},
            [1, "two", 3.5, None, True, {"nested": ["x"]}],
            "plain string",
            42,
            None,
        ],
    )
    def test_pack_then_unpack(self, pantry: Pantry, value: object) -> None:
        assert pantry.pack("k", value) is True
        assert pantry.unpack("k") == value

    def test_tuples_are_stored_as_lists(self, pantry: Pantry) -> None:
        pantry.pack("k", (1, 2))
        assert pantry.unpack("k") == [1, 2]

    def test_storable_round_trip(self, pantry: Pantry) -> None:
        person = Person(
            name="Ann",
            age=30,
            nicknames=["annie"],
            address=Address("1 Main St", "Springfield"),
            previous_addresses=[Address("Old Rd", "Ogdenville")],
        )
        assert pantry.pack("person", person) is True
        assert pantry.unpack("person", Person) == person

    def test_list_of_storables(self, pantry: Pantry) -> None:
        people = [Person("Ann", 30), Person("Bob", 41)]
        pantry.pack("people", people)
        assert pantry.unpack_list("people", Person) == people

    def test_in_memory_store(self, memory_pantry: Pantry, memory_store: MemoryFileStore) -> None:
        memory_pantry.pack("k", {"a": 1})
        assert memory_pantry.unpack("k") == {"a": 1}
        assert PurePath("/primary/pantry/k") in memory_store.files


class TestTypedUnpack:
    """Test typed retrieval of whole records."""

    def test_scalar_type_match(self, pantry: Pantry) -> None:
        pantry.pack("count", 3)
        assert pantry.unpack("count", int) == 3
        assert pantry.unpack("count", float) == 3.0
        assert pantry.unpack("count", str) is None

    def test_storable_construction_failure_is_none(self, pantry: Pantry) -> None:
        pantry.pack("person", {"name": "Ann"})
        assert pantry.unpack("person", Person) is None

    def test_scalar_list_drops_incompatible_element(self, pantry: Pantry) -> None:
        pantry.pack("tags", ["a", "b", 3, "c"])
        assert pantry.unpack_list("tags", str) == ["a", "b", "c"]

    def test_unpack_list_of_non_list_is_none(self, pantry: Pantry) -> None:
        pantry.pack("k", {"a": 1})
        assert pantry.unpack_list("k", str) is None
        assert pantry.unpack_list("missing", str) is None

    def test_warehouse_reads_record_once(self, pantry: Pantry) -> None:
        pantry.pack("user", {"name": "Ann", "tags": ["x", 1]})
        warehouse = pantry.warehouse("user")

        assert warehouse.get("name", str) == "Ann"
        pantry.expire("user")
        # Payload was loaded on first access
        assert warehouse.get_list("tags", str) == ["x"]
        assert pantry.warehouse("user").get("name", str) is None


class TestExpiry:
    """Test time-to-live behaviour."""

    def test_scenario_user_expires(
        self, pantry: Pantry, clock: ManualClock, primary_root: Path
    ) -> None:
        """Write with a 2s TTL, read immediately, then again after 3s."""
        pantry.pack("user", {"name": "Ann", "age": 30}, expires=2)
        assert pantry.unpack("user") == {"name": "Ann", "age": 30}

        clock.advance(3)
        assert pantry.unpack("user") is None
        assert not (primary_root / "pantry" / "user").exists()

    def test_expired_record_removed_from_both_roots(
        self, pantry: Pantry, clock: ManualClock
    ) -> None:
        pantry.pack("k", 1, expires=timedelta(seconds=5))
        legacy = write_legacy(pantry, "k", {"storage": 2})

        clock.advance(5.5)
        assert pantry.exists("k") is False
        assert not Path(pantry.path_for("k")).exists()
        assert not legacy.exists()

    def test_absolute_expiry(self, pantry: Pantry, clock: ManualClock) -> None:
        deadline = datetime.fromtimestamp(clock.now + 60, tz=timezone.utc)
        pantry.pack("k", 1, expires=deadline)

        clock.advance(59)
        assert pantry.exists("k")
        clock.advance(1)
        assert not pantry.exists("k")

    def test_record_without_expiry_never_expires(
        self, pantry: Pantry, clock: ManualClock
    ) -> None:
        write_legacy(pantry, "old", {"storage": "from an older version"})
        clock.advance(10**9)
        assert pantry.unpack("old") == "from an older version"

    def test_default_expiry_applies_when_none_given(
        self, primary_root: Path, legacy_root: Path, clock: ManualClock
    ) -> None:
        pantry = Pantry(
            primary_root, legacy_root, clock=clock, default_expiry=Expiry.seconds(10)
        )
        pantry.pack("defaulted", 1)
        pantry.pack("forever", 1, expires=None)

        clock.advance(11)
        assert not pantry.exists("defaulted")
        assert pantry.exists("forever")


class TestWriteSafety:
    """Test that failed writes never disturb stored records."""

    def test_unrepresentable_value_keeps_previous_record(self, pantry: Pantry) -> None:
        pantry.pack("k", {"v": 1})
        assert pantry.pack("k", {"v": object()}) is False
        assert pantry.unpack("k") == {"v": 1}

    def test_non_string_keys_are_rejected(self, pantry: Pantry) -> None:
        assert pantry.pack("k", {1: "one"}) is False
        assert pantry.exists("k") is False

    def test_cyclic_value_returns_false(self, pantry: Pantry) -> None:
        pantry.pack("k", ["kept"])
        cyclic: list = []
        cyclic.append(cyclic)

        assert pantry.pack("k", cyclic) is False
        assert pantry.unpack("k") == ["kept"]

    def test_deeply_nested_value_returns_false(self, pantry: Pantry) -> None:
        nested: list = []
        for _ in range(5000):
            nested = [nested]
        assert pantry.pack("deep", nested) is False
        assert pantry.exists("deep") is False

    def test_unsupported_expiry_returns_false(self, pantry: Pantry) -> None:
        pantry.pack("k", 1)
        assert pantry.pack("k", 2, expires="10") is False  # type: ignore[arg-type]
        assert pantry.unpack("k") == 1

    def test_invalid_key_is_checked_before_expiry(self, pantry: Pantry) -> None:
        with pytest.raises(InvalidKeyError):
            pantry.pack("a/b", 1, expires="10")  # type: ignore[arg-type]

    def test_invalid_key_raises(self, pantry: Pantry) -> None:
        with pytest.raises(InvalidKeyError):
            pantry.pack("../escape", 1)
        with pytest.raises(InvalidKeyError):
            pantry.unpack("")


class TestLegacyRoot:
    """Test read-compatibility with the legacy root."""

    def test_legacy_only_key_is_read(self, pantry: Pantry) -> None:
        write_legacy(pantry, "old", {"storage": {"a": 1}, "expires": None})
        assert pantry.exists("old")
        assert pantry.unpack("old") == {"a": 1}

    def test_primary_wins(self, pantry: Pantry) -> None:
        write_legacy(pantry, "k", {"storage": "legacy"})
        pantry.pack("k", "primary")
        assert pantry.unpack("k") == "primary"

    def test_writes_never_touch_legacy(self, pantry: Pantry) -> None:
        legacy = write_legacy(pantry, "k", {"storage": "legacy"})
        pantry.pack("k", "primary")
        assert json.loads(legacy.read_text())["storage"] == "legacy"

    def test_expire_removes_both(self, pantry: Pantry) -> None:
        write_legacy(pantry, "k", {"storage": "legacy"})
        pantry.pack("k", "primary")

        assert pantry.expire("k") is True
        assert pantry.unpack("k") is None


class TestRemoveAll:
    """Test clearing every record."""

    def test_remove_all_empties_both_roots(
        self, pantry: Pantry, primary_root: Path, legacy_root: Path
    ) -> None:
        for key in ("a", "b", "c"):
            pantry.pack(key, key)
        write_legacy(pantry, "d", {"storage": "d"})

        assert pantry.remove_all() is True
        assert not (primary_root / "pantry").exists()
        assert not (legacy_root / "pantry").exists()
        for key in ("a", "b", "c", "d"):
            assert pantry.exists(key) is False

    def test_store_is_usable_after_remove_all(self, pantry: Pantry) -> None:
        pantry.pack("a", 1)
        pantry.remove_all()
        assert pantry.pack("a", 2) is True
        assert pantry.unpack("a") == 2


class TestFromSettings:
    """Test building a store handle from configuration."""

    def test_uses_configured_roots(self, mock_settings: Settings) -> None:
        pantry = Pantry.from_settings(mock_settings)
        pantry.pack("k", 1)
        assert (mock_settings.primary_dir / "k").exists()
        assert pantry.default_expiry == Expiry.never()

    def test_default_ttl(self, mock_settings: Settings, clock: ManualClock) -> None:
        settings = mock_settings.model_copy(update={"PANTRY_DEFAULT_TTL": 5.0})
        pantry = Pantry.from_settings(settings, clock=clock)
        pantry.pack("k", 1)

        clock.advance(6)
        assert pantry.exists("k") is False
