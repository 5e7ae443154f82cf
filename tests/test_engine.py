# tests/test_engine.py
"""Tests for the transition engine."""

import json
import random
import tempfile
from pathlib import Path

import pytest

from collabart.config import EngineConfig
from collabart.engine import Engine
from collabart.errors import ErrorKind, SnapshotError
from collabart.events import ActivityType
from collabart.ids import IdSequence


@pytest.fixture
def engine():
    return Engine()


@pytest.fixture
def minted(engine):
    """Engine with one finalized artwork and its NFT."""
    engine.register_artist("artist1", "John Doe")
    engine.register_artist("collector", "Art Collector")
    engine.create_artwork("artist1", "My Artwork", "A beautiful piece")
    engine.finalize_artwork("artist1", 1)
    engine.mint_nft("artist1", 1, 1000)
    return engine


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestScenarios:
    """End-to-end flows."""

    def test_register_create_contribute(self, engine):
        assert engine.register_artist("artist1", "John Doe").ok
        assert engine.create_artwork("artist1", "T", "D").value == 1

        result = engine.add_contribution("artist1", 1, 50)

        assert result.ok
        artwork = engine.get_artwork(1)
        assert artwork.total_contributions == 150
        assert artwork.collaborators == ["artist1", "artist1"]

    def test_finalize_flow(self, engine):
        engine.register_artist("artist1", "John Doe")
        engine.register_artist("artist2", "Jane Doe")
        engine.create_artwork("artist1", "T", "D")

        assert engine.finalize_artwork("artist2", 1).code == 102
        assert engine.finalize_artwork("artist1", 1).ok
        assert engine.get_artwork(1).is_finalized
        assert engine.finalize_artwork("artist1", 1).code == 102

    def test_mint_flow(self, engine):
        engine.register_artist("artist1", "John Doe")
        engine.create_artwork("artist1", "T", "D")

        assert engine.mint_nft("artist1", 1, 1000).code == 102
        engine.finalize_artwork("artist1", 1)
        result = engine.mint_nft("artist1", 1, 1000)
        assert result.ok
        assert result.value == 1
        assert engine.mint_nft("artist1", 1, 1000).code == 103

    def test_buy(self, minted):
        result = minted.buy_nft("collector", 1)

        assert result.ok
        assert result.value is True
        assert minted.get_nft(1).owner == "collector"

    def test_buy_changes_only_owner(self, minted):
        before = minted.get_nft(1).to_dict()
        minted.buy_nft("collector", 1)
        after = minted.get_nft(1).to_dict()

        assert after.pop("owner") == "collector"
        before.pop("owner")
        assert after == before

    def test_buy_missing(self, minted):
        result = minted.buy_nft("collector", 2)
        assert result.error == ErrorKind.NFT_NOT_FOUND
        assert result.code == 101


class TestAllOrNothing:
    """Rejected operations leave state untouched."""

    def test_unregistered_create_keeps_counter(self, engine):
        result = engine.create_artwork("stranger", "T", "D")

        assert result.code == 102
        assert engine.next_artwork_id == 1
        assert len(engine.artworks) == 0

    def test_failed_operations_change_nothing(self, minted):
        before = minted.snapshot()

        minted.register_artist("artist1", "Again")
        minted.create_artwork("stranger", "T", "D")
        minted.add_contribution("artist1", 1, 10)
        minted.add_contribution("artist1", 9, 10)
        minted.finalize_artwork("collector", 1)
        minted.finalize_artwork("artist1", 1)
        minted.mint_nft("artist1", 1, 5)
        minted.mint_nft("artist1", 9, 5)
        minted.buy_nft("collector", 9)

        assert minted.snapshot() == before

    def test_ids_not_reused_after_failures(self, engine):
        engine.register_artist("a", "A")
        engine.create_artwork("a", "T", "D")
        engine.create_artwork("nobody", "T", "D")
        assert engine.create_artwork("a", "T2", "D").value == 2


class TestInvariants:
    """Invariants hold after arbitrary operation sequences."""

    def test_random_operations_keep_invariants(self, engine):
        rng = random.Random(1234)
        callers = ["a", "b", "c", "d"]
        for _ in range(500):
            caller = rng.choice(callers)
            op = rng.randrange(6)
            if op == 0:
                engine.register_artist(caller, caller.upper())
            elif op == 1:
                engine.create_artwork(caller, "T", "D")
            elif op == 2:
                engine.add_contribution(caller, rng.randint(1, 10), rng.randint(0, 50))
            elif op == 3:
                engine.finalize_artwork(caller, rng.randint(1, 10))
            elif op == 4:
                engine.mint_nft(caller, rng.randint(1, 10), rng.randint(1, 100))
            else:
                engine.buy_nft(caller, rng.randint(1, 5))

        assert engine.check_invariants() == []
        for artwork in engine.artworks:
            assert artwork.total_contributions == sum(artwork.contributions)
            assert len(artwork.collaborators) == len(artwork.contributions)

    def test_check_invariants_reports_corruption(self, minted):
        minted.get_artwork(1).total_contributions = 1
        errors = minted.check_invariants()
        assert len(errors) == 1
        assert "total" in errors[0]


class TestIsolation:
    """Engines do not share state."""

    def test_independent_engines(self):
        first = Engine()
        second = Engine()
        first.register_artist("a", "A")
        first.create_artwork("a", "T", "D")

        assert not second.is_registered("a")
        assert second.next_artwork_id == 1
        second.register_artist("a", "A")
        assert second.create_artwork("a", "T", "D").value == 1

    def test_config_sequences(self):
        engine = Engine(EngineConfig(first_artwork_id=10, first_nft_id=20, initial_contribution=1))
        engine.register_artist("a", "A")
        assert engine.create_artwork("a", "T", "D").value == 10
        engine.finalize_artwork("a", 10)
        assert engine.mint_nft("a", 10, 1).value == 20
        assert engine.get_artwork(10).contributions == [1]


class TestActivities:
    """Applied transitions are logged."""

    def test_activity_log(self, minted):
        minted.buy_nft("collector", 1)
        types = [a.activity_type for a in minted.activities]

        assert types == [
            ActivityType.REGISTER,
            ActivityType.REGISTER,
            ActivityType.CREATE,
            ActivityType.FINALIZE,
            ActivityType.MINT,
            ActivityType.TRANSFER,
        ]
        transfer = minted.activities.list()[-1]
        assert transfer.actor == "collector"
        assert transfer.object_data["previous_owner"] == "artist1"
        assert [a.sequence for a in minted.activities] == [1, 2, 3, 4, 5, 6]

    def test_rejections_not_logged(self, engine):
        engine.create_artwork("stranger", "T", "D")
        assert len(engine.activities) == 0

    def test_find_by_artwork(self, minted):
        activities = minted.activities.find_by_artwork(1)
        assert [a.activity_type for a in activities] == [
            ActivityType.CREATE, ActivityType.FINALIZE, ActivityType.MINT,
        ]


class TestTransferListeners:
    """Purchases emit ownership-transfer-requested events."""

    def test_listener_receives_event(self, minted):
        events = []
        minted.add_transfer_listener(events.append)

        minted.buy_nft("collector", 1)

        assert len(events) == 1
        event = events[0]
        assert event.nft_id == 1
        assert event.artwork_id == 1
        assert event.previous_owner == "artist1"
        assert event.new_owner == "collector"
        assert event.price == 1000
        assert event.to_dict()["event"] == "ownership-transfer-requested"

    def test_no_event_on_failure(self, minted):
        events = []
        minted.add_transfer_listener(events.append)
        minted.buy_nft("collector", 99)
        assert events == []

    def test_failing_listener_does_not_undo(self, minted):
        def broken(event):
            raise RuntimeError("settlement down")

        events = []
        minted.add_transfer_listener(broken)
        minted.add_transfer_listener(events.append)

        result = minted.buy_nft("collector", 1)

        assert result.ok
        assert minted.get_nft(1).owner == "collector"
        assert len(events) == 1

    def test_remove_listener(self, minted):
        events = []
        minted.add_transfer_listener(events.append)
        minted.remove_transfer_listener(events.append)
        minted.buy_nft("collector", 1)
        assert events == []


class TestSnapshots:
    """Snapshot save/restore."""

    def test_round_trip(self, minted):
        minted.buy_nft("collector", 1)
        restored = Engine.from_snapshot(minted.snapshot())

        assert restored.snapshot() == minted.snapshot()
        assert restored.next_artwork_id == 2
        assert restored.next_nft_id == 2

    def test_restored_engine_continues_sequences(self, minted):
        restored = Engine.from_snapshot(minted.snapshot())
        assert restored.create_artwork("artist1", "Next", "D").value == 2

    def test_save_and_load(self, minted, temp_dir):
        path = temp_dir / "state.json"
        minted.save(path)

        loaded = Engine.load(path)
        assert loaded.get_nft(1).owner == "artist1"
        assert json.loads(path.read_text())["version"] == "1.0"

    def test_bad_version(self):
        with pytest.raises(SnapshotError):
            Engine.from_snapshot({"version": "0.1"})

    def test_missing_counter(self, minted):
        data = minted.snapshot()
        del data["next_nft_id"]
        with pytest.raises(SnapshotError):
            Engine.from_snapshot(data)

    def test_inconsistent_snapshot(self, minted):
        data = minted.snapshot()
        data["artworks"][0]["total_contributions"] = 5
        with pytest.raises(SnapshotError):
            Engine.from_snapshot(data)

    def test_invalid_json_file(self, temp_dir):
        path = temp_dir / "broken.json"
        path.write_text("{not json")
        with pytest.raises(SnapshotError):
            Engine.load(path)

    def test_binary_file(self, temp_dir):
        path = temp_dir / "binary.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(SnapshotError):
            Engine.load(path)

    def test_string_artwork_id(self, minted):
        data = minted.snapshot()
        data["artworks"][0]["artwork_id"] = "1"
        with pytest.raises(SnapshotError):
            Engine.from_snapshot(data)

    def test_non_numeric_contributions(self, minted):
        data = minted.snapshot()
        data["artworks"][0]["contributions"] = ["x"]
        with pytest.raises(SnapshotError):
            Engine.from_snapshot(data)

    def test_duplicate_artwork_ids(self, engine):
        engine.register_artist("a", "A")
        engine.create_artwork("a", "T", "D")
        engine.create_artwork("a", "T2", "D2")
        data = engine.snapshot()
        data["artworks"][1]["artwork_id"] = 1
        with pytest.raises(SnapshotError, match="Duplicate artwork id"):
            Engine.from_snapshot(data)

    def test_duplicate_nft_ids(self, minted):
        data = minted.snapshot()
        data["nfts"].append(dict(data["nfts"][0]))
        with pytest.raises(SnapshotError, match="Duplicate NFT id"):
            Engine.from_snapshot(data)


class TestTransferRequests:
    """Transfer events rebuilt from the activity log."""

    def test_events_from_log(self, minted):
        minted.buy_nft("collector", 1)
        minted.buy_nft("artist1", 1)

        events = minted.transfer_requests()
        assert [(e.previous_owner, e.new_owner) for e in events] == [
            ("artist1", "collector"),
            ("collector", "artist1"),
        ]
        assert all(e.price == 1000 for e in events)

    def test_matches_listener_events(self, minted):
        received = []
        minted.add_transfer_listener(received.append)
        minted.buy_nft("collector", 1)
        assert minted.transfer_requests() == received

    def test_since_activity_sequence(self, minted):
        minted.buy_nft("collector", 1)
        first = minted.transfer_requests()[0]
        minted.buy_nft("artist1", 1)

        later = minted.transfer_requests(since=first.activity_sequence)
        assert len(later) == 1
        assert later[0].new_owner == "artist1"

    def test_survive_restore(self, minted):
        minted.buy_nft("collector", 1)
        restored = Engine.from_snapshot(json.loads(json.dumps(minted.snapshot())))
        assert restored.transfer_requests() == minted.transfer_requests()


class TestIdSequence:
    """The id allocator."""

    def test_allocate_and_advance(self):
        sequence = IdSequence()
        assert sequence.allocate() == 1
        assert sequence.peek() == 2
        sequence.advance_to(5)
        assert sequence.allocate() == 5

    def test_no_going_back(self):
        sequence = IdSequence(3)
        with pytest.raises(ValueError):
            sequence.advance_to(2)
        with pytest.raises(ValueError):
            IdSequence(0)
