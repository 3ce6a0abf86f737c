"""Tests for the key-value stores and versioned repositories."""

import pytest

from neurotutor.engine.models import Difficulty, LearningStyle, TopicStats, UserProfile
from neurotutor.engine.reinforcement import RLAction, RLState
from neurotutor.errors import ProfileSchemaError
from neurotutor.state.repository import (
    PROFILE_KEY,
    RL_STATE_KEY,
    SCHEMA_VERSION,
    ProfileRepository,
    RLStateRepository,
)
from neurotutor.state.store import MemoryStore, SqliteStore

from conftest import make_profile


class TestSqliteStore:
    def test_roundtrip(self, tmp_path):
        store = SqliteStore(db_path=tmp_path / "state.db")
        store.set("k", {"a": [1, 2]})
        assert store.get("k") == {"a": [1, 2]}
        store.set("k", {"a": []})
        assert store.get("k") == {"a": []}

    def test_missing_and_delete(self, tmp_path):
        store = SqliteStore(db_path=tmp_path / "state.db")
        assert store.get("nope") is None
        store.set("k", 1)
        store.delete("k")
        assert store.get("k") is None

    def test_survives_reopen(self, tmp_path):
        SqliteStore(db_path=tmp_path / "state.db").set("k", "v")
        assert SqliteStore(db_path=tmp_path / "state.db").get("k") == "v"


class TestMemoryStore:
    def test_values_are_copied(self):
        store = MemoryStore()
        value = {"a": [1]}
        store.set("k", value)
        value["a"].append(2)
        assert store.get("k") == {"a": [1]}


class TestProfileRepository:
    def test_missing_gives_fresh(self, store):
        profile = ProfileRepository(store).load()
        assert profile == UserProfile()

    def test_roundtrip(self, store):
        profile = make_profile([True, False, True], concepts=["loops"])
        profile.current_difficulty = Difficulty.MEDIUM
        profile.learning_style = LearningStyle.FAST_LEARNER
        profile.topic_stats["Basics"] = TopicStats(topic="Basics", questions_attempted=3)
        repo = ProfileRepository(store)
        repo.save(profile)
        loaded = repo.load()
        assert loaded == profile
        assert loaded.current_difficulty is Difficulty.MEDIUM

    def test_envelope(self, store):
        ProfileRepository(store).save(UserProfile())
        blob = store.get(PROFILE_KEY)
        assert blob["version"] == SCHEMA_VERSION
        assert blob["data"]["current_difficulty"] == "easy"

    def test_version_mismatch_raises(self, store):
        store.set(PROFILE_KEY, {"version": 99, "data": {}})
        with pytest.raises(ProfileSchemaError, match="version"):
            ProfileRepository(store).load()

    def test_bare_blob_raises(self, store):
        store.set(PROFILE_KEY, {"current_difficulty": "easy"})
        with pytest.raises(ProfileSchemaError):
            ProfileRepository(store).load()

    def test_invalid_data_raises(self, store):
        store.set(PROFILE_KEY, {"version": SCHEMA_VERSION, "data": {"current_difficulty": "impossible"}})
        with pytest.raises(ProfileSchemaError) as exc_info:
            ProfileRepository(store).load()
        assert exc_info.value.key == PROFILE_KEY

    def test_reset(self, store):
        repo = ProfileRepository(store)
        repo.save(make_profile([True]))
        repo.reset()
        assert repo.load() == UserProfile()


class TestRLStateRepository:
    def test_roundtrip(self, store):
        rl = RLState(
            q_table={"s": {"upgrade": 1.5, "maintain": -0.5}},
            episode_count=4,
            last_action=RLAction.UPGRADE,
        )
        repo = RLStateRepository(store)
        repo.save(rl)
        loaded = repo.load()
        assert loaded == rl
        assert list(loaded.q_table["s"]) == ["upgrade", "maintain"]

    def test_stored_apart_from_profile(self, store):
        RLStateRepository(store).save(RLState())
        assert store.get(RL_STATE_KEY) is not None
        assert store.get(PROFILE_KEY) is None
