"""Tests for GameSession load/save orchestration."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from idle_opt.models import GameState, Generator, RankingSession, Resource, SyncData
from idle_opt.session import GameSession, migrate_base_fields
from idle_opt.storage import LocalStorage


class StubSync:
    def __init__(self, user_id="player-1", cloud=None, save_ok=True):
        self.user_id = user_id
        self.cloud = cloud
        self.save_ok = save_ok
        self.saved = []

    def sync_from_cloud(self):
        return self.cloud

    def sync_to_cloud(self, generators, research, resources):
        self.saved.append((list(generators), list(research), list(resources)))
        return self.save_ok


def _storage_with(tmp_path, state):
    storage = LocalStorage(str(tmp_path))
    storage.save_generators(state.generators)
    storage.save_research(state.research)
    storage.save_resources(state.resources)
    return storage


def test_local_load_without_sync(tmp_path, wood_state):
    storage = _storage_with(tmp_path, wood_state)
    storage.save_session(RankingSession({"Wood": 1.2}))
    session = GameSession(storage)
    engine = session.initialize()

    assert [g.name for g in session.state.generators] == ["Woodcutter", "Sawmill", "Quarry"]
    assert session.ranking.previous_weights == {"Wood": 1.2}
    assert session.state.get_resource("Wood").total_production == 11.0
    assert engine.ranked_upgrades()


def test_cloud_preferred_and_written_through(tmp_path, wood_state):
    storage = _storage_with(tmp_path, wood_state)
    cloud = SyncData(user_id="player-1",
                     generators=[Generator(name="Cloud Mill", resources={"Wood": 4.0}, count=1)],
                     resources=[Resource(name="Wood")])
    session = GameSession(storage, StubSync(cloud=cloud))
    session.load_state()

    assert [g.name for g in session.state.generators] == ["Cloud Mill"]
    assert [g.name for g in LocalStorage(str(tmp_path)).load_generators()] == ["Cloud Mill"]


def test_falls_back_to_local_when_cloud_empty(tmp_path, wood_state):
    storage = _storage_with(tmp_path, wood_state)
    session = GameSession(storage, StubSync(cloud=None))
    session.load_state()
    assert len(session.state.generators) == 3


def test_load_migrates_baselines(tmp_path, wood_state):
    session = GameSession(_storage_with(tmp_path, wood_state))
    session.load_state()
    woodcutter = session.state.get_generator("Woodcutter")
    assert woodcutter.base_resources == {"Wood": 1.0}
    assert woodcutter.base_resource_costs == {"Wood": 20.0}


def test_save_state_pushes_to_cloud(tmp_path, wood_state):
    sync = StubSync()
    session = GameSession(_storage_with(tmp_path, wood_state), sync)
    session.load_state()
    session.save_state()
    assert len(sync.saved) == 1
    assert len(sync.saved[0][0]) == 3


def test_save_state_survives_failed_sync(tmp_path, wood_state, caplog):
    sync = StubSync(save_ok=False)
    session = GameSession(_storage_with(tmp_path, wood_state), sync)
    session.load_state()
    session.save_state()
    assert "Cloud sync failed" in caplog.text
    assert len(LocalStorage(str(tmp_path)).load_generators()) == 3


def test_no_user_id_skips_cloud(tmp_path, wood_state):
    sync = StubSync(user_id=None, cloud=SyncData(user_id="x"))
    session = GameSession(_storage_with(tmp_path, wood_state), sync)
    session.load_state()
    session.save_state()
    assert len(session.state.generators) == 3
    assert sync.saved == []


def test_prestige_saves(tmp_path, wood_state):
    session = GameSession(_storage_with(tmp_path, wood_state))
    session.initialize()
    session.perform_prestige(2.0, 1.0)
    reloaded = LocalStorage(str(tmp_path)).load_generators()
    assert all(g.count == 0 for g in reloaded)
    assert reloaded[0].resources == {"Wood": 2.0}


def test_clear_all(tmp_path, wood_state):
    session = GameSession(_storage_with(tmp_path, wood_state))
    session.initialize()
    session.ranking.previous_weights = {"Wood": 2.0}
    session.clear_all()
    assert session.state.generators == []
    assert session.ranking.previous_weights == {}
    assert LocalStorage(str(tmp_path)).load_generators() == []


def test_migrate_base_fields_keeps_existing():
    g = Generator(name="g", resources={"Wood": 3.0}, base_resources={"Wood": 1.0})
    migrate_base_fields(GameState(generators=[g]))
    assert g.base_resources == {"Wood": 1.0}
