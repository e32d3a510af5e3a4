import json
from dataclasses import replace

import pytest

from felt.blackjack.errors import InvalidConfiguration
from felt.blackjack.rules import BlackjackPayout, RoundResult, Settings
from felt.blackjack.stats import SessionStats
from felt.state.models import GameState
from felt.state.persistence import (
    PERSISTED_VERSION,
    export_persisted,
    import_persisted,
    load_persisted,
    load_persisted_async,
    save_persisted,
    save_persisted_async,
)


@pytest.fixture
def played_state():
    stats = SessionStats().record_hand(RoundResult.WIN, 100).record_chips(1100)
    settings = Settings(number_of_decks=2, blackjack_pays=BlackjackPayout.SIX_TO_FIVE)
    return GameState(settings=settings, stats=stats)


def test_export(played_state):
    data = export_persisted(played_state)
    assert data["version"] == PERSISTED_VERSION
    assert data["settings"]["number_of_decks"] == 2
    assert data["settings"]["blackjack_pays"] == "6:5"
    assert data["stats"]["hands_won"] == 1
    assert data["stats"]["highest_chips"] == 1100
    json.dumps(data)


def test_export_excludes_table_state(played_state):
    assert set(export_persisted(played_state)) == {"version", "settings", "stats"}


def test_import_restores_settings_and_stats(played_state):
    restored = import_persisted(GameState(), export_persisted(played_state))
    assert restored.settings == played_state.settings
    assert restored.stats == played_state.stats


def test_import_merges_partial_settings():
    state = GameState(settings=Settings(number_of_decks=4))
    restored = import_persisted(state, {"settings": {"allow_surrender": False}})
    assert restored.settings.number_of_decks == 4
    assert restored.settings.allow_surrender is False


def test_import_keeps_missing_sections(played_state):
    restored = import_persisted(played_state, {"version": 1})
    assert restored == played_state


def test_import_ignores_unknown_keys(played_state):
    data = export_persisted(played_state)
    data["settings"]["theme"] = "dark"
    data["stats"]["streak"] = 3
    data["extra"] = True
    assert import_persisted(GameState(), data).settings.number_of_decks == 2


@pytest.mark.parametrize(
    "data",
    [
        [],
        "settings",
        {"version": 2},
        {"settings": []},
        {"settings": {"number_of_decks": 0}},
        {"stats": {"hands_played": -1}},
    ],
)
def test_import_rejects_bad_data(data):
    state = GameState()
    with pytest.raises(InvalidConfiguration):
        import_persisted(state, data)
    assert state == GameState()


def test_save_and_load(tmp_path, played_state):
    path = save_persisted(played_state, tmp_path / "felt" / "session.json")
    assert path.exists()
    data = load_persisted(path)
    assert data == export_persisted(played_state)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_persisted(tmp_path / "missing.json")


def test_load_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(InvalidConfiguration):
        load_persisted(path)


@pytest.mark.asyncio
async def test_save_and_load_async(tmp_path, played_state):
    path = await save_persisted_async(played_state, tmp_path / "session.json")
    data = await load_persisted_async(path)
    restored = import_persisted(replace(GameState(), round_number=4), data)
    assert restored.settings == played_state.settings
    assert restored.stats == played_state.stats
    assert restored.round_number == 4


@pytest.mark.asyncio
async def test_async_load_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("[1, 2", encoding="utf-8")
    with pytest.raises(InvalidConfiguration):
        await load_persisted_async(path)
