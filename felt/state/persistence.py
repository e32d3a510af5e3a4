"""
Persisted slice of a session: the rule settings and the session statistics.

Everything else about a table (chips, cards, the shoe, the round in
progress) is rebuilt when a session starts and is never written out.

The slice is a small versioned JSON document::

    {"version": 1, "settings": {...}, "stats": {...}}
"""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Union

import aiofiles

from felt.blackjack.errors import InvalidConfiguration
from felt.blackjack.rules import Settings
from felt.blackjack.stats import SessionStats
from felt.state.models import GameState

logger = logging.getLogger(__name__)

PERSISTED_VERSION = 1

PathLike = Union[str, Path]


def export_persisted(state: GameState) -> Dict[str, Any]:
    """Extract the settings and stats of a state as plain data."""
    return {
        "version": PERSISTED_VERSION,
        "settings": state.settings.to_dict(),
        "stats": state.stats.report(),
    }


def import_persisted(state: GameState, data: Dict[str, Any]) -> GameState:
    """
    Return `state` with settings and stats taken from a persisted slice.

    Missing sections keep the state's current values; unknown keys are ignored.

    Raises:
        InvalidConfiguration: If the slice is malformed or from a newer version
    """
    if not isinstance(data, dict):
        raise InvalidConfiguration("Persisted data must be a JSON object")
    version = data.get("version", PERSISTED_VERSION)
    if version != PERSISTED_VERSION:
        raise InvalidConfiguration(f"Unsupported persisted data version: {version}")

    settings = state.settings
    if "settings" in data:
        if not isinstance(data["settings"], dict):
            raise InvalidConfiguration("Persisted settings must be a mapping")
        settings = Settings.from_dict({**state.settings.to_dict(), **data["settings"]})

    stats = state.stats
    if "stats" in data:
        stats = SessionStats.from_dict(data["stats"])

    return replace(state, settings=settings, stats=stats)


def _decode(text: str, path: PathLike) -> Dict[str, Any]:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidConfiguration(f"Could not parse {path}: {exc}") from exc


def save_persisted(state: GameState, path: PathLike) -> Path:
    """Write the persisted slice of `state` to `path` as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(export_persisted(state), indent=2), encoding="utf-8")
    logger.debug(f"Saved settings and stats to {path}")
    return path


def load_persisted(path: PathLike) -> Dict[str, Any]:
    """
    Read a persisted slice from `path`.

    Raises:
        FileNotFoundError: If the file does not exist
        InvalidConfiguration: If the file is not valid JSON
    """
    path = Path(path)
    data = _decode(path.read_text(encoding="utf-8"), path)
    logger.debug(f"Loaded settings and stats from {path}")
    return data


async def save_persisted_async(state: GameState, path: PathLike) -> Path:
    """Async version of save_persisted."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, mode="w", encoding="utf-8") as handle:
        await handle.write(json.dumps(export_persisted(state), indent=2))
    logger.debug(f"Saved settings and stats to {path}")
    return path


async def load_persisted_async(path: PathLike) -> Dict[str, Any]:
    """Async version of load_persisted."""
    path = Path(path)
    async with aiofiles.open(path, mode="r", encoding="utf-8") as handle:
        text = await handle.read()
    return _decode(text, path)
