"""
Free-text trade notes, keyed by trade id, with a JSON persistence boundary.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError

from models import PersistedState

logger = logging.getLogger(__name__)


class AnnotationStore:
    """Last-write-wins map of trade id -> note, independent of the trade set."""

    def __init__(self, notes: Optional[Dict[str, str]] = None) -> None:
        self._notes: Dict[str, str] = dict(notes or {})

    def get(self, trade_id: str) -> Optional[str]:
        return self._notes.get(trade_id)

    def set(self, trade_id: str, text: str) -> None:
        # an empty note clears the annotation
        if text:
            self._notes[trade_id] = text
        else:
            self._notes.pop(trade_id, None)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._notes)

    def __len__(self) -> int:
        return len(self._notes)


def load_state(path: Path) -> PersistedState:
    """
    Read persisted dashboard state; a missing or unreadable file yields defaults.
    """
    if not path.exists():
        return PersistedState()
    try:
        return PersistedState.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        logger.warning("Ignoring unreadable state file %s: %s", path, exc)
        return PersistedState()


def save_state(path: Path, state: PersistedState) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
