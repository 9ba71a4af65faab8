"""
StateStore - persists the OneDrive session (root and working directory).

The state is a plain ``SessionState`` value; commands receive it (or the
store) explicitly instead of reading a module global.
"""
import json
import logging
from pathlib import Path
from typing import Union

from ..models import DEFAULT_STATE_FILE, SessionState

logger = logging.getLogger(__name__)


class JsonStateStore:
    """Stores ``SessionState`` as ``{"root": ..., "cwd": ...}`` in a JSON file."""

    def __init__(self, path: Union[str, Path] = DEFAULT_STATE_FILE):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> SessionState:
        """Load state from disk. A missing or unreadable file yields an empty state."""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug("StateStore: No state file at %s, starting fresh", self._path)
            return SessionState()
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("StateStore: Failed to load %s: %s - starting fresh", self._path, e)
            return SessionState()

        if not isinstance(data, dict):
            logger.warning("StateStore: Ignoring %s, expected a JSON object", self._path)
            return SessionState()
        return SessionState.from_dict(data)

    def save(self, state: SessionState) -> None:
        """Write state to disk."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
        logger.debug("StateStore: Saved %s", self._path)
