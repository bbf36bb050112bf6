"""Per-session UI configuration, persisted to a small JSON key-value file."""
from __future__ import annotations
from typing import Any, Dict, Literal, Mapping, Optional
from pathlib import Path

from pydantic import Field

from backend import config
from backend.json_utils import load_json_file, save_json_file
from backend.models import CamelModel

SIDEBAR_WIDTH_RANGE = (80, 400)
ANALYSIS_WIDTH_RANGE = (320, 800)
THEMES = ("dark", "light")


def _clamp(value: int, bounds) -> int:
    low, high = bounds
    return max(low, min(high, int(value)))


class UIState(CamelModel):
    theme: Literal["dark", "light"] = "dark"
    sidebar_width: int = Field(default=240)
    analysis_width: int = Field(default=480)
    show_sidebar: bool = False


class UIStateStore:
    """
    Owns every session's UIState. State is created on first access,
    loaded lazily from ``path`` and written back after each setter.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else config.UI_STATE_PATH
        self._sessions: Optional[Dict[str, UIState]] = None

    def _load(self) -> Dict[str, UIState]:
        if self._sessions is None:
            raw = load_json_file(self.path, default={})
            sessions: Dict[str, UIState] = {}
            if isinstance(raw, dict):
                for session_id, values in raw.items():
                    if isinstance(values, dict):
                        sessions[session_id] = self._coerce(values)
            self._sessions = sessions
        return self._sessions

    @staticmethod
    def _coerce(values: Mapping[str, Any]) -> UIState:
        state = UIState()
        theme = values.get("theme")
        if theme in THEMES:
            state.theme = theme
        if isinstance(values.get("sidebarWidth"), (int, float)):
            state.sidebar_width = _clamp(values["sidebarWidth"], SIDEBAR_WIDTH_RANGE)
        if isinstance(values.get("analysisWidth"), (int, float)):
            state.analysis_width = _clamp(values["analysisWidth"], ANALYSIS_WIDTH_RANGE)
        if isinstance(values.get("showSidebar"), bool):
            state.show_sidebar = values["showSidebar"]
        return state

    def _save(self) -> None:
        data = {sid: state.model_dump(by_alias=True) for sid, state in self._load().items()}
        if not save_json_file(self.path, data):
            print(f"[WARN] UI state not persisted to {self.path}")

    def get(self, session_id: str = "default") -> UIState:
        sessions = self._load()
        if session_id not in sessions:
            sessions[session_id] = UIState()
        return sessions[session_id]

    def set_theme(self, session_id: str, theme: str) -> UIState:
        return self.update(session_id, {"theme": theme})

    def toggle_theme(self, session_id: str) -> UIState:
        current = self.get(session_id).theme
        return self.set_theme(session_id, "light" if current == "dark" else "dark")

    def set_sidebar_width(self, session_id: str, width: int) -> UIState:
        return self.update(session_id, {"sidebarWidth": width})

    def set_analysis_width(self, session_id: str, width: int) -> UIState:
        return self.update(session_id, {"analysisWidth": width})

    def set_show_sidebar(self, session_id: str, visible: bool) -> UIState:
        return self.update(session_id, {"showSidebar": visible})

    def update(self, session_id: str, changes: Mapping[str, Any]) -> UIState:
        """
        Apply a partial camelCase payload.

        Every field is checked before anything is written, so a rejected
        payload leaves the stored state untouched.
        """
        values = _validate_changes(changes)
        state = self.get(session_id)
        for field, value in values.items():
            setattr(state, field, value)
        if values:
            self._save()
        return state


def _validate_width(name: str, value: Any, bounds) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number")
    return _clamp(value, bounds)


def _validate_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if "theme" in changes:
        if changes["theme"] not in THEMES:
            raise ValueError(f"Unknown theme: {changes['theme']}")
        values["theme"] = changes["theme"]
    if "sidebarWidth" in changes:
        values["sidebar_width"] = _validate_width("sidebarWidth", changes["sidebarWidth"], SIDEBAR_WIDTH_RANGE)
    if "analysisWidth" in changes:
        values["analysis_width"] = _validate_width("analysisWidth", changes["analysisWidth"], ANALYSIS_WIDTH_RANGE)
    if "showSidebar" in changes:
        if not isinstance(changes["showSidebar"], bool):
            raise TypeError("showSidebar must be true or false")
        values["show_sidebar"] = changes["showSidebar"]
    return values
