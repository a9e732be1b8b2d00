from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

from heritage.filters import (
    CRITERIA_CODES,
    VIEW_MODES,
    DrillSelection,
    ExplorerSettings,
    SelectionState,
    clamp_year,
    canonical_criteria,
    coerce_brush_range,
    coerce_drill_selection,
    normalize_search_term,
)
from heritage.playback import PlaybackScheduler, ScheduleFn


logger = logging.getLogger(__name__)

Listener = Callable[[SelectionState], None]


class SelectionController:
    """Owns the current SelectionState snapshot.

    Every public operation swaps in a new frozen snapshot and notifies the
    listeners exactly once, so each call maps to one recompute pass.
    """

    def __init__(
        self,
        state: SelectionState,
        *,
        settings: Optional[ExplorerSettings] = None,
        schedule: Optional[ScheduleFn] = None,
        on_change: Optional[Listener] = None,
    ) -> None:
        self.settings = settings or ExplorerSettings()
        self._state = replace(state, cursor_year=clamp_year(state.cursor_year, state.year_extent), playing=False)
        self._listeners: List[Listener] = []
        if on_change is not None:
            self._listeners.append(on_change)
        self.playback = PlaybackScheduler(
            self.advance_year,
            interval_ms=self.settings.playback_interval_ms,
            schedule=schedule,
        )

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def year_extent(self) -> Tuple[int, int]:
        return self._state.year_extent

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _commit(self, op: str, **changes: object) -> SelectionState:
        self._state = replace(self._state, **changes)
        logger.debug("%s -> %s", op, changes)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    # ---------------- Mutations ----------------
    def set_cursor_year(self, year: int) -> SelectionState:
        return self._commit("set_cursor_year", cursor_year=clamp_year(year, self.year_extent))

    def advance_year(self) -> SelectionState:
        lo, hi = self.year_extent
        year = self._state.cursor_year
        return self._commit("advance_year", cursor_year=lo if year >= hi else year + 1)

    def set_view_mode(self, mode: str) -> SelectionState:
        if mode not in VIEW_MODES:
            raise ValueError(f"view mode must be one of {VIEW_MODES}, got {mode!r}")
        return self._commit("set_view_mode", view_mode=mode)

    def toggle_criterion(self, code: str) -> SelectionState:
        code = str(code).strip().lower()
        selected = set(self._state.selected_criteria)
        if code in selected:
            selected.discard(code)
        elif code in CRITERIA_CODES:
            selected.add(code)
        else:
            logger.warning("ignoring unknown criterion %r", code)
        return self._commit("toggle_criterion", selected_criteria=canonical_criteria(selected))

    def toggle_criteria_mode(self) -> SelectionState:
        mode = "AND" if self._state.criteria_mode == "OR" else "OR"
        return self._commit("toggle_criteria_mode", criteria_mode=mode)

    def set_search_term(self, term: str) -> SelectionState:
        return self._commit("set_search_term", search_term=normalize_search_term(term))

    def set_danger_only(self, flag: bool) -> SelectionState:
        return self._commit("set_danger_only", danger_only=bool(flag))

    def set_show_danger_events(self, flag: bool) -> SelectionState:
        return self._commit("set_show_danger_events", show_danger_events=bool(flag))

    def set_brush_range(self, brush_range: Optional[Tuple[int, int]]) -> SelectionState:
        return self._commit("set_brush_range", brush_range=coerce_brush_range(brush_range))

    def set_drill_selection(self, path: object) -> SelectionState:
        """Select a rollup node; selecting the current node again clears the path."""
        selection: Optional[DrillSelection] = coerce_drill_selection(path)
        if selection is not None and selection == self._state.drill_selection:
            selection = None
        return self._commit("set_drill_selection", drill_selection=selection)

    def clear_drill_selection(self) -> SelectionState:
        return self._commit("clear_drill_selection", drill_selection=None)

    def start_playback(self) -> SelectionState:
        if not self.playback.start():
            return self._state
        return self._commit("start_playback", playing=True)

    def stop_playback(self) -> SelectionState:
        self.playback.stop()
        return self._commit("stop_playback", playing=False)

    def toggle_playback(self) -> SelectionState:
        if self.playback.running:
            return self.stop_playback()
        return self.start_playback()
