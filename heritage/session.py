"""Explorer session: one dataset, one selection, one recompute per mutation.

Front ends bind their events to `session.controller` operations and read the
latest view bundle from `session.latest` (or subscribe with `on_render`).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from heritage.controller import SelectionController
from heritage.data import Site, build_data_context, load_explorer_data, normalize_records, prepare_context
from heritage.filters import ExplorerSettings, SelectionState, normalize_selection
from heritage.metrics_map import compute_map
from heritage.metrics_rollup import compute_rollup
from heritage.metrics_timeline import compute_timeline
from heritage.playback import ScheduleFn


logger = logging.getLogger(__name__)

RenderListener = Callable[[Dict[str, Any]], None]


def compute_views(state: SelectionState, data_ctx: Dict[str, object], settings: Optional[ExplorerSettings] = None) -> Dict[str, Any]:
    settings = settings or ExplorerSettings()
    ctx = prepare_context(state, data_ctx)
    ctx["hierarchy_root_name"] = settings.hierarchy_root_name
    return {
        "state": state,
        "filtered_sites": ctx["filtered_sites"],
        "map": compute_map(state, ctx),
        "timeline": compute_timeline(state, ctx),
        "rollup": compute_rollup(state, ctx),
    }


class ExplorerSession:
    def __init__(
        self,
        data_ctx: Dict[str, object],
        *,
        initial: Optional[dict] = None,
        settings: Optional[ExplorerSettings] = None,
        schedule: Optional[ScheduleFn] = None,
    ) -> None:
        self.settings = settings or ExplorerSettings()
        self.data_ctx = data_ctx
        state = normalize_selection(initial or {}, year_extent=data_ctx["year_extent"], settings=self.settings)
        self._listeners: List[RenderListener] = []
        self.render_count = 0
        self.latest: Dict[str, Any] = {}
        self.controller = SelectionController(state, settings=self.settings, schedule=schedule, on_change=self._recompute)
        self._recompute(self.controller.state)

    @classmethod
    def from_records(cls, raw_records: Sequence[dict], **kwargs: Any) -> "ExplorerSession":
        return cls(build_data_context(normalize_records(raw_records)), **kwargs)

    @classmethod
    def from_path(cls, path: Optional[Path] = None, **kwargs: Any) -> "ExplorerSession":
        return cls(load_explorer_data(path), **kwargs)

    @property
    def sites(self) -> List[Site]:
        return list(self.data_ctx.get("sites", []))

    @property
    def state(self) -> SelectionState:
        return self.controller.state

    def on_render(self, listener: RenderListener) -> None:
        self._listeners.append(listener)

    def _recompute(self, state: SelectionState) -> None:
        try:
            bundle = compute_views(state, self.data_ctx, self.settings)
        except Exception:
            logger.exception("recompute failed for %s", state)
            raise
        self.latest = bundle
        self.render_count += 1
        for listener in list(self._listeners):
            listener(bundle)
