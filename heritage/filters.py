from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from heritage.data import Site


CRITERIA_CODES = ("i", "ii", "iii", "iv", "v", "vi", "vii", "viii", "ix", "x")
VIEW_MODES = ("category", "region")
CRITERIA_MODES = ("OR", "AND")


@dataclass(frozen=True)
class ExplorerSettings:
    playback_interval_ms: int = 800
    default_view_mode: str = "category"
    default_show_danger_events: bool = True
    hierarchy_root_name: str = "World"


@dataclass(frozen=True)
class DrillSelection:
    """Partial region -> country -> category path picked in the rollup view."""

    region: Optional[str] = None
    country: Optional[str] = None
    category: Optional[str] = None

    def as_path(self) -> List[str]:
        return [p for p in (self.region, self.country, self.category) if p]


@dataclass(frozen=True)
class SelectionState:
    cursor_year: int
    view_mode: str = "category"
    selected_criteria: Tuple[str, ...] = ()
    criteria_mode: str = "OR"
    search_term: str = ""
    danger_only: bool = False
    show_danger_events: bool = True
    brush_range: Optional[Tuple[int, int]] = None
    drill_selection: Optional[DrillSelection] = None
    playing: bool = False
    year_extent: Tuple[int, int] = field(default=(1978, 2024), compare=False)


def _as_int(value: object) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except Exception:
        return None


def _as_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def clamp_year(year: int, year_extent: Tuple[int, int]) -> int:
    lo, hi = year_extent
    return max(lo, min(hi, int(year)))


def canonical_criteria(codes: Optional[Iterable[object]]) -> Tuple[str, ...]:
    """Known codes only, ordered i..x, no duplicates."""
    wanted = {str(c).strip().lower() for c in (codes or []) if c is not None}
    return tuple(code for code in CRITERIA_CODES if code in wanted)


def normalize_search_term(term: object) -> str:
    return str(term or "").strip().lower()


def make_drill_selection(
    region: Optional[str] = None,
    country: Optional[str] = None,
    category: Optional[str] = None,
) -> Optional[DrillSelection]:
    """Truncate at the first unset level; an empty path becomes None."""
    if not region:
        return None
    if not country:
        return DrillSelection(region=region)
    if not category:
        return DrillSelection(region=region, country=country)
    return DrillSelection(region=region, country=country, category=category)


def drill_selection_from_path(names: Sequence[str]) -> Optional[DrillSelection]:
    names = list(names)[:3]
    names += [None] * (3 - len(names))
    return make_drill_selection(*names)


def coerce_drill_selection(value: object) -> Optional[DrillSelection]:
    if value is None:
        return None
    if isinstance(value, DrillSelection):
        return make_drill_selection(value.region, value.country, value.category)
    if isinstance(value, dict):
        return make_drill_selection(value.get("region"), value.get("country"), value.get("category"))
    if isinstance(value, (list, tuple)):
        return drill_selection_from_path(value)
    return None


def coerce_brush_range(value: object) -> Optional[Tuple[int, int]]:
    if value is None:
        return None
    try:
        lo, hi = value  # type: ignore[misc]
    except (TypeError, ValueError):
        return None
    lo_i, hi_i = _as_int(lo), _as_int(hi)
    if lo_i is None or hi_i is None:
        return None
    return (min(lo_i, hi_i), max(lo_i, hi_i))


def normalize_selection(
    raw: dict,
    *,
    year_extent: Tuple[int, int],
    settings: Optional[ExplorerSettings] = None,
) -> SelectionState:
    settings = settings or ExplorerSettings()
    year_extent = (int(year_extent[0]), int(year_extent[1]))

    cursor = _as_int(raw.get("cursor_year"))
    cursor_year = clamp_year(year_extent[1] if cursor is None else cursor, year_extent)

    view_mode = raw.get("view_mode") or settings.default_view_mode
    if view_mode not in VIEW_MODES:
        view_mode = settings.default_view_mode

    criteria_mode = str(raw.get("criteria_mode") or "OR").upper()
    if criteria_mode not in CRITERIA_MODES:
        criteria_mode = "OR"

    return SelectionState(
        cursor_year=cursor_year,
        view_mode=view_mode,
        selected_criteria=canonical_criteria(raw.get("selected_criteria")),
        criteria_mode=criteria_mode,
        search_term=normalize_search_term(raw.get("search_term")),
        danger_only=_as_bool(raw.get("danger_only")),
        show_danger_events=_as_bool(raw.get("show_danger_events"), settings.default_show_danger_events),
        brush_range=coerce_brush_range(raw.get("brush_range")),
        drill_selection=coerce_drill_selection(raw.get("drill_selection")),
        playing=_as_bool(raw.get("playing")),
        year_extent=year_extent,
    )


# ---------------- Predicates ----------------
def in_brush_range(year: int, brush_range: Optional[Tuple[int, int]]) -> bool:
    if not brush_range:
        return False
    return brush_range[0] <= year <= brush_range[1]


def drill_matches_path(selection: Optional[DrillSelection], path: Sequence[str]) -> bool:
    """True when the rollup node at `path` (root excluded) is exactly the selected node."""
    if selection is None:
        return False
    return list(path) == selection.as_path()


def breadcrumb_label(selection: Optional[DrillSelection]) -> str:
    parts = selection.as_path() if selection else []
    return " → ".join(parts) if parts else "All Regions"


def _matches_criteria(site: Site, state: SelectionState) -> bool:
    if not state.selected_criteria:
        return True
    if state.criteria_mode == "AND":
        return all(code in site.criteria for code in state.selected_criteria)
    return any(code in state.selected_criteria for code in site.criteria)


def _matches_drill(site: Site, drill: Optional[DrillSelection]) -> bool:
    if drill is None or not drill.region:
        return True
    if site.region != drill.region:
        return False
    if not drill.country:
        return True
    if drill.country not in site.countries:
        return False
    if drill.category and site.category != drill.category:
        return False
    return True


def site_matches(site: Site, state: SelectionState) -> bool:
    if site.year > state.cursor_year:
        return False
    if state.danger_only and not site.danger:
        return False
    if state.search_term:
        haystack = f"{site.name} {site.states_text}".lower()
        if state.search_term not in haystack:
            return False
    if not _matches_criteria(site, state):
        return False
    return _matches_drill(site, state.drill_selection)


def filter_sites(sites: Sequence[Site], state: SelectionState) -> List[Site]:
    return [site for site in sites if site_matches(site, state)]
