from __future__ import annotations

from itertools import cycle
from typing import Any, Dict, List, Sequence

import altair as alt

alt.data_transformers.disable_max_rows()

CATEGORY_COLORS = {
    "Cultural": "#f59e0b",
    "Natural": "#10b981",
    "Mixed": "#a855f7",
    "Other": "#38bdf8",
}
DANGER_COLORS = {"Y": "#fb923c", "R": "#38bdf8"}
DANGER_LABELS = {"Y": "Added to danger list (Y)", "R": "Removed from danger (R)"}
IN_DANGER_STROKE = "#f97316"

# d3 schemeTableau10 + schemeSet2 + schemeSet3
REGION_PALETTE = [
    "#4e79a7", "#f28e2c", "#e15759", "#76b7b2", "#59a14f",
    "#edc949", "#af7aa1", "#ff9da7", "#9c755f", "#bab0ab",
    "#66c2a5", "#fc8d62", "#8da0cb", "#e78ac3", "#a6d854",
    "#ffd92f", "#e5c494", "#b3b3b3",
    "#8dd3c7", "#ffffb3", "#bebada", "#fb8072", "#80b1d3", "#fdb462",
    "#b3de69", "#fccde5", "#d9d9d9", "#bc80bd", "#ccebc5", "#ffed6f",
]


def region_colors(regions: Sequence[str]) -> Dict[str, str]:
    """Ordinal scale over the region domain; the palette repeats past its length."""
    return dict(zip(regions, cycle(REGION_PALETTE)))


def group_colors(view_mode: str, keys: Sequence[str]) -> Dict[str, str]:
    if view_mode == "category":
        return {k: CATEGORY_COLORS.get(k, CATEGORY_COLORS["Other"]) for k in keys}
    return region_colors(keys)


def color_scale(colors: Dict[str, str]) -> alt.Scale:
    keys: List[str] = list(colors)
    return alt.Scale(domain=keys, range=[colors[k] for k in keys])


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()
