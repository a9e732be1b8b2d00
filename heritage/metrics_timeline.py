from __future__ import annotations

from collections import Counter
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

import altair as alt
import numpy as np
import pandas as pd

from heritage.charts import DANGER_COLORS, DANGER_LABELS, color_scale, group_colors, to_vega_spec
from heritage.data import CATEGORIES, CATEGORY_LABELS, Site
from heritage.filters import VIEW_MODES, SelectionState, in_brush_range

DANGER_EVENT_TYPES = ("Y", "R")


def group_keys_for(view_mode: str, regions: Sequence[str]) -> List[str]:
    return list(CATEGORIES) if view_mode == "category" else list(regions)


def build_stacked_series(
    sites: Sequence[Site],
    group_keys: Sequence[str],
    *,
    year_extent: Tuple[int, int],
    view_mode: str,
) -> List[Dict[str, int]]:
    """One record per year of the extent: {"year", <key>: count, ..., "total"}.

    Years without sites stay in the output with zero counts. Sites whose year
    or group falls outside the extent/keys are not counted.
    """
    keys = list(group_keys)
    years = np.arange(year_extent[0], year_extent[1] + 1)
    if view_mode not in VIEW_MODES:
        raise ValueError(f"view mode must be one of {VIEW_MODES}, got {view_mode!r}")
    attr = "category" if view_mode == "category" else "region"

    frame = pd.DataFrame({"year": [s.year for s in sites], "key": [getattr(s, attr) for s in sites]})
    if frame.empty:
        counts = pd.DataFrame(0, index=years, columns=keys)
    else:
        counts = (
            frame.groupby(["year", "key"])
            .size()
            .unstack(fill_value=0)
            .reindex(index=years, columns=keys, fill_value=0)
        )

    records: List[Dict[str, int]] = []
    for year, row in counts.iterrows():
        record = {"year": int(year)}
        record.update({k: int(row[k]) for k in keys})
        record["total"] = sum(record[k] for k in keys)
        records.append(record)
    return records


def build_danger_series(
    sites: Sequence[Site],
    cursor_year: int,
    *,
    year_extent: Tuple[int, int],
) -> Dict[str, List[Dict[str, Optional[int]]]]:
    """Per-year Y/R event counts up to the cursor; later years carry None so lines stop there."""
    lo, hi = year_extent
    counts: Dict[str, Counter] = {t: Counter() for t in DANGER_EVENT_TYPES}
    for site in sites:
        for evt in site.danger_events:
            if evt.type not in counts or evt.year > cursor_year or not lo <= evt.year <= hi:
                continue
            counts[evt.type][evt.year] += 1

    return {
        t: [{"year": year, "value": counts[t][year] if year <= cursor_year else None} for year in range(lo, hi + 1)]
        for t in DANGER_EVENT_TYPES
    }


def timeline_legend(view_mode: str, colors: Dict[str, str], show_danger_events: bool) -> List[Dict[str, str]]:
    items = [
        {"label": CATEGORY_LABELS.get(k, k) if view_mode == "category" else k, "color": color}
        for k, color in colors.items()
    ]
    if show_danger_events:
        items += [{"label": DANGER_LABELS[t], "color": DANGER_COLORS[t]} for t in DANGER_EVENT_TYPES]
    return items


def _stacked_chart(series: List[Dict[str, int]], keys: List[str], colors: Dict[str, str]) -> alt.Chart:
    if keys:
        long_df = pd.DataFrame(series, columns=["year", *keys]).melt(
            id_vars="year", value_vars=keys, var_name="group", value_name="sites"
        )
    else:
        long_df = pd.DataFrame(columns=["year", "group", "sites"])
    return (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("year:O", title="Year", axis=alt.Axis(labelAngle=0)),
            y=alt.Y("sites:Q", title="Inscribed sites", stack="zero"),
            color=alt.Color("group:N", title=None, scale=color_scale(colors), sort=keys),
            tooltip=[alt.Tooltip("year:O", title="Year"), alt.Tooltip("group:N"), alt.Tooltip("sites:Q", format=",")],
        )
    )


def _danger_chart(danger: Dict[str, List[Dict[str, Optional[int]]]]) -> alt.Chart:
    rows = [{"year": p["year"], "event": t, "value": p["value"]} for t, points in danger.items() for p in points]
    long_df = pd.DataFrame(rows, columns=["year", "event", "value"])
    return (
        alt.Chart(long_df)
        .mark_line(interpolate="monotone")
        .encode(
            x=alt.X("year:O", title="Year"),
            y=alt.Y("value:Q", title="Danger events"),
            color=alt.Color("event:N", title=None, scale=color_scale(DANGER_COLORS)),
            tooltip=["year", "event", "value"],
        )
    )


def compute_timeline(state: SelectionState, ctx: Dict[str, Any]) -> Dict[str, Any]:
    sites: List[Site] = ctx.get("filtered_sites", [])
    extent: Tuple[int, int] = tuple(ctx.get("year_extent") or state.year_extent)
    keys = group_keys_for(state.view_mode, ctx.get("regions", []))
    colors = group_colors(state.view_mode, keys)

    series = build_stacked_series(sites, keys, year_extent=extent, view_mode=state.view_mode)
    danger = build_danger_series(sites, state.cursor_year, year_extent=extent)

    charts: Dict[str, Any] = {"stacked": to_vega_spec(_stacked_chart(series, keys, colors))}
    if state.show_danger_events:
        charts["danger_events"] = to_vega_spec(_danger_chart(danger))

    return {
        "state": asdict(state),
        "year_extent": list(extent),
        "keys": keys,
        "colors": colors,
        "series": series,
        "max_total": max((r["total"] for r in series), default=0),
        "danger_series": danger,
        "show_danger_events": state.show_danger_events,
        "brushed_years": [r["year"] for r in series if in_brush_range(r["year"], state.brush_range)],
        "legend": timeline_legend(state.view_mode, colors, state.show_danger_events),
        "charts": charts,
    }
