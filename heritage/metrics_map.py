from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from heritage.charts import CATEGORY_COLORS, IN_DANGER_STROKE
from heritage.data import CATEGORIES, CATEGORY_LABELS, CRITERIA_DEFINITIONS, Site, summarize
from heritage.filters import SelectionState, in_brush_range


def site_point(site: Site, state: SelectionState) -> Dict[str, Any]:
    return {
        "id": site.id,
        "name": site.name,
        "lat": site.lat,
        "lon": site.lon,
        "year": site.year,
        "category": site.category,
        "region": site.region,
        "countries": list(site.countries),
        "states_text": site.states_text,
        "danger": site.danger,
        "brushed": in_brush_range(site.year, state.brush_range),
        "color": CATEGORY_COLORS.get(site.category, CATEGORY_COLORS["Other"]),
        "tooltip": {
            "description": site.description,
            "criteria": [{"code": c, "definition": CRITERIA_DEFINITIONS[c]} for c in site.criteria],
            "danger_timeline": site.danger_timeline,
            "image_url": site.image_url,
        },
    }


def map_legend() -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = [
        {"label": CATEGORY_LABELS[k], "color": CATEGORY_COLORS[k]} for k in CATEGORIES
    ]
    items.append({"label": "In Danger", "color": "transparent", "stroke": IN_DANGER_STROKE})
    return items


def compute_map(state: SelectionState, ctx: Dict[str, Any]) -> Dict[str, Any]:
    sites: List[Site] = ctx.get("filtered_sites", [])
    return {
        "state": asdict(state),
        "summary": ctx.get("summary") or summarize(sites),
        "points": [site_point(s, state) for s in sites],
        "legend": map_legend(),
    }
