from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Sequence

import pandas as pd

from heritage.charts import CATEGORY_COLORS, region_colors
from heritage.data import Site
from heritage.filters import SelectionState, breadcrumb_label, drill_matches_path

LEVELS = ["region", "country", "category"]


def _site_country_frame(sites: Sequence[Site]) -> pd.DataFrame:
    """One row per (site, country) pair; a site listed under N countries yields N rows."""
    frame = pd.DataFrame(
        {
            "region": [s.region for s in sites],
            "country": [list(s.countries) for s in sites],
            "category": [s.category for s in sites],
        },
        columns=LEVELS,
    )
    return frame.explode("country", ignore_index=True)


def build_hierarchy(sites: Sequence[Site], *, root_name: str = "World") -> Dict[str, Any]:
    """World -> region -> country -> category leaves valued by (site, country) pair counts.

    Children keep first-seen order of the filtered sites.
    """
    frame = _site_country_frame(sites)
    if frame.empty:
        return {"name": root_name, "children": []}

    counts = frame.groupby(LEVELS, sort=False).size()

    regions: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}
    for (region, country, category), value in counts.items():
        regions.setdefault(region, {}).setdefault(country, []).append({"name": category, "value": int(value)})

    return {
        "name": root_name,
        "children": [
            {
                "name": region,
                "children": [{"name": country, "children": leaves} for country, leaves in countries.items()],
            }
            for region, countries in regions.items()
        ],
    }


def iter_leaves(node: Dict[str, Any]):
    if "children" not in node:
        yield node
        return
    for child in node["children"]:
        yield from iter_leaves(child)


def node_value(node: Dict[str, Any]) -> int:
    return sum(leaf["value"] for leaf in iter_leaves(node))


def flatten_nodes(root: Dict[str, Any], state: SelectionState) -> List[Dict[str, Any]]:
    """Every non-root node with its path, depth, summed value, and selection flag."""
    out: List[Dict[str, Any]] = []

    def walk(node: Dict[str, Any], path: List[str]) -> None:
        for child in node.get("children", []):
            child_path = path + [child["name"]]
            out.append(
                {
                    "path": child_path,
                    "depth": len(child_path),
                    "name": child["name"],
                    "value": node_value(child),
                    "selected": drill_matches_path(state.drill_selection, child_path),
                }
            )
            walk(child, child_path)

    walk(root, [])
    return out


def compute_rollup(state: SelectionState, ctx: Dict[str, Any]) -> Dict[str, Any]:
    sites: List[Site] = ctx.get("filtered_sites", [])
    root_name = ctx.get("hierarchy_root_name", "World")
    hierarchy = build_hierarchy(sites, root_name=root_name)
    return {
        "state": asdict(state),
        "hierarchy": hierarchy,
        "total": node_value(hierarchy),
        "nodes": flatten_nodes(hierarchy, state),
        "breadcrumb": breadcrumb_label(state.drill_selection),
        "colors": {
            "region": region_colors(ctx.get("regions", [])),
            "category": dict(CATEGORY_COLORS),
        },
    }
