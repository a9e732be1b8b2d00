"""Heritage explorer engine (UI-agnostic).

This package contains:
- dataset loading and record normalization (JSON -> Site)
- selection state, its controller and cursor-year playback
- the filter pass shared by every view
- view compute functions (JSON-serializable payloads for map, timeline, rollup)
- chart helpers (Altair -> Vega-Lite spec dict)
"""

__version__ = "0.1.0"
