from __future__ import annotations

import json
import logging
import math
import numbers
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from heritage.filters import CRITERIA_CODES, SelectionState, filter_sites, normalize_selection


logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1]
DATASET_FILE = "whc001.json"

CATEGORIES = ("Cultural", "Natural", "Mixed", "Other")
CATEGORY_LABELS = {
    "Cultural": "Cultural",
    "Natural": "Natural",
    "Mixed": "Mixed",
    "Other": "Other / Unspecified",
}

CRITERIA_DEFINITIONS = {
    "i": "Represents a masterpiece of human creative genius.",
    "ii": "Exhibits an important interchange of human values over time.",
    "iii": "Bears a unique or exceptional testimony to a cultural tradition or civilization.",
    "iv": "Is an outstanding example of a type of building, architectural or technological ensemble or landscape.",
    "v": "Is an outstanding example of traditional human settlement, land-use, or sea-use.",
    "vi": "Is directly or tangibly associated with events, living traditions, ideas, beliefs, or artistic works.",
    "vii": "Contains superlative natural phenomena or areas of exceptional natural beauty and aesthetic importance.",
    "viii": "Is an outstanding example representing major stages of Earth's history.",
    "ix": "Is an outstanding example representing significant ongoing ecological and biological processes.",
    "x": "Contains the most important and significant natural habitats for in-situ conservation of biological diversity.",
}

UNSPECIFIED_REGION = "Unspecified region"
UNSPECIFIED_COUNTRY = "Unspecified country"
DEFAULT_YEAR_EXTENT = (1978, 2024)

YEAR_RE = re.compile(r"\d{4}")
CRITERIA_RE = re.compile(r"\(([ivx]+)\)", re.IGNORECASE)
DANGER_EVENT_RE = re.compile(r"([A-Z])\s*(\d{4})")


@dataclass(frozen=True)
class DangerEvent:
    type: str
    year: int


@dataclass(frozen=True)
class Site:
    """One normalized heritage-site record. Never mutated after `normalize_records`."""

    id: Any
    name: str
    region: str
    year: int
    category: str
    criteria: Tuple[str, ...]
    countries: Tuple[str, ...]
    lat: float
    lon: float
    danger: bool
    danger_events: Tuple[DangerEvent, ...] = ()
    description: str = ""
    image_url: Optional[str] = None
    iso_codes: Optional[str] = None
    criteria_text: Optional[str] = None

    @property
    def states_text(self) -> str:
        return ", ".join(self.countries)

    @property
    def danger_timeline(self) -> str:
        if not self.danger_events:
            return "No recorded danger events"
        return " → ".join(f"{evt.type} {evt.year}" for evt in self.danger_events)


# ---------------- Field coercion ----------------
def _is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _as_str(value: object) -> Optional[str]:
    if _is_missing(value):
        return None
    s = str(value).strip()
    return s or None


def _as_float(value: object) -> Optional[float]:
    """Finite float for real numbers only; strings, booleans and NaN/inf give None."""
    if _is_missing(value) or isinstance(value, bool):
        return None
    if not isinstance(value, numbers.Real):
        return None
    out = float(value)
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def _nested(record: Dict[str, Any], key: str, field: str) -> object:
    inner = record.get(key)
    if isinstance(inner, dict):
        return inner.get(field)
    return None


# ---------------- Free-text parsers ----------------
def parse_year(value: object) -> Optional[int]:
    """First run of four digits in a free-text date, e.g. '1983-05-12' -> 1983."""
    text = _as_str(value)
    if text is None:
        return None
    match = YEAR_RE.search(text)
    if not match:
        return None
    return int(match.group(0))


def parse_criteria(text: object) -> Tuple[str, ...]:
    """Parenthesized roman numerals such as '(ii)(iv)' -> ('ii', 'iv'); unknown codes are skipped."""
    s = _as_str(text)
    if s is None:
        return ()
    out: List[str] = []
    for token in CRITERIA_RE.findall(s):
        code = token.lower()
        if code in CRITERIA_CODES and code not in out:
            out.append(code)
    return tuple(out)


def parse_danger_list(text: object) -> Tuple[DangerEvent, ...]:
    """'Y 1999 R 2005' -> (DangerEvent('Y', 1999), DangerEvent('R', 2005)), in textual order."""
    s = _as_str(text)
    if s is None:
        return ()
    return tuple(DangerEvent(type=m.group(1), year=int(m.group(2))) for m in DANGER_EVENT_RE.finditer(s))


def parse_category(value: object) -> str:
    s = _as_str(value)
    return s if s in CATEGORIES else "Other"


def parse_countries(value: object) -> Tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        names = [str(v).strip() for v in value if _as_str(v) is not None]
        if names:
            return tuple(names)
    return (UNSPECIFIED_COUNTRY,)


def parse_danger_flag(value: object) -> bool:
    return str(value).strip().lower() == "true"


def _first_present(record: Dict[str, Any], *keys: str) -> object:
    for key in keys:
        value = record.get(key)
        if not _is_missing(value):
            return value
    return None


# ---------------- Normalizer ----------------
def format_site(record: Dict[str, Any]) -> Optional[Site]:
    """Convert one raw record; None when year or coordinates are unusable."""
    if not isinstance(record, dict):
        return None
    year = parse_year(_first_present(record, "date_inscribed", "secondary_dates"))
    if year is None:
        logger.debug("dropping %r: no inscription year", record.get("name_en"))
        return None
    lat = _as_float(_nested(record, "coordinates", "lat"))
    lon = _as_float(_nested(record, "coordinates", "lon"))
    if lat is None or lon is None:
        logger.debug("dropping %r: missing coordinates", record.get("name_en"))
        return None

    return Site(
        id=_first_present(record, "uuid", "id_no", "name_en"),
        name=_as_str(record.get("name_en")) or "",
        region=_as_str(record.get("region")) or UNSPECIFIED_REGION,
        year=year,
        category=parse_category(record.get("category")),
        criteria=parse_criteria(record.get("criteria_txt")),
        countries=parse_countries(record.get("states_names")),
        lat=lat,
        lon=lon,
        danger=parse_danger_flag(record.get("danger")),
        danger_events=parse_danger_list(record.get("danger_list")),
        description=_as_str(_first_present(record, "short_description_en", "short_description_zh")) or "",
        image_url=_as_str(_nested(record, "main_image_url", "url")),
        iso_codes=_as_str(record.get("iso_codes")),
        criteria_text=_as_str(record.get("criteria_txt")),
    )


def normalize_records(raw_records: Optional[Iterable[Dict[str, Any]]]) -> List[Site]:
    raw = list(raw_records or [])
    sites = [site for site in (format_site(r) for r in raw) if site is not None]
    # sorted() is stable, so same-year records keep input order
    sites = sorted(sites, key=lambda s: s.year)
    logger.info("normalized %d of %d records (%d dropped)", len(sites), len(raw), len(raw) - len(sites))
    return sites


# ---------------- Dataset-level helpers ----------------
def year_extent(sites: Sequence[Site]) -> Tuple[int, int]:
    if not sites:
        return DEFAULT_YEAR_EXTENT
    years = [s.year for s in sites]
    return min(years), max(years)


def region_keys(sites: Sequence[Site]) -> List[str]:
    return sorted({s.region for s in sites})


def search_options(sites: Sequence[Site]) -> List[str]:
    options = set()
    for site in sites:
        if site.name:
            options.add(site.name)
        options.update(site.countries)
    return sorted(options)


def summarize(sites: Sequence[Site]) -> Dict[str, int]:
    countries = {c for s in sites for c in s.countries}
    return {
        "sites": len(sites),
        "countries": len(countries),
        "in_danger": sum(1 for s in sites if s.danger),
    }


def get_dataset_path() -> Path:
    return DATA_DIR / DATASET_FILE


def file_signature(path: Path) -> Tuple[str, float]:
    return str(path), path.stat().st_mtime


@lru_cache(maxsize=4)
def _load_site_records_cached(signature: Tuple[str, float]) -> Tuple[Site, ...]:
    path = Path(signature[0])
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        # some exports wrap the array, e.g. {"results": [...]}
        raw = next((v for v in raw.values() if isinstance(v, list)), [])
    return tuple(normalize_records(raw))


def load_site_records(path: Optional[Path] = None) -> List[Site]:
    path = Path(path) if path is not None else get_dataset_path()
    if not path.exists():
        logger.warning("dataset %s not found", path)
        return []
    return list(_load_site_records_cached(file_signature(path)))


def build_data_context(sites: Sequence[Site], *, files: Optional[List[str]] = None) -> Dict[str, object]:
    sites = list(sites)
    return {
        "files": files or [],
        "sites": sites,
        "year_extent": year_extent(sites),
        "regions": region_keys(sites),
        "search_options": search_options(sites),
    }


def load_explorer_data(path: Optional[Path] = None) -> Dict[str, object]:
    path = Path(path) if path is not None else get_dataset_path()
    sites = load_site_records(path)
    return build_data_context(sites, files=[path.name] if sites else [])


def prepare_context(state: dict | SelectionState, data_ctx: Dict[str, object]) -> Dict[str, object]:
    """Run the filter pass once so every view is computed from the same subset."""
    sites: List[Site] = list(data_ctx.get("sites", []) or [])
    extent = data_ctx.get("year_extent") or year_extent(sites)
    sel = state if isinstance(state, SelectionState) else normalize_selection(state, year_extent=extent)
    filtered = filter_sites(sites, sel)
    return {
        "state": sel,
        "sites": sites,
        "filtered_sites": filtered,
        "year_extent": tuple(extent),
        "regions": data_ctx.get("regions") or region_keys(sites),
        "summary": summarize(filtered),
    }
