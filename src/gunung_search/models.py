"""
Domain records for mountain search results.

Bindings from the graph store are turned into immutable records here. Every
optional SPARQL variable maps to an explicit Optional field, so an absent
variable is a None value rather than a missing key.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_URL = "https://datagunung.com/images/default-image.webp"

SORT_FIELDS = ("name", "province", "elevation", "relevance")
SORT_ORDERS = ("asc", "desc")

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


class HazardLevel(Enum):
    """Volcanic alert levels, lowest to highest."""

    NORMAL = "Normal"
    WASPADA = "Waspada"
    SIAGA = "Siaga"
    AWAS = "Awas"

    @property
    def level(self) -> int:
        return _HAZARD_ORDER.index(self) + 1

    @classmethod
    def from_label(cls, label: Optional[str]) -> Optional["HazardLevel"]:
        """Map a store label such as 'Siaga (Level III)' onto a level."""
        if not label:
            return None
        lowered = label.lower()
        # Highest level first so a label naming two levels resolves upward
        for member in reversed(_HAZARD_ORDER):
            if member.value.lower() in lowered:
                return member
        logger.debug(f"Unknown hazard level label: {label}")
        return None


_HAZARD_ORDER = [HazardLevel.NORMAL, HazardLevel.WASPADA, HazardLevel.SIAGA, HazardLevel.AWAS]


class VolcanicCategory(Enum):
    """Historical-eruption classification of a volcano."""

    A = "A"
    B = "B"
    C = "C"

    @classmethod
    def from_label(cls, label: Optional[str]) -> Optional["VolcanicCategory"]:
        """Map a store label such as 'Kategori A' or 'A' onto a category."""
        if not label or not label.strip():
            return None
        token = label.strip().split()[-1].upper()
        try:
            return cls(token)
        except ValueError:
            logger.debug(f"Unknown volcanic category label: {label}")
            return None


def _value(binding: Mapping[str, Any], var: str) -> Optional[str]:
    """Return the lexical value bound to a variable, or None when unbound or empty."""
    term = binding.get(var)
    if not term:
        return None
    value = term.get("value")
    return value if value else None


def _int_value(binding, var):
    raw = _value(binding, var)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        # Some stores serialise xsd:integer values as decimals ("3676.0")
        try:
            return int(float(raw))
        except (ValueError, OverflowError):
            logger.debug(f"Ignoring non-numeric {var} value: {raw}")
            return None


def _float_value(binding, var):
    raw = _value(binding, var)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.debug(f"Ignoring non-numeric {var} value: {raw}")
        return None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Ignoring unparsable date-time: {value}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Mountain:
    """A mountain record as returned by search and single lookup."""

    uri: str
    name: str
    description: Optional[str] = None
    elevation: Optional[int] = None
    image_url: str = DEFAULT_IMAGE_URL
    province: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    status_level: Optional[HazardLevel] = None
    volcanic_category: Optional[VolcanicCategory] = None
    google_maps_url: Optional[str] = None
    restricted_from: Optional[str] = None
    restricted_until: Optional[str] = None

    @classmethod
    def from_binding(cls, binding: Mapping[str, Any]) -> "Mountain":
        lat = _float_value(binding, "lat")
        lon = _float_value(binding, "lon")
        if lat is None or lon is None:
            lat = lon = None

        return cls(
            uri=_value(binding, "mountain") or "",
            name=_value(binding, "name") or "",
            description=_value(binding, "description"),
            elevation=_int_value(binding, "elevation"),
            image_url=_value(binding, "imageUrl") or DEFAULT_IMAGE_URL,
            province=_value(binding, "province"),
            lat=lat,
            lon=lon,
            status_level=HazardLevel.from_label(_value(binding, "statusLevel")),
            volcanic_category=VolcanicCategory.from_label(_value(binding, "volcanicCategory")),
            google_maps_url=_value(binding, "googleMapsUrl"),
            restricted_from=_value(binding, "restrictedFrom"),
            restricted_until=_value(binding, "restrictedUntil"),
        )

    def is_restricted(self, at: Optional[datetime] = None) -> bool:
        """
        Check whether access is restricted at a given moment.

        A window with only one bound is open-ended on the other side. A
        mountain with no restriction bounds is never restricted.

        Args:
            at: Moment to check, defaults to now (naive values are taken as UTC)

        Returns:
            bool: True if `at` falls inside the restriction window
        """
        start = _parse_datetime(self.restricted_from)
        end = _parse_datetime(self.restricted_until)
        if start is None and end is None:
            return False

        moment = at or datetime.now(timezone.utc)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)

        if start is not None and moment < start:
            return False
        if end is not None and moment > end:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uri": self.uri,
            "name": self.name,
            "description": self.description,
            "elevation": self.elevation,
            "imageUrl": self.image_url,
            "province": self.province,
            "lat": self.lat,
            "lon": self.lon,
            "statusLevel": self.status_level.value if self.status_level else None,
            "volcanicCategory": self.volcanic_category.value if self.volcanic_category else None,
            "googleMapsUrl": self.google_maps_url,
            "restrictedFrom": self.restricted_from,
            "restrictedUntil": self.restricted_until,
        }


@dataclass(frozen=True)
class RelatedMountain:
    """Reduced projection used for related-mountain suggestions."""

    uri: str
    name: str
    elevation: Optional[int] = None
    image_url: str = DEFAULT_IMAGE_URL
    province: Optional[str] = None

    @classmethod
    def from_binding(cls, binding: Mapping[str, Any]) -> "RelatedMountain":
        return cls(
            uri=_value(binding, "mountain") or "",
            name=_value(binding, "name") or "",
            elevation=_int_value(binding, "elevation"),
            image_url=_value(binding, "imageUrl") or DEFAULT_IMAGE_URL,
            province=_value(binding, "province"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uri": self.uri,
            "name": self.name,
            "elevation": self.elevation,
            "imageUrl": self.image_url,
            "province": self.province,
        }


@dataclass(frozen=True)
class ReferenceMountain:
    """Province and elevation of the mountain related results are anchored on."""

    province: Optional[str]
    elevation: int = 0

    @classmethod
    def from_binding(cls, binding: Mapping[str, Any]) -> "ReferenceMountain":
        return cls(
            province=_value(binding, "province"),
            elevation=_int_value(binding, "elevation") or 0,
        )


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse an integer filter value; anything but optionally signed ASCII digits yields None."""
    if value is None:
        return None
    text = str(value).strip()
    if not _INTEGER_PATTERN.fullmatch(text):
        return None
    return int(text)


@dataclass(frozen=True)
class SearchParams:
    """Parsed inbound query parameters. Every field is optional."""

    query: str = ""
    name: str = ""
    related_to: str = ""
    provinces: bool = False
    province: str = ""
    min_elevation: Optional[int] = None
    min_elevation_raw: str = ""
    sort_by: str = "relevance"
    sort_order: str = "asc"

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "SearchParams":
        """
        Build params from a request's query-string mapping.

        Unknown sort values fall back to relevance/asc, and a non-numeric
        minElevation is kept only as raw text so it still counts as a filter
        being present without ever being applied.
        """
        sort_by = (args.get("sortBy") or "relevance").strip().lower()
        if sort_by not in SORT_FIELDS:
            sort_by = "relevance"
        sort_order = (args.get("sortOrder") or "asc").strip().lower()
        if sort_order not in SORT_ORDERS:
            sort_order = "asc"

        min_elevation_raw = args.get("minElevation") or ""
        min_elevation = parse_int(min_elevation_raw) if min_elevation_raw else None
        if min_elevation_raw and min_elevation is None:
            logger.debug(f"Ignoring non-numeric minElevation: {min_elevation_raw!r}")

        return cls(
            query=args.get("q") or "",
            name=args.get("name") or "",
            related_to=args.get("relatedTo") or "",
            provinces=(args.get("provinces") or "").lower() == "true",
            province=args.get("province") or "",
            min_elevation=min_elevation,
            min_elevation_raw=min_elevation_raw,
            sort_by=sort_by,
            sort_order=sort_order,
        )

    @property
    def has_search_criteria(self) -> bool:
        return bool(self.query.strip() or self.province or self.min_elevation_raw)


@dataclass
class SearchResult:
    """Ranked search output split into best and other matches."""

    best_matches: List[Mountain] = field(default_factory=list)
    other_matches: List[Mountain] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bestMatches": [m.to_dict() for m in self.best_matches],
            "otherMatches": [m.to_dict() for m in self.other_matches],
        }
