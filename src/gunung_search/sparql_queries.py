"""
SPARQL query construction for the mountain graph.

Builds the four queries the search service issues: mountain listing, single
lookup by name, related-mountain lookup and the distinct province list. Every
user-supplied string is escaped with sanitize_sparql_input() before it is
placed inside a quoted literal; numeric values are formatted from ints only.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

ELEVATION_BAND = 500
RELATED_LIMIT = 6

PREFIXES = """
PREFIX sdp: <http://sudutpuncak.com/ontology#>
PREFIX rdfs: <http://www.w3.org/2000/01/rdf-schema#>
PREFIX geo: <http://www.w3.org/2003/01/geo/wgs84_pos#>
PREFIX xsd: <http://www.w3.org/2001/XMLSchema#>
"""

MOUNTAIN_VARIABLES = (
    "?mountain ?name ?description ?elevation ?imageUrl ?province ?lat ?lon "
    "?statusLevel ?volcanicCategory ?googleMapsUrl ?restrictedFrom ?restrictedUntil"
)

# Optional joins so a missing attribute never drops the mountain itself
MOUNTAIN_PATTERN = """
    ?mountain a sdp:Mountain ;
              rdfs:label ?name .

    OPTIONAL { ?mountain sdp:description ?description . }
    OPTIONAL { ?mountain sdp:elevation ?elevation . }
    OPTIONAL { ?mountain sdp:imageUrl ?imageUrl . }
    OPTIONAL { ?mountain sdp:googleMapsUrl ?googleMapsUrl . }

    OPTIONAL {
        ?mountain sdp:locatedInProvince ?provinceUri .
        ?provinceUri rdfs:label ?province .
    }

    OPTIONAL {
        ?mountain sdp:hasLocation ?location .
        ?location geo:lat ?lat ;
                  geo:long ?lon .
    }

    OPTIONAL {
        ?mountain sdp:hasStatusLevel ?statusLevelUri .
        ?statusLevelUri rdfs:label ?statusLevel .
    }

    OPTIONAL {
        ?mountain sdp:hasVolcanicCategory ?volcanicCategoryUri .
        ?volcanicCategoryUri rdfs:label ?volcanicCategory .
    }

    OPTIONAL {
        ?mountain sdp:hasRestriction ?restriction .
        OPTIONAL { ?restriction sdp:restrictedFrom ?restrictedFrom . }
        OPTIONAL { ?restriction sdp:restrictedUntil ?restrictedUntil . }
    }
"""

_ESCAPES = (
    ("\\", "\\\\"),
    ('"', '\\"'),
    # \u0027 rather than \', which SPARQL string escapes do not include
    ("'", "\\u0027"),
    ("\n", "\\n"),
    ("\r", "\\r"),
    ("\t", "\\t"),
)


def sanitize_sparql_input(value):
    """
    Escape a string for use inside a quoted SPARQL literal.

    Backslash is escaped first so the escapes added afterwards are not doubled.

    Args:
        value: Raw user-supplied text

    Returns:
        str: Text safe to embed between double quotes in a query
    """
    text = str(value)
    for raw, escaped in _ESCAPES:
        text = text.replace(raw, escaped)
    return text


def build_mountain_list_query():
    """Query for every mountain with all optional attributes, ordered by name."""
    return f"""{PREFIXES}
SELECT {MOUNTAIN_VARIABLES}
WHERE {{
{MOUNTAIN_PATTERN}
}}
ORDER BY ?name
"""


def build_mountain_by_name_query(name):
    """Query for a single mountain by case-insensitive exact name."""
    safe_name = sanitize_sparql_input(name)
    return f"""{PREFIXES}
SELECT {MOUNTAIN_VARIABLES}
WHERE {{
{MOUNTAIN_PATTERN}
    FILTER(LCASE(STR(?name)) = LCASE("{safe_name}"))
}}
LIMIT 1
"""


def build_reference_query(name):
    """Query for the province and elevation of the mountain related results anchor on."""
    safe_name = sanitize_sparql_input(name)
    return f"""{PREFIXES}
SELECT ?province ?elevation
WHERE {{
    ?mountain a sdp:Mountain ;
              rdfs:label ?name .
    FILTER(LCASE(STR(?name)) = LCASE("{safe_name}"))

    OPTIONAL {{
        ?mountain sdp:locatedInProvince ?provinceUri .
        ?provinceUri rdfs:label ?province .
    }}
    OPTIONAL {{ ?mountain sdp:elevation ?elevation . }}
}}
LIMIT 1
"""


def build_related_query(name, province: Optional[str], elevation: int):
    """
    Query for mountains related to a reference mountain.

    A mountain is related when it shares the reference's province or its
    elevation lies within ELEVATION_BAND metres of the reference elevation.
    Without a reference province only the elevation band applies. The
    reference itself is excluded by case-insensitive name, same-province
    results sort first and the result is capped at RELATED_LIMIT.

    Args:
        name: Reference mountain name (user supplied)
        province: Reference province label, or None
        elevation: Reference elevation in metres (0 when unknown)

    Returns:
        str: SPARQL SELECT query
    """
    safe_name = sanitize_sparql_input(name)
    elevation = int(elevation)
    elevation_min = elevation - ELEVATION_BAND
    elevation_max = elevation + ELEVATION_BAND
    elevation_filter = (
        f"BOUND(?elevation) && ?elevation >= {elevation_min} && ?elevation <= {elevation_max}"
    )

    if province:
        safe_province = sanitize_sparql_input(province)
        # STR() drops language tags so "Jawa Timur"@id equals the plain literal
        same_province = f'COALESCE(STR(?province) = "{safe_province}", false)'
        related_filter = f"FILTER({same_province} || ({elevation_filter}))"
        order_by = f"DESC({same_province}) ?name"
    else:
        related_filter = f"FILTER({elevation_filter})"
        order_by = "?name"

    logger.debug(f"Related filter for '{name}': province={province!r}, "
                 f"elevation {elevation_min}..{elevation_max}")

    return f"""{PREFIXES}
SELECT ?mountain ?name ?elevation ?imageUrl ?province
WHERE {{
    ?mountain a sdp:Mountain ;
              rdfs:label ?name .

    FILTER(LCASE(STR(?name)) != LCASE("{safe_name}"))

    OPTIONAL {{ ?mountain sdp:elevation ?elevation . }}
    OPTIONAL {{ ?mountain sdp:imageUrl ?imageUrl . }}

    OPTIONAL {{
        ?mountain sdp:locatedInProvince ?provinceUri .
        ?provinceUri rdfs:label ?province .
    }}

    {related_filter}
}}
ORDER BY {order_by}
LIMIT {RELATED_LIMIT}
"""


def build_provinces_query():
    """Query for the distinct province labels that have at least one mountain."""
    return f"""{PREFIXES}
SELECT DISTINCT ?province
WHERE {{
    ?mountain a sdp:Mountain ;
              sdp:locatedInProvince ?provinceUri .
    ?provinceUri rdfs:label ?province .
}}
ORDER BY ?province
"""
