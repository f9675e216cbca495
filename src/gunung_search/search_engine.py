"""
Mountain search engine.

Turns parsed request parameters into graph store queries and ranked,
paginated results. The engine keeps no per-request state: every call
re-queries the store.
"""

import logging
from typing import List, Optional, Tuple

from gunung_search.graph_store import BaseGraphStore, GraphStoreError
from gunung_search.models import (
    Mountain,
    ReferenceMountain,
    RelatedMountain,
    SearchParams,
    SearchResult,
)
from gunung_search.ranking import paginate, rank_mountains, sort_mountains
from gunung_search.sparql_queries import (
    build_mountain_by_name_query,
    build_mountain_list_query,
    build_provinces_query,
    build_reference_query,
    build_related_query,
)

logger = logging.getLogger(__name__)


class MountainSearchEngine:
    """Query ranking and retrieval over a mountain graph store"""

    def __init__(self, store: BaseGraphStore):
        """
        Args:
            store: Graph store answering SPARQL SELECT queries
        """
        self.store = store

    def handle(self, params: SearchParams) -> Tuple[dict, int]:
        """
        Dispatch a request by its shape and return (JSON body, HTTP status).

        Order: single lookup by name, related mountains, province list,
        empty result when no search criteria are given, full search.
        Store errors from search and single lookup propagate to the caller.
        """
        if params.name:
            mountain = self.get_mountain(params.name)
            if mountain is None:
                return {"error": "Mountain not found"}, 404
            return {"mountain": mountain.to_dict()}, 200

        if params.related_to:
            related = self.get_related_mountains(params.related_to)
            return {"relatedMountains": [m.to_dict() for m in related]}, 200

        if params.provinces:
            return {"provinces": self.get_provinces()}, 200

        return self.search(params).to_dict(), 200

    def search(self, params: SearchParams) -> SearchResult:
        """
        Run a full search: fetch, filter, rank or sort, then paginate.

        Structural filters (province, minimum elevation) are applied before
        ranking. With a query, each bucket is ordered by relevance and any
        explicit sort is ignored; without one every filtered record is an
        other match and the explicit sort applies.
        """
        if not params.has_search_criteria:
            logger.debug("No search criteria given, returning empty result")
            return SearchResult()

        bindings = self.store.select(build_mountain_list_query())
        mountains = [Mountain.from_binding(b) for b in bindings]
        total = len(mountains)

        mountains = self._apply_filters(mountains, params)

        query = params.query.strip()
        if query:
            best_matches, other_matches = rank_mountains(query, mountains)
        else:
            best_matches = []
            other_matches = sort_mountains(mountains, params.sort_by, params.sort_order)

        best_matches, other_matches = paginate(best_matches, other_matches)
        logger.info(f"Search q='{query}' province='{params.province}' minElevation={params.min_elevation}: "
                    f"{total} fetched, {len(best_matches)} best, {len(other_matches)} other")
        return SearchResult(best_matches=best_matches, other_matches=other_matches)

    @staticmethod
    def _apply_filters(mountains: List[Mountain], params: SearchParams) -> List[Mountain]:
        if params.province:
            wanted = params.province.lower()
            mountains = [m for m in mountains if m.province is not None and m.province.lower() == wanted]

        if params.min_elevation is not None:
            mountains = [m for m in mountains if m.elevation is not None and m.elevation >= params.min_elevation]

        return mountains

    def get_mountain(self, name: str) -> Optional[Mountain]:
        """Look up one mountain by case-insensitive exact name, or None if absent."""
        bindings = self.store.select(build_mountain_by_name_query(name))
        if not bindings:
            logger.info(f"Mountain not found: {name}")
            return None
        return Mountain.from_binding(bindings[0])

    def resolve_reference(self, name: str) -> Optional[ReferenceMountain]:
        """First phase of related lookup: the reference mountain's province and elevation."""
        bindings = self.store.select(build_reference_query(name))
        if not bindings:
            return None
        return ReferenceMountain.from_binding(bindings[0])

    def get_related_mountains(self, name: str) -> List[RelatedMountain]:
        """
        Find mountains related to the named one.

        Two sequential store calls: resolve the reference mountain, then query
        mountains sharing its province or within the elevation band. An
        unknown reference or a store failure yields an empty list.

        Args:
            name: Reference mountain name

        Returns:
            List of RelatedMountain, same-province first, never the reference itself
        """
        try:
            reference = self.resolve_reference(name)
            if reference is None:
                logger.info(f"Reference mountain not found for related lookup: {name}")
                return []

            bindings = self.store.select(
                build_related_query(name, reference.province, reference.elevation)
            )
        except GraphStoreError as e:
            logger.warning(f"Related mountain lookup failed for '{name}': {str(e)}")
            return []

        wanted = name.strip().lower()
        related = [RelatedMountain.from_binding(b) for b in bindings]
        # The store already filters the reference out; keep the guarantee local too
        return [m for m in related if m.name.strip().lower() != wanted]

    def get_provinces(self) -> List[str]:
        """Distinct province labels in lexicographic order; empty on store failure."""
        try:
            bindings = self.store.select(build_provinces_query())
        except GraphStoreError as e:
            logger.warning(f"Province list lookup failed: {str(e)}")
            return []

        provinces = []
        for binding in bindings:
            value = (binding.get("province") or {}).get("value")
            if value and value not in provinces:
                provinces.append(value)
        return provinces
