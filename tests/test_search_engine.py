"""Pin request dispatch, filtering, ranking and related-mountain retrieval end to end.

Most tests run real SPARQL against the rdflib sample graph; dispatch and
failure paths use a recording fake store.
"""

import pytest

from gunung_search.graph_store import StoreConnectionError, StoreQueryRejectedError
from gunung_search.models import SearchParams
from gunung_search.search_engine import MountainSearchEngine
from gunung_search.sparql_queries import build_reference_query, build_related_query
from tests.conftest import FakeGraphStore, mountain_binding


def run(engine, **args):
    return engine.handle(SearchParams.from_args(args))


def names(items):
    return [item["name"] for item in items]


class TestDispatch:

    def test_no_criteria_short_circuits(self):
        store = FakeGraphStore()
        body, status = run(MountainSearchEngine(store))
        assert (body, status) == ({"bestMatches": [], "otherMatches": []}, 200)
        assert store.queries == []

    def test_name_wins_over_everything(self):
        store = FakeGraphStore([mountain_binding("Semeru", 3676)])
        body, status = run(MountainSearchEngine(store), name="Semeru", relatedTo="Merapi", provinces="true", q="x")
        assert status == 200
        assert body["mountain"]["name"] == "Semeru"
        assert len(store.queries) == 1
        assert "LIMIT 1" in store.queries[0]

    def test_related_wins_over_provinces(self):
        store = FakeGraphStore([], [])
        body, _ = run(MountainSearchEngine(store), relatedTo="Semeru", provinces="true")
        assert body == {"relatedMountains": []}

    def test_provinces_wins_over_search(self):
        store = FakeGraphStore([{"province": {"type": "literal", "value": "Bali"}}])
        body, _ = run(MountainSearchEngine(store), provinces="true", q="semeru")
        assert body == {"provinces": ["Bali"]}


class TestSearch:

    def test_abbreviation_scenario(self, engine):
        body, _ = run(engine, q="smr")
        assert "Semeru" in names(body["bestMatches"])
        assert "Semeru" not in names(body["otherMatches"])

    def test_province_text_scenario(self, engine):
        body, _ = run(engine, q="jawa")
        assert body["bestMatches"] == []
        other = names(body["otherMatches"])
        assert "Semeru" in other and "Merapi" in other
        # No name, province or description evidence above 0.15
        assert "Kerinci" not in other
        assert "Tambora" not in other

    def test_best_and_other_disjoint(self, engine):
        for q in ("se", "merapi", "r", "ng", "jawa timur"):
            body, _ = run(engine, q=q)
            assert not set(names(body["bestMatches"])) & set(names(body["otherMatches"]))

    def test_sort_ignored_with_query(self, engine):
        body, _ = run(engine, q="semeru", sortBy="name", sortOrder="desc")
        assert names(body["bestMatches"])[0] == "Semeru"

    def test_non_numeric_min_elevation_is_noop(self, engine):
        body, _ = run(engine, minElevation="abc")
        other = names(body["otherMatches"])
        assert len(other) == 15
        assert "Prau" in other

    def test_min_elevation_inclusive(self, engine):
        body, _ = run(engine, minElevation="3676")
        assert names(body["otherMatches"]) == ["Kerinci", "Rinjani", "Semeru"]

    def test_explicit_sort_without_query(self, engine):
        body, _ = run(engine, minElevation="3500", sortBy="elevation", sortOrder="asc")
        assert names(body["otherMatches"]) == ["Semeru", "Rinjani", "Kerinci"]
        body, _ = run(engine, minElevation="3500", sortBy="elevation", sortOrder="desc")
        assert names(body["otherMatches"]) == ["Kerinci", "Rinjani", "Semeru"]

    def test_province_filter_case_insensitive(self, engine):
        body, _ = run(engine, province="jawa timur")
        assert body["bestMatches"] == []
        assert names(body["otherMatches"]) == ["Arjuno", "Bromo", "Raung", "Semeru", "Welirang"]

    def test_filters_apply_before_ranking(self, engine):
        body, _ = run(engine, q="smr", province="Bali")
        assert body["bestMatches"] == []
        assert "Semeru" not in names(body["otherMatches"])

    def test_pagination_caps(self):
        bindings = [mountain_binding(f"Semeru {i}", 3000) for i in range(20)]
        bindings += [mountain_binding(f"Gunung {i}", 1000, "Jawa Barat") for i in range(40)]
        result = MountainSearchEngine(FakeGraphStore(bindings)).search(SearchParams.from_args({"q": "semeru"}))
        assert len(result.best_matches) == 15
        result = MountainSearchEngine(FakeGraphStore(bindings)).search(SearchParams.from_args({"q": "jawa"}))
        assert len(result.other_matches) == 30

    def test_store_failure_propagates(self):
        engine = MountainSearchEngine(FakeGraphStore(StoreConnectionError("down")))
        with pytest.raises(StoreConnectionError):
            run(engine, q="semeru")


class TestSingleLookup:

    def test_found_case_insensitive(self, engine):
        body, status = run(engine, name="sEmErU")
        assert status == 200
        mountain = body["mountain"]
        assert mountain["name"] == "Semeru"
        assert mountain["elevation"] == 3676
        assert mountain["province"] == "Jawa Timur"
        assert mountain["statusLevel"] == "Waspada"
        assert mountain["volcanicCategory"] == "A"
        assert mountain["lat"] == pytest.approx(-8.108)
        assert mountain["restrictedFrom"] is not None

    def test_not_found(self, engine):
        assert run(engine, name="Everest") == ({"error": "Mountain not found"}, 404)

    def test_hostile_name_is_not_an_injection(self, engine):
        body, status = run(engine, name='Semeru") || true || ("')
        assert status == 404

    def test_apostrophe_name_reaches_the_graph(self, engine):
        assert run(engine, name="Semeru's") == ({"error": "Mountain not found"}, 404)

    def test_apostrophe_in_related_queries(self, rdf_store):
        rdf_store.select(build_reference_query("Semeru's"))
        related = rdf_store.select(build_related_query("Semeru's", "Jawa Timur'", 3676))
        assert [b["name"]["value"] for b in related] == ["Arjuno", "Kerinci", "Lawu", "Raung", "Rinjani", "Semeru"]

    def test_store_failure_is_not_not_found(self):
        engine = MountainSearchEngine(FakeGraphStore(StoreQueryRejectedError("bad", details="x")))
        with pytest.raises(StoreQueryRejectedError):
            run(engine, name="Semeru")


class TestRelated:

    def test_semeru_scenario(self, engine):
        body, _ = run(engine, relatedTo="Semeru")
        related = body["relatedMountains"]
        assert len(related) == 6
        assert "Semeru" not in names(related)
        assert names(related)[:4] == ["Arjuno", "Bromo", "Raung", "Welirang"]
        for item in related:
            in_band = item["elevation"] is not None and 3176 <= item["elevation"] <= 4176
            assert item["province"] == "Jawa Timur" or in_band
        assert set(related[0]) == {"uri", "name", "elevation", "imageUrl", "province"}

    def test_same_province_sorts_first(self, engine):
        related = run(engine, relatedTo="semeru")[0]["relatedMountains"]
        provinces = [item["province"] for item in related]
        first_other = next(i for i, p in enumerate(provinces) if p != "Jawa Timur")
        assert all(p != "Jawa Timur" for p in provinces[first_other:])

    def test_reference_without_province_uses_band(self, engine):
        related = run(engine, relatedTo="Tambora")[0]["relatedMountains"]
        assert names(related) == ["Agung", "Arjuno", "Lawu", "Merapi", "Raung", "Sindoro"]

    def test_unknown_reference(self, engine):
        assert run(engine, relatedTo="Everest") == ({"relatedMountains": []}, 200)

    def test_two_phase_calls(self):
        reference = {"province": {"type": "literal", "value": "Jawa Timur"},
                     "elevation": {"type": "literal", "value": "3676"}}
        store = FakeGraphStore([reference], [mountain_binding("Bromo", 2329, "Jawa Timur"),
                                             mountain_binding("SEMERU", 3676, "Jawa Timur")])
        related = MountainSearchEngine(store).get_related_mountains("Semeru")
        assert len(store.queries) == 2
        assert "SELECT ?province ?elevation" in store.queries[0]
        assert 'STR(?province) = "Jawa Timur"' in store.queries[1]
        assert "?elevation >= 3176" in store.queries[1]
        # Self stays excluded even if the store returns it
        assert [m.name for m in related] == ["Bromo"]

    def test_missing_reference_elevation_defaults_to_zero(self):
        store = FakeGraphStore([{}], [])
        MountainSearchEngine(store).get_related_mountains("Prau")
        assert "?elevation >= -500" in store.queries[1]
        assert "?elevation <= 500" in store.queries[1]

    @pytest.mark.parametrize("failing_call", [0, 1])
    def test_store_failure_degrades_to_empty(self, failing_call):
        reference = {"elevation": {"type": "literal", "value": "2000"}}
        responses = [[reference], []]
        responses[failing_call] = StoreConnectionError("down")
        engine = MountainSearchEngine(FakeGraphStore(*responses))
        assert run(engine, relatedTo="Semeru") == ({"relatedMountains": []}, 200)


class TestProvinces:

    def test_lists_distinct_sorted(self, engine):
        body, _ = run(engine, provinces="true")
        assert body["provinces"] == ["Bali", "Jambi", "Jawa Tengah", "Jawa Timur", "Nusa Tenggara Barat"]

    def test_store_failure_degrades_to_empty(self):
        engine = MountainSearchEngine(FakeGraphStore(StoreQueryRejectedError("bad")))
        assert run(engine, provinces="true") == ({"provinces": []}, 200)
