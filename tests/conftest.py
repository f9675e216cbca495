"""Shared fixtures for the mountain search test suite.

Provides an rdflib-backed store over the bundled data/gunung.ttl graph, a
recording fake store for dispatch and failure paths, and a Flask test client.
"""

from pathlib import Path

import pytest

from gunung_search.app import create_app
from gunung_search.dataset_manager import DatasetManager
from gunung_search.graph_store import BaseGraphStore, RdfFileGraphStore
from gunung_search.models import Mountain
from gunung_search.search_engine import MountainSearchEngine

SAMPLE_TTL = Path(__file__).resolve().parent.parent / "data" / "gunung.ttl"


def literal(value, **extra):
    term = {"type": "literal", "value": str(value)}
    term.update(extra)
    return term


def mountain_binding(name, elevation=None, province=None, description=None, **extra):
    """Build one SPARQL-JSON binding for a mountain, omitting unbound variables."""
    slug = name.replace(" ", "_")
    binding = {
        "mountain": {"type": "uri", "value": f"http://sudutpuncak.com/resource/mountain/{slug}"},
        "name": literal(name),
    }
    if elevation is not None:
        binding["elevation"] = literal(elevation, datatype="http://www.w3.org/2001/XMLSchema#integer")
    if province is not None:
        binding["province"] = literal(province, **{"xml:lang": "id"})
    if description is not None:
        binding["description"] = literal(description)
    for var, value in extra.items():
        binding[var] = literal(value)
    return binding


def make_mountain(name, elevation=None, province=None, description=None):
    return Mountain.from_binding(mountain_binding(name, elevation, province, description))


class FakeGraphStore(BaseGraphStore):
    """Store double that records queries and replays canned responses in order.

    Each response is either a list of bindings or an exception to raise.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.queries = []

    def select(self, query):
        self.queries.append(query)
        if not self.responses:
            return []
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


# =============================================================================
# STORE FIXTURES
# =============================================================================

@pytest.fixture(scope="session")
def rdf_store():
    """In-memory graph parsed once from the sample Turtle file."""
    return RdfFileGraphStore(str(SAMPLE_TTL))


@pytest.fixture
def engine(rdf_store):
    return MountainSearchEngine(rdf_store)


# =============================================================================
# FLASK FIXTURES
# =============================================================================

@pytest.fixture
def datasets_config():
    return {
        "default_dataset": "sample",
        "datasets": {
            "sample": {
                "display_name": "Sample mountains",
                "description": "Test graph",
                "rdf_file": str(SAMPLE_TTL),
            },
            "remote": {
                "display_name": "Remote Fuseki",
                "endpoint": "http://fuseki.invalid/gunung/query",
            },
        },
    }


@pytest.fixture
def dataset_manager(datasets_config):
    return DatasetManager(datasets_config, {"sparql_timeout": 2})


@pytest.fixture
def client(datasets_config, dataset_manager):
    app = create_app({"port": 5001}, datasets_config, dataset_manager)
    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client
