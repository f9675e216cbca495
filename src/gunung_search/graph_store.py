"""
Graph store clients for the mountain search service.

Two backends answer SPARQL SELECT queries and return SPARQL-JSON bindings:
a remote endpoint (Fuseki or any SPARQL 1.1 protocol server) reached over
HTTP with requests, and an RDF file loaded into an in-memory rdflib Graph.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List

import requests
from rdflib import Graph

logger = logging.getLogger(__name__)

Binding = Dict[str, Dict[str, Any]]

SPARQL_RESULTS_JSON = "application/sparql-results+json"

RDF_FORMATS = {
    ".ttl": "turtle",
    ".nt": "nt",
    ".n3": "n3",
    ".rdf": "xml",
    ".xml": "xml",
    ".jsonld": "json-ld",
    ".json": "json-ld",
}


class GraphStoreError(Exception):
    """Base class for graph store failures."""


class StoreQueryRejectedError(GraphStoreError):
    """The store responded, but with a failure or an unusable body."""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details


class StoreConnectionError(GraphStoreError):
    """The store could not be reached or did not answer in time."""


class BaseGraphStore(ABC):
    """Base class for graph stores"""

    @abstractmethod
    def select(self, query: str) -> List[Binding]:
        """Run a SELECT query and return its bindings"""
        pass

    @staticmethod
    def _bindings(results: Any) -> List[Binding]:
        try:
            return results["results"]["bindings"]
        except (KeyError, TypeError) as e:
            raise StoreQueryRejectedError("Store returned no SPARQL result bindings", details=str(e)) from e


class SparqlGraphStore(BaseGraphStore):
    """
    Remote SPARQL endpoint.

    Queries are sent as form-encoded POST bodies asking for SPARQL-JSON
    results. No retries: a failed call surfaces immediately.
    """

    def __init__(self, endpoint_url: str, timeout: float = 10):
        self.endpoint_url = endpoint_url
        self.timeout = timeout

    def select(self, query: str) -> List[Binding]:
        try:
            response = requests.post(
                self.endpoint_url,
                data={"query": query},
                headers={"Accept": SPARQL_RESULTS_JSON},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            # Refused connections, DNS failures and timeouts: no response at all
            logger.error(f"Could not reach SPARQL endpoint {self.endpoint_url}: {str(e)}")
            raise StoreConnectionError(f"Could not reach SPARQL endpoint: {str(e)}") from e

        if not response.ok:
            logger.error(f"SPARQL endpoint returned HTTP {response.status_code}: {response.text}")
            raise StoreQueryRejectedError(
                f"SPARQL endpoint returned HTTP {response.status_code}", details=response.text
            )

        try:
            results = response.json()
        except ValueError as e:
            logger.error(f"SPARQL endpoint returned an unparsable body: {str(e)}")
            raise StoreQueryRejectedError("SPARQL endpoint returned an unparsable response", details=str(e)) from e

        bindings = self._bindings(results)
        logger.debug(f"SPARQL endpoint returned {len(bindings)} bindings")
        return bindings


class RdfFileGraphStore(BaseGraphStore):
    """
    In-memory graph loaded from an RDF file.

    The file is parsed once; queries then run in-process against the
    read-only graph and are serialised to the same SPARQL-JSON shape the
    remote endpoint produces.
    """

    def __init__(self, rdf_file: str, rdf_format: str = None):
        self.rdf_file = rdf_file
        if not os.path.exists(rdf_file):
            raise StoreConnectionError(f"RDF file not found: {rdf_file}")

        # Determine format from extension
        rdf_format = rdf_format or RDF_FORMATS.get(Path(rdf_file).suffix.lower(), "turtle")
        self.graph = Graph()
        try:
            self.graph.parse(rdf_file, format=rdf_format)
        except Exception as e:
            logger.error(f"Could not parse RDF file {rdf_file}: {str(e)}")
            raise StoreConnectionError(f"Could not load RDF file {rdf_file}: {str(e)}") from e
        logger.info(f"Loaded {len(self.graph)} triples from {rdf_file}")

    def select(self, query: str) -> List[Binding]:
        try:
            result = self.graph.query(query)
            payload = result.serialize(format="json")
        except Exception as e:
            logger.error(f"Local graph rejected query: {str(e)}")
            raise StoreQueryRejectedError("Query rejected by local graph", details=str(e)) from e

        bindings = self._bindings(json.loads(payload))
        logger.debug(f"Local graph returned {len(bindings)} bindings")
        return bindings


def create_graph_store(dataset_config: Dict[str, Any], timeout: float = 10) -> BaseGraphStore:
    """
    Factory function to get a graph store for a dataset configuration.

    Args:
        dataset_config: Dataset entry from datasets.yaml with 'endpoint' or 'rdf_file'
        timeout: Request timeout in seconds for remote endpoints

    Returns:
        BaseGraphStore instance

    Raises:
        ValueError: If the dataset names neither an endpoint nor an RDF file
    """
    endpoint = dataset_config.get("endpoint")
    rdf_file = dataset_config.get("rdf_file")
    if endpoint:
        logger.info(f"Using SPARQL endpoint {endpoint} (timeout {timeout}s)")
        return SparqlGraphStore(endpoint, timeout=timeout)
    if rdf_file:
        logger.info(f"Using local RDF file {rdf_file}")
        return RdfFileGraphStore(rdf_file, rdf_format=dataset_config.get("rdf_format"))
    raise ValueError("Dataset needs either an 'endpoint' or an 'rdf_file'")
