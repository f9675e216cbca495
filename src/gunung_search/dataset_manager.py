"""
Dataset Manager for multi-dataset search support.
Manages one graph store and search engine per configured dataset, created lazily.
"""

import logging
from typing import Any, Dict, List

from gunung_search.graph_store import BaseGraphStore, create_graph_store
from gunung_search.search_engine import MountainSearchEngine

logger = logging.getLogger(__name__)


class DatasetManager:
    """Manages graph store clients for the configured datasets with lazy loading"""

    def __init__(self, datasets_config: Dict[str, Any], config: Dict[str, Any]):
        """
        Initialize the DatasetManager.

        Args:
            datasets_config: Configuration from datasets.yaml containing 'datasets' dict
                             and optional 'default_dataset'
            config: Service configuration from .env files
        """
        self.datasets = datasets_config.get('datasets', {})
        self.default_dataset = datasets_config.get('default_dataset')
        self.config = config
        self._stores: Dict[str, BaseGraphStore] = {}

        logger.info(f"DatasetManager initialized with {len(self.datasets)} datasets")

    def list_datasets(self) -> List[Dict[str, Any]]:
        """
        Return list of available datasets with their status.

        Returns:
            List of dataset info dictionaries
        """
        result = []
        for dataset_id, dataset_config in self.datasets.items():
            result.append({
                "id": dataset_id,
                "display_name": dataset_config.get("display_name", dataset_id),
                "description": dataset_config.get("description", ""),
                "backend": "sparql" if dataset_config.get("endpoint") else "rdf_file",
                "initialized": self.is_initialized(dataset_id),
            })
        return result

    def get_store(self, dataset_id: str = None) -> BaseGraphStore:
        """
        Get or lazy-initialize the graph store for a dataset.

        Only the client (or the parsed RDF file) is kept between requests;
        query results are never cached.

        Args:
            dataset_id: The dataset identifier, defaults to the configured default

        Returns:
            BaseGraphStore for the dataset

        Raises:
            ValueError: If dataset_id is not found or has no backend configured
        """
        dataset_id = dataset_id or self.default_dataset
        if dataset_id not in self.datasets:
            raise ValueError(f"Dataset '{dataset_id}' not found. Available: {list(self.datasets.keys())}")

        if dataset_id in self._stores:
            return self._stores[dataset_id]

        logger.info(f"Initializing graph store for dataset: {dataset_id}")
        store = create_graph_store(
            self.datasets[dataset_id],
            timeout=self.config.get("sparql_timeout", 10),
        )
        self._stores[dataset_id] = store
        return store

    def get_engine(self, dataset_id: str = None) -> MountainSearchEngine:
        """Search engine bound to a dataset's store."""
        return MountainSearchEngine(self.get_store(dataset_id))

    def is_initialized(self, dataset_id: str) -> bool:
        """
        Check if a dataset's store has been created.

        Args:
            dataset_id: The dataset identifier

        Returns:
            True if the store is initialized in memory
        """
        return dataset_id in self._stores
