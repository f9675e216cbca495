"""
Configuration loader for the mountain search service.
This module handles loading configuration from environment files and the
dataset registry from config/datasets.yaml.
"""

import os
import logging
from typing import Dict, Any

import yaml
from dotenv import load_dotenv

from gunung_search import PROJECT_ROOT

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:3030/gunung/query"


class ConfigLoader:
    """Configuration loader for the mountain search service"""

    config_dir = str(PROJECT_ROOT / "config")

    @classmethod
    def load_config(cls, env_file: str = None) -> Dict[str, Any]:
        """Load configuration from environment file"""
        if env_file:
            # If relative path provided, check both config/ and absolute path
            if not os.path.isabs(env_file):
                config_path = os.path.join(cls.config_dir, env_file)
                if os.path.exists(config_path):
                    env_file = config_path

            if os.path.exists(env_file):
                logger.info(f"Loading configuration from {env_file}")
                load_dotenv(env_file)
            else:
                logger.warning(f"Specified env file not found: {env_file}, loading default")
                default_env = os.path.join(cls.config_dir, ".env")
                if os.path.exists(default_env):
                    load_dotenv(default_env)
        else:
            default_env = os.path.join(cls.config_dir, ".env")
            if os.path.exists(default_env):
                logger.info(f"Loading configuration from {default_env}")
                load_dotenv(default_env)
            else:
                logger.warning("No .env file found in config/ directory, using environment and defaults")

        # Endpoint credentials are optional and kept out of the main .env
        secrets_file = os.path.join(cls.config_dir, ".env.secrets")
        if os.path.exists(secrets_file):
            logger.info(f"Loading secrets from {secrets_file}")
            load_dotenv(secrets_file, override=True)

        config = {
            "fuseki_endpoint": os.environ.get("FUSEKI_ENDPOINT", DEFAULT_ENDPOINT),
            "sparql_timeout": _env_number("SPARQL_TIMEOUT", 10.0, float),
            "port": _env_number("PORT", 5001, int),
            "log_level": os.environ.get("LOG_LEVEL", "INFO").upper(),
        }

        if config["sparql_timeout"] <= 0:
            logger.warning("SPARQL_TIMEOUT must be positive, falling back to 10 seconds")
            config["sparql_timeout"] = 10.0

        return config

    @classmethod
    def load_datasets_config(cls, path: str = None, config: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Load the dataset registry from config/datasets.yaml.

        When no registry file exists a single 'default' dataset pointing at the
        configured Fuseki endpoint is returned, so a bare .env is enough to run.

        Args:
            path: Optional explicit path to a datasets YAML file
            config: Result of load_config(), used for the fallback endpoint

        Returns:
            Dict with 'datasets' mapping and 'default_dataset' id
        """
        datasets_path = path or os.path.join(cls.config_dir, "datasets.yaml")
        endpoint = (config or {}).get("fuseki_endpoint", DEFAULT_ENDPOINT)
        fallback = {
            "default_dataset": "default",
            "datasets": {
                "default": {
                    "display_name": "Gunung Indonesia",
                    "description": "Default Fuseki dataset",
                    "endpoint": endpoint,
                }
            },
        }

        if not os.path.exists(datasets_path):
            logger.info(f"No dataset registry at {datasets_path}, using FUSEKI_ENDPOINT {endpoint}")
            return fallback

        try:
            with open(datasets_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading dataset registry {datasets_path}: {str(e)}")
            return fallback

        datasets = loaded.get("datasets") or {}
        if not datasets:
            logger.warning(f"{datasets_path} defines no datasets, using FUSEKI_ENDPOINT {endpoint}")
            return fallback

        # Relative RDF file paths are resolved against the repository root
        for dataset_config in datasets.values():
            rdf_file = dataset_config.get("rdf_file")
            if rdf_file and not os.path.isabs(rdf_file):
                dataset_config["rdf_file"] = str(PROJECT_ROOT / rdf_file)

        default_dataset = loaded.get("default_dataset")
        if default_dataset not in datasets:
            default_dataset = next(iter(datasets))
            logger.info(f"No valid default_dataset configured, using '{default_dataset}'")

        logger.info(f"Loaded {len(datasets)} datasets from {datasets_path}")
        return {"default_dataset": default_dataset, "datasets": datasets}


def _env_number(name, default, cast):
    """Read a numeric environment variable, falling back on bad values."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}: {raw!r}, using default {default}")
        return default
