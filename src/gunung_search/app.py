"""
Flask application for the mountain search service.
Contains the search route, dataset listing and application initialization.
"""

import argparse
import logging
import sys

from flask import Flask, request, jsonify
from logging.handlers import RotatingFileHandler

from gunung_search import PROJECT_ROOT
from gunung_search.config_loader import ConfigLoader
from gunung_search.dataset_manager import DatasetManager
from gunung_search.graph_store import StoreConnectionError, StoreQueryRejectedError, GraphStoreError
from gunung_search.models import SearchParams

logger = logging.getLogger(__name__)


def create_app(config, datasets_config, dataset_manager):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.json.sort_keys = False

    # --- Routes ---

    @app.route('/api/search', methods=['GET'])
    def search_api():
        """API endpoint for search, single lookup, related mountains and provinces"""
        params = SearchParams.from_args(request.args)
        dataset_id = request.args.get('dataset_id') or datasets_config.get('default_dataset')
        logger.info(f"Search request: {dict(request.args)} (dataset: {dataset_id})")

        try:
            engine = dataset_manager.get_engine(dataset_id)
        except ValueError as e:
            return jsonify({"error": str(e)}), 404
        except GraphStoreError as e:
            logger.error(f"Dataset '{dataset_id}' unavailable: {str(e)}")
            return jsonify({"error": "Dataset not available", "message": str(e)}), 500

        try:
            body, status = engine.handle(params)
        except StoreQueryRejectedError as e:
            return jsonify({"error": "Failed to query SPARQL endpoint", "details": e.details or str(e)}), 500
        except StoreConnectionError as e:
            return jsonify({"error": "Failed to connect to SPARQL endpoint", "message": str(e)}), 500

        return jsonify(body), status

    @app.route('/api/datasets', methods=['GET'])
    def list_datasets():
        """API endpoint to list available datasets"""
        return jsonify({
            "datasets": dataset_manager.list_datasets(),
            "default": datasets_config.get('default_dataset')
        })

    return app


def _run_cli(engine, dataset_id, query):
    """Run one search in CLI mode (no Flask) and print the ranked listing."""
    params = SearchParams.from_args({"q": query})
    result = engine.search(params)

    print(f"\nMountain search, dataset: {dataset_id}, query: {query!r}")
    for title, mountains in (("Best matches", result.best_matches), ("Other matches", result.other_matches)):
        print(f"\n--- {title} ({len(mountains)}) ---")
        for mountain in mountains:
            elevation = f"{mountain.elevation} m" if mountain.elevation is not None else "? m"
            province = mountain.province or "-"
            flags = []
            if mountain.status_level:
                flags.append(f"status {mountain.status_level.value} (level {mountain.status_level.level})")
            if mountain.is_restricted():
                flags.append("closed")
            suffix = f"  [{', '.join(flags)}]" if flags else ""
            print(f"  - {mountain.name} ({elevation}, {province}){suffix}")
    print()


def main():
    """Entry point: parse CLI args, configure logging, create app, and run."""
    parser = argparse.ArgumentParser(description='Indonesian mountain search service')
    parser.add_argument('--env', type=str, help='Path to environment file')
    parser.add_argument('--dataset', type=str, default=None,
                        help='Dataset ID to serve by default (from datasets.yaml).')
    parser.add_argument('--port', type=int, default=None, help='Port to listen on (overrides PORT).')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging.')
    parser.add_argument('--search', type=str, default=None,
                        help='Run one search from the command line and exit instead of starting the server.')
    args = parser.parse_args()

    config = ConfigLoader.load_config(args.env)

    # Configure logging
    log_dir = PROJECT_ROOT / 'logs'
    log_dir.mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else getattr(logging, config.get("log_level", "INFO"), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            RotatingFileHandler(str(log_dir / 'app.log'), maxBytes=10485760, backupCount=5),
            logging.StreamHandler()
        ]
    )
    if args.debug:
        logger.info("Debug logging enabled")

    datasets_config = ConfigLoader.load_datasets_config(config=config)
    logger.info(f"Found {len(datasets_config['datasets'])} datasets in configuration")

    if args.dataset:
        available_datasets = list(datasets_config.get('datasets', {}).keys())
        if args.dataset not in available_datasets:
            print(f"ERROR: Dataset '{args.dataset}' not found.")
            print(f"Available datasets: {', '.join(available_datasets)}")
            sys.exit(1)
        datasets_config['default_dataset'] = args.dataset
        logger.info(f"Default dataset overridden to: {args.dataset}")

    dataset_manager = DatasetManager(datasets_config, config)

    # CLI mode: --search
    if args.search is not None:
        dataset_id = datasets_config.get('default_dataset')
        try:
            engine = dataset_manager.get_engine(dataset_id)
            _run_cli(engine, dataset_id, args.search)
        except (ValueError, GraphStoreError) as e:
            print(f"ERROR: {e}")
            sys.exit(1)
        return

    app = create_app(config, datasets_config, dataset_manager)
    port = args.port or config.get("port", 5001)

    print(f"Starting Flask application...")
    print(f"Running on http://localhost:{port}")
    print(f"Default dataset: {datasets_config.get('default_dataset')}")
    print(f"Press CTRL+C to stop the server")

    app.run(debug=False, host='127.0.0.1', port=port, threaded=True)


if __name__ == '__main__':
    main()
