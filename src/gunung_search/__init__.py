"""gunung_search: fuzzy search over a SPARQL graph of Indonesian mountains."""
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent.parent  # src/gunung_search → src → repo root

__version__ = "0.3.0"
