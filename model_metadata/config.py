import os
from pathlib import Path
import tomllib


# Base Directory Setup
BASE_DIR = Path(__file__).resolve().parent
OUTPUT_DIR = os.getenv("MODEL_METADATA_OUTPUT_DIR") or "output"
DATA_DIR = os.getenv("MODEL_METADATA_DATA_DIR") or "data"
MODELS_INDEX_PATH = os.path.join(DATA_DIR, "models-index.yaml")
CATALOG_OUTPUT_PATH = os.path.join(DATA_DIR, "models-catalog.yaml")
DEFAULT_STATIC_CATALOG = os.path.join("input", "supplemental-catalog.yaml")
REPORT_DIR = OUTPUT_DIR

def get_project_metadata() -> tuple[str, str]:
    try:
        pyproject_path = BASE_DIR.parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return data["project"]["name"], data["project"]["version"]
    except Exception:
        return "model-metadata-collection", "1.0.0"

COLLECTOR_NAME, COLLECTOR_VERSION = get_project_metadata()

TEMPLATES_DIR = BASE_DIR / "templates"
ASSETS_DIR = BASE_DIR / "assets"

# Catalog
CATALOG_SOURCE = "Red Hat"

# Concurrency and network
HTTP_TIMEOUT = int(os.getenv("MODEL_METADATA_HTTP_TIMEOUT") or 30)
MAX_CONCURRENT = int(os.getenv("MODEL_METADATA_MAX_CONCURRENT") or 5)

# Hub matching
MATCH_THRESHOLD = 0.5
HIGH_CONFIDENCE_THRESHOLD = 0.8

# Hugging Face Setup
HF_TOKEN = os.getenv("HF_TOKEN")
HF_ORGANIZATION = os.getenv("HF_ORGANIZATION") or "RedHatAI"

# Registry credentials, anonymous pulls when unset
REGISTRY_USERNAME = os.getenv("REGISTRY_USERNAME")
REGISTRY_PASSWORD = os.getenv("REGISTRY_PASSWORD")
