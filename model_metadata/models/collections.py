"""
Hub collection discovery and the version index files derived from it.

Each validated-models collection on the hub becomes one version index file
(`hugging-face-redhat-ai-validated-<version>.yaml`) in the data directory.
Together they form the candidate list the matcher scores registry references
against.
"""
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from ..clients.hub import HubClient
from .schemas import HubIndexEntry, ModelEntry, VersionIndex
from .storage import read_yaml, write_yaml

logger = logging.getLogger(__name__)

VERSION_INDEX_PREFIX = "hugging-face-redhat-ai-validated-"
DEFAULT_VERSION = "v1.0"
MODELCAR_REGISTRY_PREFIX = "registry.redhat.io/rhelai1/modelcar-"
VALIDATED_LABEL = "validated"

MONTHS = {
    "january": "01", "february": "02", "march": "03", "april": "04",
    "may": "05", "june": "06", "july": "07", "august": "08",
    "september": "09", "october": "10", "november": "11", "december": "12",
}

_SEMVER = re.compile(r"v(\d+\.\d+(?:\.\d+)?)")
_MONTH_YEAR = re.compile(r"(" + "|".join(MONTHS) + r")\s+(\d{4})", re.IGNORECASE)


def parse_version_from_title(title: str) -> str:
    """`v1.2` style versions win; otherwise "May 2025" becomes `v2025.05`."""
    semver = _SEMVER.search(title.lower())
    if semver:
        return "v" + semver.group(1)

    month_year = _MONTH_YEAR.search(title)
    if month_year:
        return f"v{month_year.group(2)}.{MONTHS[month_year.group(1).lower()]}"

    return DEFAULT_VERSION


def version_key(version: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in re.findall(r"\d+", version))


def version_index_path(data_dir: Union[str, Path], version: str) -> Path:
    return Path(data_dir) / f"{VERSION_INDEX_PREFIX}{version.replace('.', '-')}.yaml"


def write_version_index(data_dir: Union[str, Path], version: str, entries: List[HubIndexEntry]) -> Path:
    path = version_index_path(data_dir, version)
    write_yaml(path, VersionIndex(version=version, models=entries).model_dump())
    logger.info(f"Generated index file: {path} with {len(entries)} models")
    return path


def process_collections(hub: HubClient, data_dir: Union[str, Path]) -> List[Path]:
    """Write one version index per validated collection; failed collections are skipped."""
    written = []
    for slug in hub.list_validated_collections():
        collection = hub.get_collection(slug)
        if collection is None:
            continue

        title = getattr(collection, "title", "") or slug
        version = parse_version_from_title(title)
        entries = hub.collection_models(collection)
        logger.info(f"Found collection: {title} ({version}, {len(entries)} models)")
        try:
            written.append(write_version_index(data_dir, version, entries))
        except OSError as e:
            logger.warning(f"Failed to write version index for {slug}: {e}")
    return written


def load_version_indexes(data_dir: Union[str, Path]) -> List[VersionIndex]:
    indexes = []
    for path in sorted(Path(data_dir).glob(f"{VERSION_INDEX_PREFIX}v*.yaml")):
        try:
            indexes.append(VersionIndex.model_validate(read_yaml(path) or {}))
        except (OSError, yaml.YAMLError, ValidationError) as e:
            logger.warning(f"Failed to parse {path}: {e}")
    return sorted(indexes, key=lambda index: version_key(index.version))


def load_hub_candidates(data_dir: Union[str, Path]) -> List[HubIndexEntry]:
    """Union of all version indexes, newer versions winning per model name, sorted by name."""
    merged: Dict[str, HubIndexEntry] = {}
    for index in load_version_indexes(data_dir):
        for entry in index.models:
            merged[entry.name] = entry
    return [merged[name] for name in sorted(merged)]


def latest_version_index(data_dir: Union[str, Path]) -> Optional[VersionIndex]:
    indexes = load_version_indexes(data_dir)
    return indexes[-1] if indexes else None


def registry_ref_for_hub_model(model_id: str) -> str:
    return MODELCAR_REGISTRY_PREFIX + model_id.replace("/", "-").lower()


def models_index_from_version_index(index: VersionIndex) -> List[ModelEntry]:
    """Models to process when no models index exists: every hub model as a modelcar."""
    return [
        ModelEntry(type="oci", uri=registry_ref_for_hub_model(entry.name), labels=[VALIDATED_LABEL])
        for entry in index.models
    ]
