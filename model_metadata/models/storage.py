"""
On-disk layout of per-model records.

Every processed reference owns one directory under the output root:

    <output>/<sanitized ref>/models/modelcard.md
    <output>/<sanitized ref>/models/metadata.yaml
    <output>/<sanitized ref>/models/enrichment.yaml

Workers only ever touch their own directory, so no locking is needed.
"""
import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

import yaml
from pydantic import ValidationError

from ..utils.text_utils import sanitize_manifest_ref
from .schemas import EnrichmentRecord, ExtractedMetadata, ManifestEntry, ModelEntry, ModelsIndex

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

MODELCARD_FILE = "modelcard.md"
METADATA_FILE = "metadata.yaml"
PROVENANCE_FILE = "enrichment.yaml"
MANIFESTS_FILE = "manifests.yaml"


class OutputDirectoryError(RuntimeError):
    """The output root cannot be created; no worker could make progress."""


def ensure_output_dir(output_dir: PathLike) -> Path:
    path = Path(output_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputDirectoryError(f"Cannot create output directory {path}: {e}") from e
    return path


def model_dir(output_dir: PathLike, ref: str) -> Path:
    return Path(output_dir) / sanitize_manifest_ref(ref) / "models"


def modelcard_path(output_dir: PathLike, ref: str) -> Path:
    return model_dir(output_dir, ref) / MODELCARD_FILE


def metadata_path(output_dir: PathLike, ref: str) -> Path:
    return model_dir(output_dir, ref) / METADATA_FILE


def provenance_path(output_dir: PathLike, ref: str) -> Path:
    return model_dir(output_dir, ref) / PROVENANCE_FILE


def read_yaml(path: PathLike) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_yaml(path: PathLike, data: Any) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)


def write_modelcard(output_dir: PathLike, ref: str, content: Union[str, bytes]) -> bool:
    path = modelcard_path(output_dir, ref)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return True
    except OSError as e:
        logger.warning(f"Failed to write modelcard for {ref}: {e}")
        return False


def read_modelcard(output_dir: PathLike, ref: str) -> Optional[str]:
    path = modelcard_path(output_dir, ref)
    if not path.exists():
        return None
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning(f"Failed to read modelcard {path}: {e}")
        return None


def load_metadata_file(path: PathLike) -> Optional[ExtractedMetadata]:
    """
    Load a metadata.yaml written by any version of the collector.

    Timestamps stored as strings or floats are coerced by the schema; records
    from the oldest format listed artifacts as bare strings, which are dropped
    because they carry no URI scheme or timestamps.
    """
    try:
        raw = read_yaml(path)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to read {path}: {e}")
        return None

    if not isinstance(raw, dict):
        logger.warning(f"Ignoring {path}: not a metadata mapping")
        return None

    try:
        metadata = ExtractedMetadata.model_validate(raw)
    except ValidationError:
        legacy = dict(raw)
        legacy["artifacts"] = [item for item in raw.get("artifacts") or [] if isinstance(item, dict)]
        try:
            metadata = ExtractedMetadata.model_validate(legacy)
        except ValidationError as e:
            logger.warning(f"Ignoring {path}: unrecognised metadata format ({e.error_count()} errors)")
            return None
        logger.info(f"Migrated legacy metadata format in {path}")

    metadata.apply_timestamp_defaults()
    return metadata


def load_metadata(output_dir: PathLike, ref: str) -> Optional[ExtractedMetadata]:
    path = metadata_path(output_dir, ref)
    if not path.exists():
        return None
    return load_metadata_file(path)


def save_metadata(output_dir: PathLike, ref: str, metadata: ExtractedMetadata) -> bool:
    path = metadata_path(output_dir, ref)
    try:
        write_yaml(path, metadata.to_yaml_dict())
        return True
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to write metadata for {ref}: {e}")
        return False


def save_provenance(output_dir: PathLike, ref: str, record: EnrichmentRecord) -> bool:
    path = provenance_path(output_dir, ref)
    try:
        write_yaml(path, record.model_dump(mode="json"))
        return True
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to write provenance for {ref}: {e}")
        return False


def load_provenance_file(path: PathLike) -> Optional[EnrichmentRecord]:
    path = Path(path)
    if not path.exists():
        return None
    try:
        return EnrichmentRecord.model_validate(read_yaml(path) or {})
    except (OSError, yaml.YAMLError, ValidationError) as e:
        logger.warning(f"Failed to read provenance {path}: {e}")
        return None


def iter_metadata_files(output_dir: PathLike) -> List[Path]:
    root = Path(output_dir)
    if not root.is_dir():
        return []
    return sorted(root.glob(f"*/models/{METADATA_FILE}"))


def write_manifests(output_dir: PathLike, entries: Iterable[ManifestEntry]) -> Optional[Path]:
    path = Path(output_dir) / MANIFESTS_FILE
    data = {"models": [entry.model_dump(by_alias=True, mode="json") for entry in entries]}
    try:
        write_yaml(path, data)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to write {path}: {e}")
        return None
    return path


def load_models_index(path: PathLike) -> List[ModelEntry]:
    """Read models-index.yaml; a missing or malformed file yields an empty list."""
    path = Path(path)
    if not path.exists():
        return []
    try:
        index = ModelsIndex.model_validate(read_yaml(path) or {})
    except (OSError, yaml.YAMLError, ValidationError) as e:
        logger.warning(f"Failed to load models index {path}: {e}")
        return []
    return index.models


def write_models_index(path: PathLike, entries: Iterable[ModelEntry]) -> None:
    write_yaml(path, ModelsIndex(models=list(entries)).model_dump(mode="json"))
