"""
Catalog generation from the per-model metadata records.

Dynamic records are converted to catalog form, duplicates produced by several
registry references for the same model are consolidated into one entry, and
hand-maintained static catalogs are appended unchanged.
"""
import base64
import functools
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import yaml

from ..config import ASSETS_DIR, CATALOG_SOURCE
from ..utils.validation import validate_static_catalog
from . import storage
from .resolver import merge_unique
from .schemas import CatalogArtifact, CatalogMetadata, ExtractedMetadata, ModelsCatalog

logger = logging.getLogger(__name__)

VALIDATED_TAG = "validated"
VALIDATED_LOGO = "catalog-validated_model.svg"
DEFAULT_LOGO = "catalog-model.svg"

_NAME_SEPARATORS = re.compile(r"[\s_-]+")


@functools.lru_cache(maxsize=None)
def encode_svg_data_uri(svg_path: str) -> str:
    try:
        content = Path(svg_path).read_bytes()
    except OSError as e:
        logger.warning(f"Failed to read SVG file {svg_path}: {e}")
        return svg_path
    return "data:image/svg+xml;base64," + base64.b64encode(content).decode("ascii")


def determine_logo(tags: List[str], assets_dir: Union[str, Path] = ASSETS_DIR) -> str:
    filename = VALIDATED_LOGO if VALIDATED_TAG in tags else DEFAULT_LOGO
    return encode_svg_data_uri(str(Path(assets_dir) / filename))


def to_catalog_metadata(metadata: ExtractedMetadata, assets_dir: Union[str, Path] = ASSETS_DIR) -> CatalogMetadata:
    """Catalog form of one record; tags travel as empty-valued custom properties."""
    create = metadata.create_time_since_epoch
    update = metadata.last_update_time_since_epoch
    if metadata.artifacts:
        if create is None:
            create = metadata.artifacts[0].create_time_since_epoch
        if update is None:
            update = metadata.artifacts[0].last_update_time_since_epoch

    properties: Dict[str, str] = {tag: "" for tag in metadata.tags if tag}
    if metadata.validated_on:
        properties["validated_on"] = ",".join(metadata.validated_on)

    artifacts = [
        CatalogArtifact(
            uri=artifact.uri,
            create_time_since_epoch=artifact.create_time_since_epoch,
            last_update_time_since_epoch=artifact.last_update_time_since_epoch,
            custom_properties=dict(artifact.custom_properties),
        )
        for artifact in metadata.artifacts
    ]

    return CatalogMetadata(
        name=metadata.name,
        provider=metadata.provider,
        description=metadata.description,
        readme=metadata.readme,
        language=list(metadata.language),
        license=metadata.license,
        license_link=metadata.license_link,
        library_name=metadata.library_name,
        tasks=list(metadata.tasks),
        create_time_since_epoch=create,
        last_update_time_since_epoch=update,
        custom_properties=properties,
        artifacts=artifacts,
        logo=determine_logo(metadata.tags, assets_dir),
    )


def group_key(name: Optional[str]) -> Optional[str]:
    """Case, surrounding whitespace and separator style do not distinguish models."""
    if not name or not name.strip():
        return None
    return _NAME_SEPARATORS.sub(" ", name.strip().lower())


def _as_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def merge_model_group(group: List[CatalogMetadata]) -> CatalogMetadata:
    """
    Consolidate records of the same model.

    The first record supplies the name and wins scalar conflicts; later ones
    only fill empty scalars. Artifacts are unioned by URI in order of first
    appearance. The model is as old as its oldest timestamp and as recent as
    its newest one, across both model and artifact levels.
    """
    merged = group[0].model_copy(deep=True)

    artifacts: List[CatalogArtifact] = []
    seen_uris = set()
    created: List[int] = []
    updated: List[int] = []
    for model in group:
        created.append(_as_int(model.create_time_since_epoch))
        updated.append(_as_int(model.last_update_time_since_epoch))
        for artifact in model.artifacts:
            created.append(_as_int(artifact.create_time_since_epoch))
            updated.append(_as_int(artifact.last_update_time_since_epoch))
            if artifact.uri in seen_uris:
                continue
            seen_uris.add(artifact.uri)
            artifacts.append(artifact.model_copy(deep=True))

    merged.artifacts = artifacts
    created = [value for value in created if value is not None]
    updated = [value for value in updated if value is not None]
    merged.create_time_since_epoch = str(min(created)) if created else None
    merged.last_update_time_since_epoch = str(max(updated)) if updated else None

    for model in group[1:]:
        for field in ("provider", "description", "readme", "license", "license_link", "library_name", "logo"):
            if getattr(merged, field) is None and getattr(model, field) is not None:
                setattr(merged, field, getattr(model, field))
        merged.language = merge_unique(merged.language, model.language)
        merged.tasks = merge_unique(merged.tasks, model.tasks)
        for key, value in model.custom_properties.items():
            merged.custom_properties.setdefault(key, value)

    logger.info(f"Consolidated {len(group)} models into '{merged.name}' with {len(merged.artifacts)} artifacts")
    for artifact in merged.artifacts:
        logger.debug(f"  - {artifact.uri}")
    return merged


def deduplicate_models(models: List[CatalogMetadata]) -> List[CatalogMetadata]:
    """Merge same-named records, sort by name, and keep unnamed records at the end."""
    groups: Dict[str, List[CatalogMetadata]] = {}
    unnamed: List[CatalogMetadata] = []
    for model in models:
        key = group_key(model.name)
        if key is None:
            unnamed.append(model)
            continue
        groups.setdefault(key, []).append(model)

    result = [merge_model_group(group) if len(group) > 1 else group[0] for group in groups.values()]
    duplicates = len(models) - len(unnamed) - len(result)
    if duplicates:
        logger.info(f"Consolidated {duplicates} duplicate catalog entries")

    result.sort(key=lambda model: model.name)
    return result + unnamed


def load_static_catalogs(paths: Iterable[Union[str, Path]]) -> List[CatalogMetadata]:
    """Models from every readable, valid static catalog; anything else is skipped with a warning."""
    models: List[CatalogMetadata] = []
    for path in paths:
        path = Path(path)
        logger.info(f"Loading static catalog: {path}")
        if not path.exists():
            logger.warning(f"Static catalog file not found: {path}")
            continue
        try:
            raw = storage.read_yaml(path)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Error reading static catalog file {path}: {e}")
            continue

        is_valid, errors = validate_static_catalog(raw)
        if not is_valid:
            logger.warning(f"Error validating static catalog file {path}: {'; '.join(errors)}")
            continue

        catalog = ModelsCatalog.model_validate(raw)
        models.extend(catalog.models)
        logger.info(f"Loaded {len(catalog.models)} models from {path}")
    return models


def static_catalog_paths(static_files: Optional[str], default_path: Optional[Union[str, Path]]) -> List[Path]:
    """Comma-separated custom files, then the default supplemental catalog if it exists."""
    paths = [Path(part.strip()) for part in (static_files or "").split(",") if part.strip()]
    if default_path and Path(default_path).exists():
        paths.append(Path(default_path))
    return paths


def collect_metadata(output_dir: Union[str, Path], refs: Optional[List[str]] = None) -> List[ExtractedMetadata]:
    """Records under the output root, restricted to `refs` when given."""
    if refs is None:
        files = storage.iter_metadata_files(output_dir)
    else:
        files = [storage.metadata_path(output_dir, ref) for ref in refs]

    records = []
    for path in files:
        if not path.exists():
            logger.debug(f"No metadata for {path.parent.parent.name}")
            continue
        logger.debug(f"Processing: {path}")
        metadata = storage.load_metadata_file(path)
        if metadata is not None:
            records.append(metadata)
    return records


def build_catalog(output_dir: Union[str, Path], static_models: Optional[List[CatalogMetadata]] = None,
                  refs: Optional[List[str]] = None,
                  assets_dir: Union[str, Path] = ASSETS_DIR) -> ModelsCatalog:
    records = collect_metadata(output_dir, refs)
    dynamic = deduplicate_models([to_catalog_metadata(record, assets_dir) for record in records])
    static = list(static_models or [])
    logger.info(f"Catalog has {len(dynamic)} dynamic models and {len(static)} static models")
    return ModelsCatalog(source=CATALOG_SOURCE, models=dynamic + static)


def write_catalog(catalog: ModelsCatalog, catalog_path: Union[str, Path]) -> Path:
    """Write the catalog YAML. Errors propagate; a catalog that cannot be written is fatal."""
    path = Path(catalog_path)
    storage.write_yaml(path, catalog.to_yaml_dict())
    logger.info(f"Successfully created {path} with {len(catalog.models)} models")
    return path
