"""
Metadata completeness report over a generated catalog.

For every catalog model and tracked field the report records whether the
field is populated and which source supplied it, taken from the model's
enrichment.yaml. Output is a markdown report for people and a YAML report
with the same data for scripts.
"""
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel, Field, ValidationError

from ..config import TEMPLATES_DIR
from . import storage
from .schemas import CatalogMetadata, DataSource, EnrichmentRecord, ModelsCatalog

logger = logging.getLogger(__name__)

MARKDOWN_REPORT = "metadata-report.md"
YAML_REPORT = "metadata-report.yaml"
REPORT_TEMPLATE = "metadata_report.md.j2"

VALUE_PREVIEW_LENGTH = 50
REGISTRY_SOURCE = "registry"

# Catalog field -> key in enrichment.yaml data_sources
TRACKED_FIELDS = {
    "name": "name",
    "provider": "provider",
    "description": "description",
    "readme": "readme",
    "language": "language",
    "license": "license",
    "licenseLink": "license_link",
    "libraryName": "library_name",
    "tasks": "tasks",
    "artifacts": None,
    "createTimeSinceEpoch": "create_time",
}

SOURCE_CATEGORIES = {
    DataSource.MODELCARD_YAML.value: "Modelcard YAML",
    DataSource.MODELCARD_REGEX.value: "Modelcard Regex",
    DataSource.MODELCARD_INFERRED.value: "Modelcard Regex",
    DataSource.HUGGINGFACE_YAML.value: "HuggingFace YAML",
    DataSource.HUGGINGFACE_TAGS.value: "HuggingFace Tags",
    DataSource.HUGGINGFACE_REGEX.value: "HuggingFace Regex/API",
    DataSource.HUGGINGFACE_API.value: "HuggingFace Regex/API",
    REGISTRY_SOURCE: "Registry",
    DataSource.GENERATED.value: "Generated",
}
OTHER_CATEGORY = "Other"
YAML_CATEGORIES = ("Modelcard YAML", "HuggingFace YAML")


class Completeness(BaseModel):
    populated: int = 0
    null: int = 0
    percentage: float = 0.0


class FieldStatus(BaseModel):
    value: Any = None
    source: str = "unknown"
    detection_method: str = "Unknown"
    is_null: bool = True


class ModelReport(BaseModel):
    name: str = ""
    provider: Optional[str] = None
    fields: Dict[str, FieldStatus] = Field(default_factory=dict)
    missing_fields: List[str] = Field(default_factory=list)
    source_breakdown: Dict[str, int] = Field(default_factory=dict)

    @property
    def yaml_health(self) -> Optional[float]:
        total = sum(self.source_breakdown.values())
        if not total:
            return None
        from_yaml = sum(self.source_breakdown.get(category, 0) for category in YAML_CATEGORIES)
        return from_yaml / total * 100


class ReportSummary(BaseModel):
    total_models: int = 0
    field_completeness: Dict[str, Completeness] = Field(default_factory=dict)
    data_sources: Dict[str, int] = Field(default_factory=dict)
    source_breakdown: Dict[str, int] = Field(default_factory=dict)


class MetadataReport(BaseModel):
    generated_at: str
    summary: ReportSummary
    models: List[ModelReport] = Field(default_factory=list)


def detection_method(source: str) -> str:
    if source.endswith(".yaml"):
        return "YAML frontmatter"
    if source.endswith(".regex"):
        return "Regex extraction"
    if source.endswith(".api"):
        return "API call"
    if source.endswith(".tags"):
        return "Tags metadata"
    if source.endswith(".inferred"):
        return "Inferred"
    if source == DataSource.GENERATED.value:
        return "Generated"
    if source == REGISTRY_SOURCE:
        return "Registry artifacts"
    return "Unknown"


def format_value(value: Any) -> str:
    """Short preview for the markdown table: long text truncated, lists summarised."""
    if value is None:
        return "—"
    if isinstance(value, list):
        if not value:
            return "—"
        if len(value) == 1:
            return str(value[0])
        return f"{value[0]} (+{len(value) - 1} more)"
    text = str(value).replace("\n", " ").replace("|", "\\|")
    if len(text) > VALUE_PREVIEW_LENGTH:
        return text[:VALUE_PREVIEW_LENGTH] + "..."
    return text


def load_provenance_by_name(output_dir: Union[str, Path]) -> Dict[str, EnrichmentRecord]:
    """Provenance records keyed by the model name stored next to them."""
    records: Dict[str, EnrichmentRecord] = {}
    for path in storage.iter_metadata_files(output_dir):
        provenance = storage.load_provenance_file(path.parent / storage.PROVENANCE_FILE)
        if provenance is None:
            continue
        metadata = storage.load_metadata_file(path)
        if metadata is not None and metadata.name:
            records[metadata.name] = provenance
    return records


def _field_value(model: CatalogMetadata, field: str) -> Any:
    if field == "readme":
        return "present" if model.readme else None
    if field == "artifacts":
        return len(model.artifacts) or None
    if field == "licenseLink":
        return model.license_link
    if field == "libraryName":
        return model.library_name
    if field == "createTimeSinceEpoch":
        value = model.create_time_since_epoch
        return value if value and value != "0" else None
    value = getattr(model, field)
    return value or None


def analyze_field(model: CatalogMetadata, field: str, provenance: Optional[EnrichmentRecord]) -> FieldStatus:
    value = _field_value(model, field)
    if value is None:
        return FieldStatus()

    key = TRACKED_FIELDS[field]
    if key is None:
        source = REGISTRY_SOURCE
    elif provenance is not None and provenance.data_sources.get(key) not in (None, "", DataSource.NULL.value):
        source = provenance.data_sources[key]
    else:
        # without enrichment everything came from the modelcard body
        source = DataSource.MODELCARD_REGEX.value
    return FieldStatus(value=value, source=source, detection_method=detection_method(source), is_null=False)


def analyze_model(model: CatalogMetadata, provenance: Optional[EnrichmentRecord]) -> ModelReport:
    report = ModelReport(name=model.name or "", provider=model.provider)
    for field in TRACKED_FIELDS:
        status = analyze_field(model, field, provenance)
        report.fields[field] = status
        if status.is_null:
            report.missing_fields.append(field)
            continue
        category = SOURCE_CATEGORIES.get(status.source, OTHER_CATEGORY)
        report.source_breakdown[category] = report.source_breakdown.get(category, 0) + 1
    return report


def generate_report(catalog: ModelsCatalog, provenance: Dict[str, EnrichmentRecord]) -> MetadataReport:
    models = [analyze_model(model, provenance.get(model.name or "")) for model in catalog.models]

    completeness: Dict[str, Completeness] = {}
    sources: Counter = Counter()
    breakdown: Counter = Counter()
    for field in TRACKED_FIELDS:
        populated = sum(1 for model in models if not model.fields[field].is_null)
        null = len(models) - populated
        percentage = populated / len(models) * 100 if models else 0.0
        completeness[field] = Completeness(populated=populated, null=null, percentage=round(percentage, 1))
    for model in models:
        sources.update(status.source for status in model.fields.values() if not status.is_null)
        breakdown.update(model.source_breakdown)

    summary = ReportSummary(
        total_models=len(models),
        field_completeness=completeness,
        data_sources=dict(sources.most_common()),
        source_breakdown=dict(breakdown.most_common()),
    )
    generated_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    return MetadataReport(generated_at=generated_at, summary=summary, models=models)


def render_markdown(report: MetadataReport, templates_dir: Union[str, Path] = TEMPLATES_DIR) -> str:
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(['html', 'xml']),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["preview"] = format_value
    template = env.get_template(REPORT_TEMPLATE)

    total_sources = sum(report.summary.data_sources.values())
    fields_by_completeness = sorted(
        report.summary.field_completeness.items(), key=lambda item: -item[1].percentage
    )
    return template.render(
        report=report,
        fields_by_completeness=fields_by_completeness,
        total_sources=total_sources,
    )


def generate_metadata_report(catalog_path: Union[str, Path], output_dir: Union[str, Path],
                             report_dir: Union[str, Path]) -> Optional[Dict[str, Path]]:
    """Write both reports. Returns their paths, or None when the catalog is unreadable."""
    try:
        catalog = ModelsCatalog.model_validate(storage.read_yaml(catalog_path) or {})
    except (OSError, yaml.YAMLError, ValidationError) as e:
        logger.warning(f"Failed to read catalog {catalog_path}: {e}")
        return None

    report = generate_report(catalog, load_provenance_by_name(output_dir))

    report_dir = Path(report_dir)
    report_dir.mkdir(parents=True, exist_ok=True)
    markdown_path = report_dir / MARKDOWN_REPORT
    yaml_path = report_dir / YAML_REPORT
    markdown_path.write_text(render_markdown(report), encoding="utf-8")
    storage.write_yaml(yaml_path, report.model_dump(mode="json"))

    logger.info(f"Metadata reports written to {markdown_path} and {yaml_path}")
    return {"markdown": markdown_path, "yaml": yaml_path}
