from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# --- Enums ---
class DataSource(str, Enum):
    """Enumeration of data sources for provenance tracking"""
    NULL = "null"
    MODELCARD_YAML = "modelcard.yaml"
    HUGGINGFACE_YAML = "huggingface.yaml"
    MODELCARD_REGEX = "modelcard.regex"
    HUGGINGFACE_TAGS = "huggingface.tags"
    HUGGINGFACE_API = "huggingface.api"
    HUGGINGFACE_REGEX = "huggingface.regex"
    MODELCARD_INFERRED = "modelcard.inferred"
    GENERATED = "generated"

    @property
    def authority(self) -> int:
        return SOURCE_AUTHORITY[self]

    def outranks(self, other: "DataSource") -> bool:
        return self.authority > other.authority


# Higher wins. NULL is below everything so any present value replaces it.
SOURCE_AUTHORITY: Dict[DataSource, int] = {
    DataSource.MODELCARD_YAML: 7,
    DataSource.HUGGINGFACE_YAML: 6,
    DataSource.MODELCARD_REGEX: 5,
    DataSource.HUGGINGFACE_TAGS: 4,
    DataSource.HUGGINGFACE_API: 3,
    DataSource.HUGGINGFACE_REGEX: 2,
    DataSource.MODELCARD_INFERRED: 1,
    DataSource.GENERATED: 1,
    DataSource.NULL: 0,
}

# Structured front-matter lists are complete as written and replace rather than extend
COMPLETE_SOURCES = frozenset({DataSource.MODELCARD_YAML, DataSource.HUGGINGFACE_YAML})


class ConfidenceLevel(str, Enum):
    """Confidence tier of a hub match"""
    HIGH = "high"        # score >= 0.8
    MEDIUM = "medium"    # score >= 0.5
    NONE = "none"        # below the match threshold


class EnrichmentStatus(str, Enum):
    ENRICHED = "enriched"
    NO_MATCH = "no_match"


# --- Coercion helpers used by validators ---
def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def coerce_epoch(value: Any) -> Optional[int]:
    """Accept ints, floats and numeric strings; anything else is treated as absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return int(float(text))
        except ValueError:
            return None
    return None


def coerce_string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value if item is not None and str(item).strip()]
    return [str(value)]


def coerce_optional_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
        if value is None:
            return None
    text = str(value)
    return text if text.strip() else None


def unwrap_custom_properties(value: Any) -> Dict[str, str]:
    """Read custom properties in either plain or `{metadataType, string_value}` form."""
    if not isinstance(value, dict):
        return {}
    properties = {}
    for key, item in value.items():
        if isinstance(item, dict):
            properties[str(key)] = str(item.get("string_value") or "")
        elif item is None:
            properties[str(key)] = ""
        else:
            properties[str(key)] = str(item)
    return properties


def wrap_custom_properties(properties: Dict[str, str]) -> Dict[str, Dict[str, str]]:
    return {
        key: MetadataValue(string_value=value).model_dump(by_alias=True)
        for key, value in properties.items()
    }


# --- Provenance ---
class SourceTaggedValue(BaseModel):
    """A field value together with the source that produced it"""
    value: Any = None
    source: DataSource = DataSource.NULL

    @classmethod
    def of(cls, value: Any, source: DataSource) -> "SourceTaggedValue":
        """Tag a value, collapsing None and empty values to the null sentinel."""
        if _is_empty(value):
            return cls()
        return cls(value=value, source=source)

    @property
    def is_absent(self) -> bool:
        return self.source == DataSource.NULL or _is_empty(self.value)

    def __str__(self):
        return f"{self.value} (source: {self.source.value})"


class MetadataValue(BaseModel):
    """Serialized form of one custom property"""
    model_config = ConfigDict(populate_by_name=True)

    metadata_type: str = Field("MetadataStringValue", alias="metadataType")
    string_value: str = ""


# --- Extracted metadata ---
class Artifact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uri: str
    create_time_since_epoch: Optional[int] = Field(None, alias="createTimeSinceEpoch")
    last_update_time_since_epoch: Optional[int] = Field(None, alias="lastUpdateTimeSinceEpoch")
    custom_properties: Dict[str, str] = Field(default_factory=dict, alias="customProperties")

    @field_validator("create_time_since_epoch", "last_update_time_since_epoch", mode="before")
    @classmethod
    def _coerce_timestamps(cls, value):
        return coerce_epoch(value)

    @field_validator("custom_properties", mode="before")
    @classmethod
    def _unwrap_properties(cls, value):
        return unwrap_custom_properties(value)

    @field_serializer("custom_properties")
    def _wrap_properties(self, properties: Dict[str, str]):
        return wrap_custom_properties(properties)

    def apply_timestamp_defaults(self) -> None:
        if self.last_update_time_since_epoch is None and self.create_time_since_epoch is not None:
            self.last_update_time_since_epoch = self.create_time_since_epoch


class ExtractedMetadata(BaseModel):
    """Per-model metadata record persisted as metadata.yaml"""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    provider: Optional[str] = None
    description: Optional[str] = None
    readme: Optional[str] = None
    language: List[str] = Field(default_factory=list)
    license: Optional[str] = None
    license_link: Optional[str] = Field(None, alias="licenseLink")
    library_name: Optional[str] = Field(None, alias="libraryName")
    tags: List[str] = Field(default_factory=list)
    tasks: List[str] = Field(default_factory=list)
    validated_on: List[str] = Field(default_factory=list, alias="validatedOn")
    create_time_since_epoch: Optional[int] = Field(None, alias="createTimeSinceEpoch")
    last_update_time_since_epoch: Optional[int] = Field(None, alias="lastUpdateTimeSinceEpoch")
    artifacts: List[Artifact] = Field(default_factory=list)

    @field_validator("language", "tags", "tasks", "validated_on", mode="before")
    @classmethod
    def _coerce_lists(cls, value):
        return coerce_string_list(value)

    @field_validator("create_time_since_epoch", "last_update_time_since_epoch", mode="before")
    @classmethod
    def _coerce_timestamps(cls, value):
        return coerce_epoch(value)

    def apply_timestamp_defaults(self) -> None:
        """Last update falls back to creation time, at model and artifact level."""
        if self.last_update_time_since_epoch is None and self.create_time_since_epoch is not None:
            self.last_update_time_since_epoch = self.create_time_since_epoch
        for artifact in self.artifacts:
            artifact.apply_timestamp_defaults()

    def to_yaml_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class FrontMatter(BaseModel):
    """YAML header of a modelcard or a hub README"""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    provider: Optional[str] = None
    description: Optional[str] = None
    language: List[str] = Field(default_factory=list)
    base_model: List[str] = Field(default_factory=list)
    pipeline_tag: Optional[str] = None
    license: Optional[str] = None
    license_name: Optional[str] = None
    license_link: Optional[str] = None
    library_name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    tasks: List[str] = Field(default_factory=list)
    validated_on: List[str] = Field(default_factory=list)

    @field_validator("language", "base_model", "tags", "tasks", "validated_on", mode="before")
    @classmethod
    def _coerce_lists(cls, value):
        return coerce_string_list(value)

    @field_validator("name", "provider", "description", "pipeline_tag", "license",
                     "license_name", "license_link", "library_name", mode="before")
    @classmethod
    def _coerce_scalars(cls, value):
        return coerce_optional_string(value)

    @property
    def effective_license(self) -> Optional[str]:
        """`license_name` is the human-facing id when the hub license is "other"."""
        return self.license_name or self.license

    @property
    def effective_tasks(self) -> List[str]:
        if self.tasks:
            return self.tasks
        return [self.pipeline_tag] if self.pipeline_tag else []


class ModelcardPresence(BaseModel):
    """Which metadata fields a modelcard appears to mention"""
    model_config = ConfigDict(populate_by_name=True)

    name: bool = False
    provider: bool = False
    description: bool = False
    readme: bool = False
    language: bool = False
    license: bool = False
    license_link: bool = Field(False, alias="licenseLink")
    maturity: bool = False
    library_name: bool = Field(False, alias="libraryName")
    tasks: bool = False
    create_time_since_epoch: bool = Field(False, alias="createTimeSinceEpoch")
    last_update_time_since_epoch: bool = Field(False, alias="lastUpdateTimeSinceEpoch")
    artifacts: bool = False


class ModelcardManifest(BaseModel):
    present: bool = False
    metadata: Optional[ModelcardPresence] = None


class ManifestEntry(BaseModel):
    ref: str
    modelcard: ModelcardManifest = Field(default_factory=ModelcardManifest)


class ModelcardFetch(BaseModel):
    """Result of looking for the modelcard inside a registry artifact"""
    content: Optional[bytes] = None
    found: bool = False
    ambiguous: bool = False


class ExtractionResult(BaseModel):
    ref: str
    modelcard_found: bool = False
    ambiguous: bool = False
    hub_fallback: bool = False
    presence: Optional[ModelcardPresence] = None
    metadata_path: Optional[str] = None
    error: Optional[str] = None


# --- Indexes ---
class ModelEntry(BaseModel):
    """One artifact reference to process, as listed in models-index.yaml"""
    type: str = "oci"
    uri: str
    labels: List[str] = Field(default_factory=list)


class ModelsIndex(BaseModel):
    models: List[ModelEntry] = Field(default_factory=list)


class HubIndexEntry(BaseModel):
    """Match candidate from a hub collection"""
    name: str
    url: str = ""
    readme_path: str = ""


class VersionIndex(BaseModel):
    version: str = "v1.0"
    models: List[HubIndexEntry] = Field(default_factory=list)


# --- Hub ---
class HubModelDetails(BaseModel):
    id: str
    author: Optional[str] = None
    sha: Optional[str] = None
    downloads: int = 0
    likes: int = 0
    tags: List[str] = Field(default_factory=list)
    license: Optional[str] = None
    pipeline_tag: Optional[str] = None
    library_name: Optional[str] = None
    created_at: Optional[str] = None
    last_modified: Optional[str] = None


class MatchResult(BaseModel):
    candidate: Optional[HubIndexEntry] = None
    score: float = 0.0
    confidence: ConfidenceLevel = ConfidenceLevel.NONE

    @property
    def matched(self) -> bool:
        return self.candidate is not None and self.confidence != ConfidenceLevel.NONE


# --- Enrichment ---
ENRICHED_FIELDS = (
    "name", "provider", "description", "readme", "license", "license_link", "library_name",
    "language", "tags", "tasks", "validated_on", "create_time", "last_modified",
    "downloads", "likes",
)


def _tagged() -> SourceTaggedValue:
    return SourceTaggedValue()


class EnrichedModelMetadata(BaseModel):
    """Working set of source-tagged fields for one registry reference"""
    registry_model: str
    huggingface_model: Optional[str] = None
    huggingface_url: Optional[str] = None
    match_confidence: ConfidenceLevel = ConfidenceLevel.NONE
    match_score: float = 0.0
    status: EnrichmentStatus = EnrichmentStatus.NO_MATCH

    name: SourceTaggedValue = Field(default_factory=_tagged)
    provider: SourceTaggedValue = Field(default_factory=_tagged)
    description: SourceTaggedValue = Field(default_factory=_tagged)
    readme: SourceTaggedValue = Field(default_factory=_tagged)
    license: SourceTaggedValue = Field(default_factory=_tagged)
    license_link: SourceTaggedValue = Field(default_factory=_tagged)
    library_name: SourceTaggedValue = Field(default_factory=_tagged)
    language: SourceTaggedValue = Field(default_factory=_tagged)
    tags: SourceTaggedValue = Field(default_factory=_tagged)
    tasks: SourceTaggedValue = Field(default_factory=_tagged)
    validated_on: SourceTaggedValue = Field(default_factory=_tagged)
    create_time: SourceTaggedValue = Field(default_factory=_tagged)
    last_modified: SourceTaggedValue = Field(default_factory=_tagged)
    downloads: SourceTaggedValue = Field(default_factory=_tagged)
    likes: SourceTaggedValue = Field(default_factory=_tagged)

    def data_sources(self) -> Dict[str, str]:
        return {field: getattr(self, field).source.value for field in ENRICHED_FIELDS}


class EnrichmentRecord(BaseModel):
    """Provenance record persisted next to metadata.yaml as enrichment.yaml"""
    huggingface_model: Optional[str] = None
    huggingface_url: Optional[str] = None
    match_confidence: str = ConfidenceLevel.NONE.value
    match_score: float = 0.0
    enrichment_status: str = EnrichmentStatus.NO_MATCH.value
    data_sources: Dict[str, str] = Field(default_factory=dict)


# --- Catalog ---
def _epoch_string(value: Any) -> Optional[str]:
    epoch = coerce_epoch(value)
    return str(epoch) if epoch is not None else None


class CatalogArtifact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uri: str
    create_time_since_epoch: Optional[str] = Field(None, alias="createTimeSinceEpoch")
    last_update_time_since_epoch: Optional[str] = Field(None, alias="lastUpdateTimeSinceEpoch")
    custom_properties: Dict[str, str] = Field(default_factory=dict, alias="customProperties")

    @field_validator("create_time_since_epoch", "last_update_time_since_epoch", mode="before")
    @classmethod
    def _stringify_timestamps(cls, value):
        return _epoch_string(value)

    @field_validator("custom_properties", mode="before")
    @classmethod
    def _unwrap_properties(cls, value):
        return unwrap_custom_properties(value)

    @field_serializer("custom_properties")
    def _wrap_properties(self, properties: Dict[str, str]):
        return wrap_custom_properties(properties)


class CatalogMetadata(BaseModel):
    """One consolidated model as written to the catalog"""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    provider: Optional[str] = None
    description: Optional[str] = None
    readme: Optional[str] = None
    language: List[str] = Field(default_factory=list)
    license: Optional[str] = None
    license_link: Optional[str] = Field(None, alias="licenseLink")
    library_name: Optional[str] = Field(None, alias="libraryName")
    tasks: List[str] = Field(default_factory=list)
    create_time_since_epoch: Optional[str] = Field(None, alias="createTimeSinceEpoch")
    last_update_time_since_epoch: Optional[str] = Field(None, alias="lastUpdateTimeSinceEpoch")
    custom_properties: Dict[str, str] = Field(default_factory=dict, alias="customProperties")
    artifacts: List[CatalogArtifact] = Field(default_factory=list)
    logo: Optional[str] = None

    @field_validator("language", "tasks", mode="before")
    @classmethod
    def _coerce_lists(cls, value):
        return coerce_string_list(value)

    @field_validator("create_time_since_epoch", "last_update_time_since_epoch", mode="before")
    @classmethod
    def _stringify_timestamps(cls, value):
        return _epoch_string(value)

    @field_validator("custom_properties", mode="before")
    @classmethod
    def _unwrap_properties(cls, value):
        return unwrap_custom_properties(value)

    @field_serializer("custom_properties")
    def _wrap_properties(self, properties: Dict[str, str]):
        return wrap_custom_properties(properties)


class ModelsCatalog(BaseModel):
    source: str
    models: List[CatalogMetadata] = Field(default_factory=list)

    def to_yaml_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
