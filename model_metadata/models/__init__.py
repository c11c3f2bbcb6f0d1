from .schemas import (
    DataSource,
    ConfidenceLevel,
    EnrichmentStatus,
    SourceTaggedValue,
    ExtractedMetadata,
    EnrichedModelMetadata,
    CatalogMetadata,
    ModelsCatalog,
)
from .matcher import calculate_similarity, find_best_match, normalize_model_name
from .resolver import merge_field, offer
from .parser import parse_modelcard, detect_modelcard_fields
