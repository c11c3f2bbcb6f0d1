"""
Field merge rules for source-tagged metadata.

Every candidate value arrives wrapped in a `SourceTaggedValue`. A present
candidate replaces the current value when its source has at least the same
authority; an absent candidate never changes anything. Unreachable APIs and
empty API answers therefore go through the same code path.

List fields (language, tags, validated_on) are unioned, except that structured
front-matter replaces lower-authority lists outright. License and name have
their own rules, documented on the functions below.
"""
import logging
from typing import Callable, Dict, List, Optional

from ..utils.license_utils import get_license_url, is_placeholder_license
from ..utils.text_utils import deduplicate, generate_readable_description
from .schemas import (
    COMPLETE_SOURCES,
    ConfidenceLevel,
    DataSource,
    EnrichedModelMetadata,
    SourceTaggedValue,
)

logger = logging.getLogger(__name__)

LIST_FIELDS = frozenset({"language", "tags", "validated_on"})

# A medium-confidence hub match may rename a model whose current name reads like
# a document heading rather than a model id. Tunable; not a hard contract.
DOCUMENT_TITLE_MARKERS = ("model card", "readme", "documentation")
DOCUMENT_TITLE_SUFFIXES = (" card",)


def resolve_scalar(current: SourceTaggedValue, candidate: SourceTaggedValue) -> SourceTaggedValue:
    if candidate.is_absent:
        return current
    if current.is_absent:
        return candidate
    if candidate.source.authority >= current.source.authority:
        return candidate
    return current


def resolve_list(current: SourceTaggedValue, candidate: SourceTaggedValue) -> SourceTaggedValue:
    if candidate.is_absent:
        return current

    incoming = deduplicate(candidate.value)
    if current.is_absent:
        return SourceTaggedValue.of(incoming, candidate.source)

    if candidate.source in COMPLETE_SOURCES and candidate.source.authority >= current.source.authority:
        return SourceTaggedValue.of(incoming, candidate.source)

    merged = deduplicate(list(current.value) + incoming)
    source = candidate.source if candidate.source.outranks(current.source) else current.source
    return SourceTaggedValue(value=merged, source=source)


def resolve_license(current: SourceTaggedValue, candidate: SourceTaggedValue) -> SourceTaggedValue:
    """
    Scalar precedence, except that the hub placeholder "other" counts as absent.

    "other" only fills an empty slot; a concrete license replaces "other" no
    matter which source supplied either value.
    """
    if candidate.is_absent:
        return current
    if is_placeholder_license(candidate.value):
        return candidate if current.is_absent else current
    if not current.is_absent and is_placeholder_license(current.value):
        return candidate
    return resolve_scalar(current, candidate)


def looks_like_document_title(name: Optional[str]) -> bool:
    if not name:
        return False
    lowered = name.strip().lower()
    return any(marker in lowered for marker in DOCUMENT_TITLE_MARKERS) or lowered.endswith(DOCUMENT_TITLE_SUFFIXES)


def resolve_hub_name(current: SourceTaggedValue, candidate: SourceTaggedValue,
                     confidence: ConfidenceLevel) -> SourceTaggedValue:
    """
    Decide whether the matched hub id renames the model.

    Unlike every other field this is decided by match confidence, not source
    authority: a high-confidence match always renames, a medium one only when
    the current name looks like a document title.
    """
    if candidate.is_absent:
        return current
    if current.is_absent:
        return candidate
    if confidence == ConfidenceLevel.HIGH:
        return candidate
    if confidence == ConfidenceLevel.MEDIUM and looks_like_document_title(current.value):
        return candidate
    return current


RESOLVERS: Dict[str, Callable[[SourceTaggedValue, SourceTaggedValue], SourceTaggedValue]] = {
    "license": resolve_license,
}


def merge_field(enriched: EnrichedModelMetadata, field: str, candidate: SourceTaggedValue) -> bool:
    """Offer a candidate for one field. Returns True when the candidate won."""
    current = getattr(enriched, field)
    if field in LIST_FIELDS:
        resolved = resolve_list(current, candidate)
    else:
        resolved = RESOLVERS.get(field, resolve_scalar)(current, candidate)

    if resolved is current:
        return False
    setattr(enriched, field, resolved)
    logger.debug(f"{enriched.registry_model}: {field} <- {resolved}")
    return True


def offer(enriched: EnrichedModelMetadata, field: str, value, source: DataSource) -> bool:
    return merge_field(enriched, field, SourceTaggedValue.of(value, source))


def derive_license_link(enriched: EnrichedModelMetadata) -> None:
    """Fill the license link from the license table when nothing else supplied one."""
    if enriched.license.is_absent:
        return
    if not enriched.license_link.is_absent and enriched.license_link.source != DataSource.GENERATED:
        return

    url = get_license_url(enriched.license.value)
    if url:
        enriched.license_link = SourceTaggedValue(value=url, source=DataSource.GENERATED)
    elif not enriched.license_link.is_absent:
        # generated for a license that has since been replaced
        enriched.license_link = SourceTaggedValue()


def default_timestamps(enriched: EnrichedModelMetadata) -> None:
    """Last update falls back to the creation time. Creation time is never invented."""
    if enriched.last_modified.is_absent and not enriched.create_time.is_absent:
        enriched.last_modified = enriched.create_time.model_copy()


def ensure_description(enriched: EnrichedModelMetadata) -> None:
    if not enriched.description.is_absent:
        return
    basis = enriched.huggingface_model or enriched.name.value or enriched.registry_model
    offer(enriched, "description", generate_readable_description(basis), DataSource.GENERATED)


def merge_unique(*lists: List[str]) -> List[str]:
    combined: List[str] = []
    for values in lists:
        combined.extend(values or [])
    return deduplicate(combined)
