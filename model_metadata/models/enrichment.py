"""
Hub enrichment of extracted metadata records.

Each record is seeded from what extraction already wrote, matched against the
validated hub models, and then offered values from the hub API, the hub README
front-matter and README text in turn. Every offer goes through the field merge
rules in `resolver`, so the order of the steps below never decides a winner on
its own. The merged record replaces metadata.yaml and the winning source of
every field is written to enrichment.yaml.
"""
import logging
from pathlib import Path
from typing import List, Optional, Union

from ..clients.hub import HubClient
from ..clients.registry import RegistryClient
from ..utils.license_utils import get_license_url
from ..utils.tag_utils import filter_tags_for_clean_tag_list, infer_tasks_from_readme, parse_tags_for_structured_data
from ..utils.text_utils import deduplicate, generate_readable_description, parse_date_to_epoch, parse_time_to_epoch
from . import storage
from .matcher import find_best_match
from .parser import extract_front_matter, extract_provider_from_readme, extract_release_date_from_readme
from .pipeline import DEFAULT_MAX_CONCURRENT, run_bounded, unique_entries
from .resolver import (
    default_timestamps,
    derive_license_link,
    ensure_description,
    merge_unique,
    offer,
    resolve_hub_name,
)
from .schemas import (
    DataSource,
    EnrichedModelMetadata,
    EnrichmentRecord,
    EnrichmentStatus,
    ExtractedMetadata,
    FrontMatter,
    HubIndexEntry,
    HubModelDetails,
    ModelEntry,
    SourceTaggedValue,
)

logger = logging.getLogger(__name__)


def _seed_source(front_matter: Optional[FrontMatter], matches: bool) -> DataSource:
    return DataSource.MODELCARD_YAML if front_matter is not None and matches else DataSource.MODELCARD_REGEX


def seed_from_extraction(enriched: EnrichedModelMetadata, existing: ExtractedMetadata,
                         modelcard: Optional[str], labels: Optional[List[str]] = None) -> None:
    """
    Load the extracted record into the enrichment state.

    A value counts as modelcard front-matter when it equals what the modelcard's
    YAML block says; anything else was mined from the body text. License links
    and descriptions that extraction derived itself are marked as generated so
    any real source can replace them.
    """
    fm = extract_front_matter(modelcard) if modelcard else None
    own_tags = [tag for tag in existing.tags if tag not in (labels or [])]

    seeds = [
        ("name", existing.name, fm is not None and fm.name == existing.name),
        ("provider", existing.provider, fm is not None and fm.provider == existing.provider),
        ("description", existing.description, fm is not None and fm.description == existing.description),
        ("license", existing.license, fm is not None and existing.license in (fm.license, fm.license_name)),
        ("license_link", existing.license_link, fm is not None and fm.license_link == existing.license_link),
        ("library_name", existing.library_name, fm is not None and fm.library_name == existing.library_name),
        ("language", existing.language, fm is not None and fm.language == existing.language),
        ("tags", own_tags, fm is not None and fm.tags == own_tags),
        ("tasks", existing.tasks, fm is not None and fm.effective_tasks == existing.tasks),
        ("validated_on", existing.validated_on, fm is not None and fm.validated_on == existing.validated_on),
        ("readme", existing.readme, False),
        ("create_time", existing.create_time_since_epoch, False),
        ("last_modified", existing.last_update_time_since_epoch, False),
    ]
    for field, value, from_front_matter in seeds:
        offer(enriched, field, value, _seed_source(fm, from_front_matter))

    explicit_link = fm is not None and fm.license_link
    if not explicit_link and existing.license_link and existing.license_link == get_license_url(existing.license):
        enriched.license_link = SourceTaggedValue(value=existing.license_link, source=DataSource.GENERATED)

    generated = existing.name and existing.description == generate_readable_description(existing.name)
    if generated and enriched.description.source != DataSource.MODELCARD_YAML:
        enriched.description = SourceTaggedValue(value=existing.description, source=DataSource.GENERATED)


def apply_hub_details(enriched: EnrichedModelMetadata, details: Optional[HubModelDetails]) -> None:
    """Offer hub API fields. Unavailable details offer nothing."""
    details = details or HubModelDetails(id="")

    candidate = SourceTaggedValue.of(details.id, DataSource.HUGGINGFACE_API)
    enriched.name = resolve_hub_name(enriched.name, candidate, enriched.match_confidence)

    offer(enriched, "license", details.license, DataSource.HUGGINGFACE_API)
    offer(enriched, "library_name", details.library_name, DataSource.HUGGINGFACE_API)
    offer(enriched, "tasks", [details.pipeline_tag] if details.pipeline_tag else [], DataSource.HUGGINGFACE_API)
    offer(enriched, "create_time", parse_time_to_epoch(details.created_at), DataSource.HUGGINGFACE_API)
    offer(enriched, "last_modified", parse_time_to_epoch(details.last_modified), DataSource.HUGGINGFACE_API)
    if details.downloads > 0:
        offer(enriched, "downloads", details.downloads, DataSource.HUGGINGFACE_API)
    if details.likes > 0:
        offer(enriched, "likes", details.likes, DataSource.HUGGINGFACE_API)

    languages, license_id, tasks = parse_tags_for_structured_data(details.tags)
    offer(enriched, "language", languages, DataSource.HUGGINGFACE_TAGS)
    offer(enriched, "license", license_id, DataSource.HUGGINGFACE_TAGS)
    offer(enriched, "tasks", tasks, DataSource.HUGGINGFACE_TAGS)


def apply_hub_readme(enriched: EnrichedModelMetadata, readme: Optional[str], hub_tags: List[str]) -> None:
    """Offer README front-matter, then README text, then cleaned hub tags."""
    fm = extract_front_matter(readme) if readme else None
    if fm is not None:
        for field, value in (
            ("name", fm.name),
            ("provider", fm.provider),
            ("description", fm.description),
            ("language", fm.language),
            ("tags", fm.tags),
            ("tasks", fm.effective_tasks),
            ("validated_on", fm.validated_on),
            ("library_name", fm.library_name),
            ("license", fm.effective_license),
            ("license_link", fm.license_link),
        ):
            offer(enriched, field, value, DataSource.HUGGINGFACE_YAML)

    offer(enriched, "provider", extract_provider_from_readme(readme or ""), DataSource.HUGGINGFACE_REGEX)

    release = extract_release_date_from_readme(readme or "")
    if release:
        epoch = parse_date_to_epoch(release)
        offer(enriched, "create_time", epoch, DataSource.HUGGINGFACE_REGEX)
        offer(enriched, "last_modified", epoch, DataSource.HUGGINGFACE_REGEX)

    # README tags are authoritative when present; otherwise fall back to the API tag list
    if fm is None or not fm.tags:
        offer(enriched, "tags", filter_tags_for_clean_tag_list(hub_tags), DataSource.HUGGINGFACE_TAGS)


def finalize(enriched: EnrichedModelMetadata, modelcard: Optional[str]) -> None:
    """Inferred and generated values fill whatever no real source supplied."""
    if modelcard:
        offer(enriched, "readme", modelcard, DataSource.MODELCARD_REGEX)

    if enriched.tasks.is_absent:
        offer(enriched, "tasks", infer_tasks_from_readme(enriched.readme.value or ""), DataSource.MODELCARD_INFERRED)

    if not enriched.validated_on.is_absent:
        cleaned = deduplicate(value.strip() for value in enriched.validated_on.value)
        enriched.validated_on = SourceTaggedValue.of(cleaned, enriched.validated_on.source)

    derive_license_link(enriched)
    default_timestamps(enriched)
    ensure_description(enriched)


def to_extracted_metadata(enriched: EnrichedModelMetadata, existing: Optional[ExtractedMetadata],
                          labels: Optional[List[str]] = None) -> ExtractedMetadata:
    metadata = ExtractedMetadata(
        name=enriched.name.value,
        provider=enriched.provider.value,
        description=enriched.description.value,
        readme=enriched.readme.value,
        language=enriched.language.value or [],
        license=enriched.license.value,
        license_link=enriched.license_link.value,
        library_name=enriched.library_name.value,
        tags=merge_unique(enriched.tags.value or [], labels or []),
        tasks=enriched.tasks.value or [],
        validated_on=enriched.validated_on.value or [],
        create_time_since_epoch=enriched.create_time.value,
        last_update_time_since_epoch=enriched.last_modified.value,
        artifacts=list(existing.artifacts) if existing else [],
    )
    metadata.apply_timestamp_defaults()
    return metadata


def to_enrichment_record(enriched: EnrichedModelMetadata) -> EnrichmentRecord:
    return EnrichmentRecord(
        huggingface_model=enriched.huggingface_model,
        huggingface_url=enriched.huggingface_url,
        match_confidence=enriched.match_confidence.value,
        match_score=round(enriched.match_score, 4),
        enrichment_status=enriched.status.value,
        data_sources=enriched.data_sources(),
    )


class EnrichmentOrchestrator:
    """Merge hub metadata into the records written by extraction."""

    def __init__(self, hub: HubClient, output_dir: Union[str, Path],
                 candidates: List[HubIndexEntry], max_concurrent: int = DEFAULT_MAX_CONCURRENT):
        self.hub = hub
        self.output_dir = Path(output_dir)
        self.candidates = candidates
        self.max_concurrent = max_concurrent

    def enrich(self, ref: str, labels: Optional[List[str]] = None) -> EnrichedModelMetadata:
        existing = storage.load_metadata(self.output_dir, ref)
        modelcard = storage.read_modelcard(self.output_dir, ref)

        enriched = EnrichedModelMetadata(registry_model=ref)
        if existing is not None:
            seed_from_extraction(enriched, existing, modelcard, labels)

        match = find_best_match(ref, self.candidates)
        enriched.match_score = match.score
        enriched.match_confidence = match.confidence
        if match.matched:
            hub_id = match.candidate.name
            enriched.status = EnrichmentStatus.ENRICHED
            enriched.huggingface_model = hub_id
            enriched.huggingface_url = match.candidate.url or self.hub.model_url(hub_id)
            logger.info(f"Matched {ref} to {hub_id} (score {match.score:.2f}, {match.confidence.value})")

            details = self.hub.fetch_details(hub_id)
            apply_hub_details(enriched, details)
            apply_hub_readme(enriched, self.hub.fetch_readme(hub_id), details.tags if details else [])
        else:
            logger.info(f"No hub match for {ref} (best score {match.score:.2f})")

        finalize(enriched, modelcard)

        storage.save_metadata(self.output_dir, ref, to_extracted_metadata(enriched, existing, labels))
        storage.save_provenance(self.output_dir, ref, to_enrichment_record(enriched))
        return enriched

    def _enrich_entry(self, entry: ModelEntry) -> Optional[EnrichedModelMetadata]:
        try:
            return self.enrich(entry.uri, entry.labels)
        except Exception as e:
            logger.error(f"Error enriching {entry.uri}: {e}")
            return None

    def enrich_all(self, entries: List[ModelEntry]) -> List[EnrichedModelMetadata]:
        results = run_bounded(unique_entries(entries), self._enrich_entry, self.max_concurrent)
        enriched = [result for result in results if result is not None]
        matched = sum(1 for result in enriched if result.status == EnrichmentStatus.ENRICHED)
        logger.info(f"Enrichment finished: {matched} of {len(enriched)} models matched a hub model")
        return enriched

    def refresh_artifacts(self, ref: str, registry: RegistryClient) -> bool:
        """
        Re-read the registry artifacts of an enriched record.

        Timestamps the registry no longer reports are kept from the artifact
        previously stored at the same position.
        """
        metadata = storage.load_metadata(self.output_dir, ref)
        if metadata is None:
            return False

        fresh = registry.fetch_artifacts(ref)
        for index, artifact in enumerate(fresh):
            if index >= len(metadata.artifacts):
                break
            previous = metadata.artifacts[index]
            if artifact.create_time_since_epoch is None:
                artifact.create_time_since_epoch = previous.create_time_since_epoch
            if artifact.last_update_time_since_epoch is None:
                artifact.last_update_time_since_epoch = previous.last_update_time_since_epoch

        metadata.artifacts = fresh
        metadata.apply_timestamp_defaults()
        return storage.save_metadata(self.output_dir, ref, metadata)

    def refresh_all(self, entries: List[ModelEntry], registry: RegistryClient) -> int:
        """Refresh artifacts for every entry; returns how many records were rewritten."""
        def refresh_entry(entry: ModelEntry) -> bool:
            try:
                return self.refresh_artifacts(entry.uri, registry)
            except Exception as e:
                logger.error(f"Error refreshing artifacts for {entry.uri}: {e}")
                return False

        results = run_bounded(unique_entries(entries), refresh_entry, self.max_concurrent)
        return sum(1 for refreshed in results if refreshed)
