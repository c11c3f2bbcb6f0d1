"""
Bounded-concurrency extraction over a list of registry references.

For each reference the pipeline pulls the modelcard layer out of the image,
parses it into a metadata record, attaches the registry artifacts and writes
both files into the reference's own output directory. References whose image
carries no usable modelcard get a skeleton record, plus a one-time attempt to
borrow the matching hub README as a substitute modelcard.
"""
import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable, Dict, List, Optional, TypeVar, Union

from ..clients.hub import HubClient
from ..clients.registry import RegistryClient
from ..utils.text_utils import strip_yaml_frontmatter
from . import storage
from .matcher import find_best_match
from .parser import detect_modelcard_fields, parse_modelcard
from .resolver import merge_unique
from .schemas import (
    ExtractedMetadata,
    ExtractionResult,
    HubIndexEntry,
    ManifestEntry,
    ModelcardManifest,
    ModelEntry,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 5

T = TypeVar("T")
R = TypeVar("R")


def run_bounded(items: List[T], worker: Callable[[T], R], max_concurrent: int) -> List[R]:
    """
    Run `worker` over `items` with at most `max_concurrent` in flight.

    Results are gathered only after every worker has finished, in completion
    order. A worker that raises is logged and contributes no result.
    """
    if max_concurrent < 1:
        raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")

    semaphore = threading.Semaphore(max_concurrent)
    results: "queue.Queue[R]" = queue.Queue(maxsize=len(items))

    def guarded(item: T) -> None:
        semaphore.acquire()
        try:
            results.put(worker(item))
        finally:
            semaphore.release()

    with ThreadPoolExecutor(max_workers=max_concurrent) as executor:
        futures = [executor.submit(guarded, item) for item in items]
        wait(futures)

    for future in futures:
        error = future.exception()
        if error is not None:
            logger.error(f"Worker failed: {error}")

    collected = []
    while not results.empty():
        collected.append(results.get_nowait())
    return collected


def skeleton_metadata() -> ExtractedMetadata:
    """Record for a reference without a modelcard: list fields empty, never missing."""
    return ExtractedMetadata(language=[], tags=[], tasks=[], validated_on=[], artifacts=[])


def unique_entries(entries: List[ModelEntry]) -> List[ModelEntry]:
    """One entry per URI; labels of repeated URIs are combined onto the first."""
    by_uri: Dict[str, ModelEntry] = {}
    for entry in entries:
        if entry.type != "oci":
            logger.info(f"Skipping {entry.uri}: unsupported type '{entry.type}'")
            continue
        if entry.uri in by_uri:
            first = by_uri[entry.uri]
            first.labels = merge_unique(first.labels, entry.labels)
            continue
        by_uri[entry.uri] = entry.model_copy(deep=True)
    return list(by_uri.values())


class ExtractionPipeline:
    """Extract modelcards and artifacts for every reference in a models index."""

    def __init__(self, registry: RegistryClient, output_dir: Union[str, Path],
                 hub: Optional[HubClient] = None, candidates: Optional[List[HubIndexEntry]] = None,
                 max_concurrent: int = DEFAULT_MAX_CONCURRENT):
        self.registry = registry
        self.output_dir = Path(output_dir)
        self.hub = hub
        self.candidates = candidates or []
        self.max_concurrent = max_concurrent

    def run(self, entries: List[ModelEntry]) -> List[ExtractionResult]:
        """
        Process every entry. An unusable output root raises OutputDirectoryError
        before any worker starts; per-reference failures end up in the results.
        """
        storage.ensure_output_dir(self.output_dir)
        work = unique_entries(entries)
        logger.info(f"Processing {len(work)} references with max concurrency {self.max_concurrent}")

        results = run_bounded(work, self._process_entry, self.max_concurrent)

        failed = [result for result in results if result.error]
        logger.info(f"Extraction finished: {len(results) - len(failed)} succeeded, {len(failed)} failed")
        return results

    def _process_entry(self, entry: ModelEntry) -> ExtractionResult:
        try:
            return self.process(entry.uri, entry.labels)
        except Exception as e:
            logger.error(f"Error processing {entry.uri}: {e}")
            return ExtractionResult(ref=entry.uri, error=str(e))

    def process(self, ref: str, labels: Optional[List[str]] = None) -> ExtractionResult:
        logger.info(f"Processing {ref}")
        result = ExtractionResult(ref=ref)

        fetch = self.registry.fetch_modelcard(ref)
        if fetch.found and fetch.content is not None:
            text = fetch.content.decode("utf-8", errors="replace")
            storage.write_modelcard(self.output_dir, ref, text)
            metadata = parse_modelcard(text)
            result.modelcard_found = True
            result.presence = detect_modelcard_fields(text)
        else:
            result.ambiguous = fetch.ambiguous
            metadata = skeleton_metadata()
            result.hub_fallback = self.fetch_fallback_readme(ref)

        metadata.artifacts = self.registry.fetch_artifacts(ref)
        metadata.tags = merge_unique(metadata.tags, labels or [])
        metadata.apply_timestamp_defaults()

        if storage.save_metadata(self.output_dir, ref, metadata):
            result.metadata_path = str(storage.metadata_path(self.output_dir, ref))
        else:
            result.error = "failed to write metadata"
        return result

    def fetch_fallback_readme(self, ref: str) -> bool:
        """Store the best-matching hub README, front-matter removed, as the modelcard."""
        if self.hub is None or not self.candidates:
            return False

        match = find_best_match(ref, self.candidates)
        if not match.matched:
            logger.info(f"No hub model matches {ref} (best score {match.score:.2f})")
            return False

        readme = self.hub.fetch_readme(match.candidate.name)
        if not readme:
            return False

        logger.info(f"Using README from {match.candidate.name} as modelcard for {ref}")
        return storage.write_modelcard(self.output_dir, ref, strip_yaml_frontmatter(readme))


def manifest_entries(results: List[ExtractionResult]) -> List[ManifestEntry]:
    """Per-reference modelcard presence, sorted by reference for stable output."""
    entries = []
    for result in sorted(results, key=lambda r: r.ref):
        entries.append(ManifestEntry(
            ref=result.ref,
            modelcard=ModelcardManifest(present=result.modelcard_found, metadata=result.presence),
        ))
    return entries
