import logging
import os
from pathlib import Path
from typing import List, Optional

from ..clients.hub import HubClient
from ..clients.registry import RegistryClient
from ..config import (
    DATA_DIR,
    DEFAULT_STATIC_CATALOG,
    HF_ORGANIZATION,
    HF_TOKEN,
    HTTP_TIMEOUT,
    REGISTRY_PASSWORD,
    REGISTRY_USERNAME,
)
from ..models import storage
from ..models.catalog import build_catalog, load_static_catalogs, static_catalog_paths, write_catalog
from ..models.collections import (
    latest_version_index,
    load_hub_candidates,
    models_index_from_version_index,
    process_collections,
)
from ..models.enrichment import EnrichmentOrchestrator
from ..models.pipeline import ExtractionPipeline, manifest_entries, unique_entries
from ..models.report import generate_metadata_report
from ..models.schemas import ModelEntry
from ..models.storage import OutputDirectoryError

logger = logging.getLogger(__name__)


class CollectorController:
    def __init__(self, registry: Optional[RegistryClient] = None, hub: Optional[HubClient] = None,
                 data_dir: str = DATA_DIR):
        self.registry = registry or RegistryClient(
            timeout=HTTP_TIMEOUT, username=REGISTRY_USERNAME, password=REGISTRY_PASSWORD
        )
        self.hub = hub or HubClient(token=HF_TOKEN, timeout=HTTP_TIMEOUT, organization=HF_ORGANIZATION)
        self.data_dir = data_dir

    def load_entries(self, models_index_path: str) -> List[ModelEntry]:
        """The models index, or every model of the latest hub collection when there is none."""
        if os.path.exists(models_index_path):
            logger.info(f"Loading models from: {models_index_path}")
            return storage.load_models_index(models_index_path)

        index = latest_version_index(self.data_dir)
        if index is None:
            logger.warning(f"No models index at {models_index_path} and no version index in {self.data_dir}")
            return []
        logger.info(f"Using latest version index {index.version}")
        return models_index_from_version_index(index)

    def run(self, input_path: str, output_dir: str, catalog_output: str, max_concurrent: int = 5,
            verbose: bool = False, skip_huggingface: bool = False, skip_enrichment: bool = False,
            skip_catalog: bool = False, skip_report: bool = False, static_catalog_files: Optional[str] = None,
            skip_default_static_catalog: bool = False, report_dir: Optional[str] = None) -> int:
        """Run every enabled stage. Returns the process exit status."""
        if verbose:
            logging.getLogger().setLevel(logging.DEBUG)

        logger.info(f"Models index: {input_path}, output: {output_dir}, catalog: {catalog_output}, "
                    f"max concurrent: {max_concurrent}")

        try:
            storage.ensure_output_dir(output_dir)
            storage.ensure_output_dir(Path(catalog_output).parent)
        except OutputDirectoryError as e:
            logger.error(str(e))
            print(f"❌ {e}")
            return 1

        if not skip_huggingface:
            print("Processing Hugging Face collections...")
            written = process_collections(self.hub, self.data_dir)
            if not written:
                logger.warning("No collections processed, falling back to existing index files")

        entries = unique_entries(self.load_entries(input_path))
        candidates = load_hub_candidates(self.data_dir)
        print(f"Processing {len(entries)} models...")

        pipeline = ExtractionPipeline(
            self.registry, output_dir, hub=self.hub, candidates=candidates, max_concurrent=max_concurrent
        )
        try:
            results = pipeline.run(entries)
        except OutputDirectoryError as e:
            logger.error(str(e))
            print(f"❌ {e}")
            return 1

        manifests = storage.write_manifests(output_dir, manifest_entries(results))
        found = sum(1 for result in results if result.modelcard_found)
        failed = sum(1 for result in results if result.error)
        print(f"  - Modelcards found: {found}/{len(results)}, failures: {failed}")
        if manifests:
            print(f"  - Manifests: {manifests}")

        if not skip_enrichment:
            print("Enriching extracted metadata with Hugging Face data...")
            orchestrator = EnrichmentOrchestrator(self.hub, output_dir, candidates, max_concurrent=max_concurrent)
            enriched = orchestrator.enrich_all(entries)
            matched = sum(1 for record in enriched if record.huggingface_model)
            print(f"  - Matched {matched}/{len(enriched)} models to Hugging Face")
            refreshed = orchestrator.refresh_all(entries, self.registry)
            print(f"  - Refreshed artifacts for {refreshed}/{len(entries)} models")

        if not skip_catalog:
            paths = static_catalog_paths(
                static_catalog_files, None if skip_default_static_catalog else DEFAULT_STATIC_CATALOG
            )
            static_models = load_static_catalogs(paths) if paths else []
            catalog = build_catalog(output_dir, static_models, refs=[entry.uri for entry in entries])
            try:
                path = write_catalog(catalog, catalog_output)
            except OSError as e:
                logger.error(f"Failed to write catalog {catalog_output}: {e}")
                print(f"❌ Failed to write catalog: {e}")
                return 1
            print(f"\n✅ Catalog with {len(catalog.models)} models:\n   {path}")

            if not skip_report:
                reports = generate_metadata_report(path, output_dir, report_dir or output_dir)
                if reports:
                    print(f"\n📄 Metadata Reports:\n   {reports['markdown']}\n   {reports['yaml']}")

        print("Model metadata collection completed.")
        return 0
