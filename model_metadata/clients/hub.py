"""
Hugging Face Hub client used by the extraction and enrichment stages.

All calls are best-effort: network and hub errors are logged and turned into
None (or an empty list) so a missing hub never aborts a batch.
"""
import logging
import re
from typing import Any, List, Optional

import requests
from huggingface_hub import HfApi, hf_hub_url

from ..models.schemas import HubIndexEntry, HubModelDetails

logger = logging.getLogger(__name__)

HUB_BASE_URL = "https://huggingface.co"
DEFAULT_TIMEOUT = 30

VALIDATED_COLLECTION_TITLE = re.compile(r"red.?hat.?ai.?validated.?models", re.IGNORECASE)

# Used when collection discovery is unavailable
KNOWN_VALIDATED_COLLECTIONS = [
    "RedHatAI/red-hat-ai-validated-models-may-2025-682613dc19c4a596dbac9437",
    "RedHatAI/red-hat-ai-validated-models-september-2025-68cc3d7a8a272f6beae3e9a7",
    "RedHatAI/red-hat-ai-validated-models-october-2025-68ed0a23ec5ce4b0ffc4c60c",
    "RedHatAI/red-hat-ai-validated-models-january-2026-69652094dc3429e12c32ad49",
]


def _isoformat(value: Any) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _card_license(info: Any) -> Optional[str]:
    card_data = getattr(info, "card_data", None) or getattr(info, "cardData", None)
    if not card_data:
        return None
    if isinstance(card_data, dict):
        value = card_data.get("license")
    else:
        value = getattr(card_data, "license", None)
    if isinstance(value, list):
        value = value[0] if value else None
    return str(value) if value else None


class HubClient:
    """Thin wrapper around `huggingface_hub.HfApi` with per-call timeouts."""

    def __init__(self, token: Optional[str] = None, api: Optional[HfApi] = None,
                 session: Optional[requests.Session] = None, timeout: int = DEFAULT_TIMEOUT,
                 organization: str = "RedHatAI"):
        self.token = token
        self.api = api or HfApi(token=token)
        self.session = session or requests.Session()
        self.timeout = timeout
        self.organization = organization

    @staticmethod
    def model_url(model_id: str) -> str:
        return f"{HUB_BASE_URL}/{model_id}"

    def fetch_details(self, model_id: str) -> Optional[HubModelDetails]:
        """Scalar fields and tags for one hub model, or None if unavailable."""
        try:
            logger.debug(f"Requesting model info for {model_id}")
            info = self.api.model_info(model_id, timeout=self.timeout)
        except Exception as e:
            logger.warning(f"Error fetching model info for {model_id}: {e}")
            return None

        return HubModelDetails(
            id=getattr(info, "id", None) or model_id,
            author=getattr(info, "author", None),
            sha=getattr(info, "sha", None),
            downloads=getattr(info, "downloads", None) or 0,
            likes=getattr(info, "likes", None) or 0,
            tags=list(getattr(info, "tags", None) or []),
            license=_card_license(info),
            pipeline_tag=getattr(info, "pipeline_tag", None),
            library_name=getattr(info, "library_name", None),
            created_at=_isoformat(getattr(info, "created_at", None)),
            last_modified=_isoformat(getattr(info, "last_modified", None)),
        )

    def fetch_readme(self, model_id: str) -> Optional[str]:
        """Raw README.md including front-matter, or None if unavailable."""
        url = hf_hub_url(repo_id=model_id, filename="README.md")
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            logger.debug(f"Downloading README.md for {model_id}")
            response = self.session.get(url, headers=headers, timeout=self.timeout)
            if response.status_code == 404:
                logger.info(f"No README.md for {model_id}")
                return None
            response.raise_for_status()
            response.encoding = response.encoding or "utf-8"
            return response.text
        except requests.RequestException as e:
            logger.warning(f"Error fetching README for {model_id}: {e}")
            return None

    def list_validated_collections(self) -> List[str]:
        """Slugs of the organisation's validated-model collections, newest listing order."""
        try:
            collections = list(self.api.list_collections(owner=self.organization, limit=100))
        except Exception as e:
            logger.warning(f"Error listing collections for {self.organization}: {e}")
            return list(KNOWN_VALIDATED_COLLECTIONS)

        slugs = [c.slug for c in collections if VALIDATED_COLLECTION_TITLE.search(c.title or "")]
        if not slugs:
            logger.info("No validated collections discovered, using known collections")
            return list(KNOWN_VALIDATED_COLLECTIONS)
        return slugs

    def get_collection(self, slug: str) -> Optional[Any]:
        try:
            return self.api.get_collection(slug)
        except Exception as e:
            logger.warning(f"Error fetching collection {slug}: {e}")
            return None

    def collection_models(self, collection: Any) -> List[HubIndexEntry]:
        entries = []
        for item in getattr(collection, "items", None) or []:
            if getattr(item, "item_type", "model") != "model":
                continue
            model_id = item.item_id
            entries.append(HubIndexEntry(
                name=model_id,
                url=self.model_url(model_id),
                readme_path=f"/{model_id}/README.md",
            ))
        return entries
