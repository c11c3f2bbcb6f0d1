"""
License utility functions for mapping license ids to their canonical URLs.
"""
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# Keys are lowercase hub license ids
LICENSE_URLS: Dict[str, str] = {
    "apache-2.0": "https://www.apache.org/licenses/LICENSE-2.0",
    "mit": "https://opensource.org/licenses/MIT",
    "bsd-3-clause": "https://opensource.org/licenses/BSD-3-Clause",
    "bsd-2-clause": "https://opensource.org/licenses/BSD-2-Clause",
    "gpl-3.0": "https://www.gnu.org/licenses/gpl-3.0.html",
    "gpl-2.0": "https://www.gnu.org/licenses/old-licenses/gpl-2.0.html",
    "lgpl-3.0": "https://www.gnu.org/licenses/lgpl-3.0.html",
    "lgpl-2.1": "https://www.gnu.org/licenses/old-licenses/lgpl-2.1.html",
    "cc-by-4.0": "https://creativecommons.org/licenses/by/4.0/",
    "cc-by-sa-4.0": "https://creativecommons.org/licenses/by-sa/4.0/",
    "cc-by-nc-4.0": "https://creativecommons.org/licenses/by-nc/4.0/",
    "cc0-1.0": "https://creativecommons.org/publicdomain/zero/1.0/",
    "unlicense": "https://unlicense.org/",
    "llama2": "https://github.com/facebookresearch/llama/blob/main/LICENSE",
    "llama3": "https://github.com/meta-llama/llama-models/blob/main/models/llama3/LICENSE",
    "llama3.1": "https://github.com/meta-llama/llama-models/blob/main/models/llama3_1/LICENSE",
    "llama3.2": "https://github.com/meta-llama/llama-models/blob/main/models/llama3_2/LICENSE",
    "llama3.3": "https://github.com/meta-llama/llama-models/blob/main/models/llama3_3/LICENSE",
    "llama4": "https://github.com/meta-llama/llama-models/blob/main/models/llama4/LICENSE",
    "bigscience-openrail-m": "https://huggingface.co/spaces/bigscience/license",
    "openrail": "https://www.licenses.ai/ai-licenses",
    "gemma": "https://ai.google.dev/gemma/terms",
}

# Hub placeholder for "see the model card", never a concrete license
PLACEHOLDER_LICENSES = frozenset({"other"})


def get_license_url(license_id: Optional[str]) -> Optional[str]:
    """Get the canonical URL for a license id, or None if the id is not a known one."""
    if not license_id:
        return None
    url = LICENSE_URLS.get(license_id.strip().lower())
    if url is None:
        logger.debug(f"No canonical URL known for license {license_id!r}")
    return url


def is_placeholder_license(license_id: Optional[str]) -> bool:
    """True for hub values such as "other" that stand in for a missing license."""
    return bool(license_id) and license_id.strip().lower() in PLACEHOLDER_LICENSES
