"""
Helpers for the free-form tag list the Hugging Face Hub attaches to every model.

Hub tags mix several kinds of information (language codes, pipeline tasks,
license ids, arXiv references, base model links, region markers) into one flat
list. These helpers pull the structured parts out and return the remainder as
a clean tag list.
"""
import re
from typing import List, Optional, Tuple

from .license_utils import is_placeholder_license

LANGUAGE_TAGS = frozenset({
    "en", "fr", "de", "es", "it", "pt", "ru", "zh", "ja", "ko", "ar", "hi", "nl", "sv",
    "da", "no", "fi", "pl", "cs", "hu", "tr", "he", "th", "vi", "id", "ms", "tl", "sw",
})

# Hub pipeline task tag -> task recorded in the catalog
TASK_TYPES = {
    "text-generation": "text-generation",
    "text-classification": "text-classification",
    "text-to-text-generation": "text-generation",
    "translation": "text-generation",
    "summarization": "text-generation",
    "question-answering": "question-answering",
    "conversational": "text-generation",
    "text-to-speech": "text-generation",
    "automatic-speech-recognition": "text-generation",
    "image-classification": "image-classification",
    "image-to-text": "image-to-text",
    "text-to-image": "text-generation",
    "feature-extraction": "text-generation",
    "sentence-similarity": "sentence-similarity",
    "zero-shot-classification": "text-classification",
    "token-classification": "text-classification",
    "fill-mask": "text-generation",
    "multiple-choice": "question-answering",
    "table-question-answering": "question-answering",
    "visual-question-answering": "question-answering",
    "any-to-any": "any-to-any",
    "image-text-to-text": "image-text-to-text",
    "image-to-image": "image-to-image",
    "text-ranking": "text-ranking",
    "text-to-video": "text-to-video",
    "video-to-video": "video-to-video",
}

LICENSE_TAGS = frozenset({
    "llama2", "llama3", "llama3.1", "llama3.2", "llama3.3", "llama4",
    "apache-2.0", "mit", "gpl-3.0", "bsd-3-clause",
})

STRUCTURED_TAG_PREFIXES = ("arxiv:", "base_model:", "license:", "region:")

TEXT_IO_PATTERNS = [
    re.compile(r"\*\*Input:\*\*\s*Text.*?\*\*Output:\*\*\s*Text", re.IGNORECASE),
    re.compile(r"-\s*\*\*Input:\*\*\s*Text[\s\S]*?-\s*\*\*Output:\*\*\s*Text", re.IGNORECASE),
    re.compile(r"Input:\s*Text[\s\S]*?Output:\s*Text", re.IGNORECASE),
]


def parse_tags_for_structured_data(tags: List[str]) -> Tuple[List[str], Optional[str], List[str]]:
    """
    Split hub tags into (languages, license, tasks).

    A `license:<id>` tag sets the license unless it is the "other" placeholder,
    in which case a bare license tag such as `llama4` is used instead.
    """
    languages: List[str] = []
    license_id: Optional[str] = None
    tasks: List[str] = []

    for raw_tag in tags:
        tag = raw_tag.strip().lower()

        if tag.startswith("license:"):
            value = tag[len("license:"):]
            if value and not is_placeholder_license(value):
                license_id = value
            continue

        if tag in LICENSE_TAGS:
            if license_id is None:
                license_id = tag
            continue

        if tag in LANGUAGE_TAGS:
            if tag not in languages:
                languages.append(tag)
            continue

        task = TASK_TYPES.get(tag)
        if task and task not in tasks:
            tasks.append(task)

    return languages, license_id, tasks


def filter_tags_for_clean_tag_list(tags: List[str]) -> List[str]:
    """Drop language codes, task ids and prefixed reference tags; keep the rest once."""
    clean: List[str] = []
    for raw_tag in tags:
        tag = raw_tag.strip()
        lowered = tag.lower()
        if not tag or lowered in LANGUAGE_TAGS or lowered in TASK_TYPES:
            continue
        if lowered.startswith(STRUCTURED_TAG_PREFIXES):
            continue
        if tag not in clean:
            clean.append(tag)
    return clean


def infer_tasks_from_readme(readme: str) -> List[str]:
    """Text in, text out is the one architecture we can recognise reliably."""
    if any(pattern.search(readme) for pattern in TEXT_IO_PATTERNS):
        return ["text-generation"]
    return []
