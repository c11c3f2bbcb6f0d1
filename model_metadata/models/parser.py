"""
Modelcard and README parsing.

A modelcard is markdown with an optional YAML front-matter header. Front-matter
values are taken first; the remaining fields are mined from the markdown body
with line-oriented regular expressions and validated before they are accepted.
"""
import logging
import re
from typing import List, Optional

import yaml
from pydantic import ValidationError

from ..utils.license_utils import get_license_url
from ..utils.text_utils import (
    clean_extracted_value,
    contains_metadata_field,
    generate_readable_description,
    is_valid_value,
    normalize_task,
    parse_date_to_epoch,
    parse_language_names,
)
from .schemas import ExtractedMetadata, FrontMatter, ModelcardPresence

logger = logging.getLogger(__name__)

DATE = r"([0-9]{1,2}[/\-][0-9]{1,2}[/\-][0-9]{4})"


class ModelcardPatterns:
    """Compiled expressions used to mine fields out of modelcard markdown."""
    TITLE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
    TITLE_VERSION = re.compile(r"\d+[.-]\d+")
    TITLE_FLAVOUR = re.compile(r"(instruct|base|quantized|fp8|w\d+a\d+)", re.IGNORECASE)
    PROVIDER_LINES = [
        re.compile(r"^-?\s*\*?\*?(?:Model Developers?|Developers?|Author|Provider|Authors?):\*?\*?\s*(.+)$", re.IGNORECASE),
        re.compile(r"^-?\s*\*?\*?(?:Developed by|Created by|Made by):\*?\*?\s*(.+)$", re.IGNORECASE),
        re.compile(r"^-?\s*\*?\*?(?:Company|Organization|Team):\*?\*?\s*(.+)$", re.IGNORECASE),
    ]
    PROVIDER_VALUE = re.compile(r"^[A-Za-z0-9\s\\.&,\-()]+$")
    COMPANY = re.compile(
        r"(IBM|Microsoft|Meta|Google|OpenAI|Anthropic|Mistral|Neural Magic|Red Hat|Hugging Face|Facebook)"
        r"\s+(?:Research|AI|Inc\.?|Corporation|Corp\.?)?",
        re.IGNORECASE,
    )
    OVERVIEW = re.compile(r"(?:## Model Overview|## Overview)\s*\n((?:[^\n]+\n)*?)(?:\n##|\n#|$)", re.IGNORECASE)
    OVERVIEW_SENTENCE = re.compile(r"(?:^|\n)\s*(.+?(?:model|quantized version|intended for).{20,200}?)(?:\n|$)", re.IGNORECASE)
    FIRST_PARAGRAPH = re.compile(r"^#[^\n]+\n\n([^\n#]+(?:\n[^\n#]+)*?)(?:\n\n|\n#|$)", re.DOTALL)
    LICENSE_LINE = re.compile(
        r"^-?\s*\*?\*?(?:License(?:\(s\))?|Licensing):\*?\*?\s*(?:\[([^\]]+)\]|\*?([A-Za-z0-9.\-_]+)\*?)",
        re.IGNORECASE,
    )
    LICENSE_VALUE = re.compile(r"^[A-Za-z0-9.\-_\s]+$")
    LICENSE_LINK = re.compile(r"(?:license|licensing)[^(]*\((https?://[^)]+)\)", re.IGNORECASE)
    URL = re.compile(r"^https?://")
    RELEASE_DATE_LINE = re.compile(r"^-?\s*\*?\*?(?:Release Date|Date):\*?\*?\s*" + DATE, re.IGNORECASE)
    UPDATE_DATE = re.compile(r"(?:updated?|modified|last\s+update).*?" + DATE, re.IGNORECASE)
    TASKS_LINE = re.compile(r"^-?\s*\*?\*?(?:Intended Use Cases?|Tasks?):\*?\*?\s*(.+)$", re.IGNORECASE)
    LIBRARY = re.compile(r"using the \[([a-zA-Z]+)\]|with ([a-zA-Z]+) >=|backend.*?([a-zA-Z]+)", re.IGNORECASE)
    LIBRARY_VALUE = re.compile(r"^[a-zA-Z]+$")
    SUPPORTED_LANGUAGES = re.compile(
        r"(?:(?:supported\s+languages?|languages?\s+supported):\s*([^.\n]+)"
        r"|supports\s+\d+\s+languages?\s+in\s+addition\s+to\s+English:\s*([^.]+))",
        re.IGNORECASE,
    )
    LANGUAGE_LINE = re.compile(r"(?:language|languages?).*?(?:in\s+)?([A-Z][a-z]+(?:\s+and\s+[A-Z][a-z]+)*)", re.IGNORECASE)


class ReadmePatterns:
    """Free-text fallbacks applied to hub README files."""
    PROVIDERS = [
        re.compile(r"\*?\*?Model developer[s]?\*?\*?:?\s*\*?\*?([^.\n*]+)", re.IGNORECASE),
        re.compile(r"\*?\*?Developer[s]?\*?\*?:?\s*\*?\*?([^.\n*]+)", re.IGNORECASE),
        re.compile(r"\*?\*?Created by\*?\*?:?\s*\*?\*?([^.\n*]+)", re.IGNORECASE),
        re.compile(r"\*?\*?Author[s]?\*?\*?:?\s*\*?\*?([^.\n*]+)", re.IGNORECASE),
        re.compile(r"\*?\*?Provider\*?\*?:?\s*\*?\*?([^.\n*]+)", re.IGNORECASE),
        re.compile(r"\*?\*?Model Developers?\*?\*?:?\s*\*?\*?([^.\n*]+)", re.IGNORECASE),
    ]
    PROVIDER_VALUE = re.compile(r"^[A-Za-z\s\\.&,()-]+$")
    RELEASE_DATES = [
        re.compile(r".*Release Date.*?" + DATE, re.IGNORECASE),
        re.compile(r".*Released.*?" + DATE, re.IGNORECASE),
        re.compile(r".*Launch Date.*?" + DATE, re.IGNORECASE),
        re.compile(r".*Date.*?" + DATE, re.IGNORECASE),
    ]


KNOWN_LIBRARIES = frozenset({"vllm", "transformers", "pytorch", "tensorflow"})

TITLE_SKIP_WORDS = ("define", "function", "tool", "example")
TITLE_MODEL_WORDS = ("model", "llama", "granite", "mistral", "qwen", "phi")

TASK_PHRASES = [
    "text-generation",
    "text-to-text-generation",
    "conversational",
    "question-answering",
    "summarization",
    "translation",
    "code-generation",
    "chat",
    "instruction-following",
    "assistant-like chat",
    "commercial and research use",
]

PRESENCE_INDICATORS = {
    "name": ["name:", "model name", "# "],
    "provider": ["provider:", "model developers:", "developers:", "author"],
    "description": ["description:", "## model overview", "overview"],
    "language": ["language:", "languages:", "supported language"],
    "license": ["license:", "licensing", "apache", "mit", "gpl"],
    "license_link": ["license link", "license url", "licensing terms", "www.apache.org"],
    "maturity": ["maturity:", "development", "production", "beta", "alpha", "stable"],
    "library_name": ["library:", "framework:", "vllm", "transformers", "pytorch", "tensorflow"],
    "tasks": ["task:", "tasks:", "use case", "application"],
    "create_time_since_epoch": ["created:", "creation date", "release date:", "date:"],
    "last_update_time_since_epoch": ["updated:", "last update", "modified:", "version:"],
    "artifacts": ["artifact:", "model file", "download", "huggingface", "registry.redhat.io"],
}


def extract_front_matter(content: str) -> Optional[FrontMatter]:
    """Parse the `---` delimited YAML header at the very top of a markdown document."""
    if not content or not content.startswith("---"):
        return None

    lines = content.split("\n")
    end = next((i for i in range(1, len(lines)) if lines[i].strip() == "---"), None)
    if end is None:
        logger.debug("Front-matter has no closing delimiter")
        return None

    try:
        data = yaml.safe_load("\n".join(lines[1:end]))
    except yaml.YAMLError as e:
        logger.debug(f"Failed to parse front-matter: {e}")
        return None

    if not isinstance(data, dict):
        return None

    try:
        return FrontMatter.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Unexpected front-matter shape: {e}")
        return None


def split_task_string(task_text: str) -> List[str]:
    lowered = task_text.lower()
    tasks = [phrase for phrase in TASK_PHRASES if phrase in lowered]
    if tasks:
        return tasks
    return [part for part in re.split(r"[,;]", lowered) if part]


def _extract_title(content: str) -> Optional[str]:
    for match in ModelcardPatterns.TITLE.finditer(content):
        name = clean_extracted_value(match.group(1))
        lowered = name.lower()
        if any(word in lowered for word in TITLE_SKIP_WORDS) or "(" in name or "def " in name:
            continue
        looks_like_model = (
            any(word in lowered for word in TITLE_MODEL_WORDS)
            or ModelcardPatterns.TITLE_VERSION.search(name)
            or ModelcardPatterns.TITLE_FLAVOUR.search(name)
        )
        if looks_like_model and is_valid_value(name, 3, 100):
            return name
    return None


def _extract_provider(lines: List[str], content: str) -> Optional[str]:
    for line in lines:
        for pattern in ModelcardPatterns.PROVIDER_LINES:
            match = pattern.search(line)
            if not match:
                continue
            provider = clean_extracted_value(match.group(1))
            if is_valid_value(provider, 2, 100, [ModelcardPatterns.PROVIDER_VALUE]):
                return provider

    company = ModelcardPatterns.COMPANY.search(content)
    if company:
        return company.group(0).strip()
    return None


def _extract_description(content: str) -> Optional[str]:
    overview = ModelcardPatterns.OVERVIEW.search(content)
    if overview:
        sentence = ModelcardPatterns.OVERVIEW_SENTENCE.search(overview.group(1))
        if sentence:
            description = clean_extracted_value(sentence.group(1))
            if is_valid_value(description, 20, 500):
                return description

    paragraph = ModelcardPatterns.FIRST_PARAGRAPH.search(content)
    if paragraph:
        description = clean_extracted_value(paragraph.group(1))
        if is_valid_value(description, 20, 500):
            return description
    return None


def _extract_license(lines: List[str]) -> Optional[str]:
    for line in lines:
        match = ModelcardPatterns.LICENSE_LINE.search(line)
        if not match:
            continue
        license_id = clean_extracted_value(match.group(1) or match.group(2) or "")
        if is_valid_value(license_id, 2, 30, [ModelcardPatterns.LICENSE_VALUE]):
            return license_id
    return None


def _extract_tasks(lines: List[str]) -> List[str]:
    for line in lines:
        match = ModelcardPatterns.TASKS_LINE.search(line)
        if not match:
            continue
        task_text = clean_extracted_value(match.group(1))
        if not is_valid_value(task_text, 5, 200):
            continue
        tasks = []
        for task in split_task_string(task_text):
            task = clean_extracted_value(task)
            if is_valid_value(task, 3, 50):
                normalized = normalize_task(task)
                if normalized and normalized not in tasks:
                    tasks.append(normalized)
        return tasks
    return []


def _extract_library(content: str) -> Optional[str]:
    match = ModelcardPatterns.LIBRARY.search(content)
    if not match:
        return None
    for group in match.groups():
        if not group:
            continue
        library = clean_extracted_value(group)
        if is_valid_value(library, 3, 20, [ModelcardPatterns.LIBRARY_VALUE]) and library.lower() in KNOWN_LIBRARIES:
            return library
    return None


def _extract_languages(lines: List[str], content: str) -> List[str]:
    match = ModelcardPatterns.SUPPORTED_LANGUAGES.search(content)
    if match:
        if match.group(1):
            text = clean_extracted_value(match.group(1))
        else:
            text = "English, " + clean_extracted_value(match.group(2))
        return parse_language_names(text)

    for line in lines:
        line_match = ModelcardPatterns.LANGUAGE_LINE.search(line)
        if line_match:
            languages = parse_language_names(clean_extracted_value(line_match.group(1)))
            if languages:
                return languages
    return []


def _first_date(lines: List[str], pattern: re.Pattern) -> Optional[int]:
    for line in lines:
        match = pattern.search(line)
        if match:
            epoch = parse_date_to_epoch(match.group(1))
            if epoch is not None:
                return epoch
    return None


def parse_modelcard(content: str) -> ExtractedMetadata:
    """
    Extract metadata values from modelcard markdown.

    Front-matter supplies name, provider, description, language, license,
    library, tags, tasks and validated-on labels where present. Everything
    still missing is mined from the body text.
    """
    lines = content.split("\n")
    metadata = ExtractedMetadata()

    front_matter = extract_front_matter(content)
    if front_matter:
        metadata.name = front_matter.name
        metadata.provider = front_matter.provider
        metadata.description = front_matter.description
        metadata.library_name = front_matter.library_name
        metadata.language = list(front_matter.language)
        metadata.tags = list(front_matter.tags)
        metadata.tasks = list(front_matter.effective_tasks)
        metadata.validated_on = list(front_matter.validated_on)
        metadata.license = front_matter.effective_license
        metadata.license_link = front_matter.license_link or get_license_url(metadata.license)

    if metadata.name is None:
        metadata.name = _extract_title(content)
    if metadata.provider is None:
        metadata.provider = _extract_provider(lines, content)
    if metadata.description is None:
        metadata.description = _extract_description(content)
    if metadata.description is None and metadata.name:
        metadata.description = generate_readable_description(metadata.name) or None

    metadata.readme = content or None

    if metadata.license is None:
        metadata.license = _extract_license(lines)
        if metadata.license:
            metadata.license_link = get_license_url(metadata.license)

    if metadata.license_link is None:
        link = ModelcardPatterns.LICENSE_LINK.search(content)
        if link and is_valid_value(link.group(1).strip(), 10, 200, [ModelcardPatterns.URL]):
            metadata.license_link = link.group(1).strip()

    metadata.create_time_since_epoch = _first_date(lines, ModelcardPatterns.RELEASE_DATE_LINE)
    update = ModelcardPatterns.UPDATE_DATE.search(content)
    if update:
        metadata.last_update_time_since_epoch = parse_date_to_epoch(update.group(1))

    if not metadata.tasks:
        metadata.tasks = _extract_tasks(lines)
    if metadata.library_name is None:
        metadata.library_name = _extract_library(content)
    if not metadata.language:
        metadata.language = _extract_languages(lines, content)

    metadata.artifacts = []
    metadata.apply_timestamp_defaults()
    return metadata


def detect_modelcard_fields(content: str) -> ModelcardPresence:
    """Report which metadata fields a modelcard appears to mention, by keyword."""
    lowered = content.lower()
    flags = {
        field: contains_metadata_field(lowered, indicators)
        for field, indicators in PRESENCE_INDICATORS.items()
    }
    flags["readme"] = len(content) > 0
    return ModelcardPresence(**flags)


def extract_provider_from_readme(readme: str) -> Optional[str]:
    if not readme:
        return None
    for pattern in ReadmePatterns.PROVIDERS:
        match = pattern.search(readme)
        if not match:
            continue
        provider = clean_extracted_value(match.group(1).strip()).strip()
        if is_valid_value(provider, 2, 50, [ReadmePatterns.PROVIDER_VALUE]):
            return provider
    return None


def extract_release_date_from_readme(readme: str) -> Optional[str]:
    if not readme:
        return None
    for pattern in ReadmePatterns.RELEASE_DATES:
        match = pattern.search(readme)
        if not match:
            continue
        date = clean_extracted_value(match.group(1).strip())
        if len(date) >= 8:
            return date
    return None
