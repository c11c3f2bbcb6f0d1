"""
Text helpers shared by the modelcard parser, the enrichment stage and the catalog.

Everything in here is pure string handling: cleaning values pulled out of markdown,
normalising task and language names, sanitising references for use as directory
names and turning loosely formatted dates into epoch milliseconds.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

LANGUAGE_CODES = {
    "english": "en",
    "spanish": "es",
    "french": "fr",
    "german": "de",
    "italian": "it",
    "portuguese": "pt",
    "russian": "ru",
    "chinese": "zh",
    "japanese": "ja",
    "korean": "ko",
    "arabic": "ar",
    "hindi": "hi",
    "dutch": "nl",
    "swedish": "sv",
    "danish": "da",
    "norwegian": "no",
    "finnish": "fi",
    "polish": "pl",
    "czech": "cs",
    "hungarian": "hu",
    "turkish": "tr",
    "hebrew": "he",
    "thai": "th",
    "vietnamese": "vi",
    "indonesian": "id",
    "malay": "ms",
    "tagalog": "tl",
    "swahili": "sw",
}

# Canonical task -> free-form phrases that mean the same thing
TASK_SYNONYMS = {
    "text-generation": [
        "text generation", "text-generation", "language modeling", "conversation",
        "conversational", "chat", "chatbot", "dialogue", "code generation", "coding",
        "programming", "completion", "writing", "creative writing", "storytelling",
    ],
    "text-classification": [
        "text classification", "text-classification", "classification",
        "sentiment analysis", "sentiment", "categorization", "labeling",
    ],
    "question-answering": [
        "question answering", "question-answering", "qa", "q&a",
        "question and answer", "information retrieval", "search",
    ],
    "image-classification": ["image classification", "image-classification"],
    "image-to-text": ["image captioning", "image-to-text", "image description"],
    "image-text-to-text": ["visual question answering", "image-text-to-text"],
    "image-to-image": ["image-to-image"],
    "sentence-similarity": ["sentence similarity", "sentence-similarity"],
    "text-ranking": ["text ranking", "text-ranking", "ranking"],
    "any-to-any": ["any-to-any"],
    "text-to-video": ["text-to-video"],
    "video-to-video": ["video-to-video"],
}

_TASK_LOOKUP = {
    phrase: task for task, phrases in TASK_SYNONYMS.items() for phrase in phrases
}

# Longest phrases first so "question answering" wins over "qa" on substring checks
_TASK_PHRASES_BY_LENGTH = sorted(_TASK_LOOKUP, key=lambda phrase: (-len(phrase), phrase))

DESCRIPTION_NAMESPACES = ("RedHatAI/", "meta-llama/", "microsoft/", "mistralai/", "Qwen/", "ibm-granite/")

DESCRIPTION_KEYWORDS = ("Llama", "Mistral", "Granite", "Phi", "Qwen", "Whisper", "Instruct", "Base", "Chat", "Code")

READABLE_NAME_PREFIXES = ("modelcar", "rhelai1", "model", "ai")

READABLE_WORDS = {
    "instruct": "Instruct",
    "base": "Base",
    "chat": "Chat",
    "quantized": "Quantized",
    "ibm": "IBM",
    "microsoft": "Microsoft",
    "meta": "Meta",
    "redhat": "Red Hat AI",
    "redhatai": "Red Hat AI",
}

MODEL_FAMILIES = ("granite", "llama", "mistral", "qwen", "phi", "gemma")

_VERSION_WORD = re.compile(r"^\d+(\.\d+)*[a-z]*$")
_LANGUAGE_SEPARATORS = re.compile(r"[,;]|\s+and\s+")
_UNSAFE_PATH_CHARS = re.compile(r'[/\\:*?"<>|]')
_REPEATED_UNDERSCORES = re.compile(r"_+")
_WHITESPACE = re.compile(r"\s+")

DATE_FORMATS = ("%m/%d/%Y", "%m-%d-%Y", "%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")


def strip_yaml_frontmatter(content: str) -> str:
    """Return markdown content without a leading `---` delimited YAML block."""
    if not content.strip().startswith("---"):
        return content

    lines = content.split("\n")
    delimiters = [i for i, line in enumerate(lines) if line.strip() == "---"]
    if len(delimiters) < 2:
        return content

    return "\n".join(lines[delimiters[1] + 1:]).lstrip("\n")


def parse_language_names(text: str) -> List[str]:
    """Map English language names ("English and Spanish") to ISO 639-1 codes."""
    codes: List[str] = []
    for part in _LANGUAGE_SEPARATORS.split(text.lower()):
        name = part.strip().strip(" .,")
        code = LANGUAGE_CODES.get(name)
        if code and code not in codes:
            codes.append(code)
    return codes


def generate_description_from_model_name(model_name: str) -> str:
    """Turn a hub id such as `RedHatAI/Llama-3.3-70B-Instruct` into display text."""
    if not model_name:
        return ""

    cleaned = model_name
    for namespace in DESCRIPTION_NAMESPACES:
        if cleaned.startswith(namespace):
            cleaned = cleaned[len(namespace):]
    cleaned = cleaned.replace("-", " ").replace("_", " ")

    for keyword in DESCRIPTION_KEYWORDS:
        cleaned = re.sub(rf"(?i)\b{keyword}\b", keyword, cleaned)

    cleaned = re.sub(r"(?i)\bquantized\.(w\d+a\d+)\b", r"(\1 quantized)", cleaned)
    cleaned = re.sub(r"(?i)\bfp8 dynamic\b", "(FP8 dynamic)", cleaned)
    cleaned = re.sub(r"(?i)\bfp8\b", "(FP8)", cleaned)

    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    if not cleaned:
        return ""
    return cleaned[0].upper() + cleaned[1:]


def generate_readable_description(model_name: str) -> str:
    """
    Build a one-line description from a registry reference or hub id.

    Used as the last resort when no source supplied a description. The model
    family and company names are capitalised, version-like words pass through
    untouched and a suffix is chosen from the model flavour.
    """
    if not model_name:
        return ""

    cleaned = model_name.split("/")[-1].split(":")[0]
    cleaned = cleaned.replace("-", " ").replace("_", " ")

    for prefix in READABLE_NAME_PREFIXES:
        if cleaned.lower().startswith(prefix + " "):
            cleaned = cleaned[len(prefix) + 1:]

    words = []
    for word in cleaned.split():
        lowered = word.lower()
        if lowered in MODEL_FAMILIES:
            words.append(word.capitalize())
        elif lowered in READABLE_WORDS:
            words.append(READABLE_WORDS[lowered])
        elif _VERSION_WORD.match(word):
            words.append(word)
        else:
            words.append(word.capitalize())

    if not words:
        return ""

    description = " ".join(words)
    lowered = description.lower()
    if "instruct" in lowered:
        return description + " - An instruction-tuned language model"
    if "chat" in lowered:
        return description + " - A conversational AI model"
    if "base" in lowered:
        return description + " - A foundation language model"
    return description + " - A large language model"


def normalize_task(task: str) -> str:
    """Map a free-form task phrase onto a hub pipeline task where one is recognisable."""
    lowered = task.lower().strip()
    if lowered in _TASK_LOOKUP:
        return _TASK_LOOKUP[lowered]

    for phrase in _TASK_PHRASES_BY_LENGTH:
        if phrase in lowered:
            return _TASK_LOOKUP[phrase]

    if "question" in lowered and "answer" in lowered:
        return "question-answering"
    if "image" in lowered and "text" in lowered:
        return "image-text-to-text"
    if "image" in lowered:
        return "image-classification"
    if "generat" in lowered:
        return "text-generation"
    if "classif" in lowered:
        return "text-classification"

    return task


def is_valid_value(value: str, min_length: int, max_length: int,
                   patterns: Optional[Sequence[re.Pattern]] = None) -> bool:
    """Check length bounds, printable ASCII and, when given, at least one pattern."""
    if len(value) < min_length or len(value) > max_length:
        return False

    if any(ord(char) < 32 or ord(char) > 126 for char in value):
        return False

    if patterns:
        return any(pattern.search(value) for pattern in patterns)
    return True


def clean_extracted_value(value: str) -> str:
    """Strip markdown emphasis and trailing punctuation picked up by regex extraction."""
    cleaned = value.strip().strip("*_`\"")
    return cleaned.rstrip(":").rstrip(".")


def contains_metadata_field(content: str, indicators: Iterable[str]) -> bool:
    return any(indicator in content for indicator in indicators)


def sanitize_manifest_ref(ref: str) -> str:
    """Make an artifact reference safe to use as a single directory name."""
    sanitized = _UNSAFE_PATH_CHARS.sub("_", ref)
    sanitized = _REPEATED_UNDERSCORES.sub("_", sanitized)
    return sanitized.strip("_")


def parse_date_to_epoch(date_str: str) -> Optional[int]:
    """Parse `M/D/YYYY`, `YYYY-MM-DD` and friends into UTC epoch milliseconds."""
    cleaned = clean_extracted_value(date_str)
    if not cleaned:
        return None

    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
        return int(parsed.replace(tzinfo=timezone.utc).timestamp()) * 1000

    logger.debug(f"Unrecognised date format: {date_str!r}")
    return None


def parse_time_to_epoch(value) -> Optional[int]:
    """Convert an RFC 3339 string or datetime into epoch milliseconds."""
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"Unrecognised timestamp: {value!r}")
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp()) * 1000


def deduplicate(values: Iterable[str]) -> List[str]:
    """Order-preserving de-duplication that also drops empty strings."""
    seen = set()
    result = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result
