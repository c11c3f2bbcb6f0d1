"""
JSON Schema validation of hand-maintained static catalog files.

Static catalogs are merged verbatim into the generated catalog, so they are
checked against a small structural schema before being accepted.
"""
import logging
from typing import Any, Dict, List, Tuple

from jsonschema import Draft7Validator, ValidationError

# Module-level logger
logger = logging.getLogger(__name__)

_STRING_OR_NULL = {"type": ["string", "null"]}
_TIMESTAMP = {"type": ["string", "integer", "null"]}

STATIC_CATALOG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Static models catalog",
    "type": "object",
    "required": ["source"],
    "properties": {
        "source": {"type": "string", "minLength": 1},
        "models": {
            "type": ["array", "null"],
            "items": {
                "type": "object",
                "required": ["name", "artifacts"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "provider": _STRING_OR_NULL,
                    "description": _STRING_OR_NULL,
                    "readme": _STRING_OR_NULL,
                    "language": {"type": ["array", "null"], "items": {"type": "string"}},
                    "license": _STRING_OR_NULL,
                    "licenseLink": _STRING_OR_NULL,
                    "tasks": {"type": ["array", "null"], "items": {"type": "string"}},
                    "createTimeSinceEpoch": _TIMESTAMP,
                    "lastUpdateTimeSinceEpoch": _TIMESTAMP,
                    "customProperties": {"type": ["object", "null"]},
                    "artifacts": {
                        "type": "array",
                        "minItems": 1,
                        "items": {
                            "type": "object",
                            "required": ["uri"],
                            "properties": {
                                "uri": {"type": "string", "minLength": 1},
                                "createTimeSinceEpoch": _TIMESTAMP,
                                "lastUpdateTimeSinceEpoch": _TIMESTAMP,
                                "customProperties": {"type": ["object", "null"]},
                            },
                        },
                    },
                },
            },
        },
    },
}

_validator = Draft7Validator(STATIC_CATALOG_SCHEMA)


def _format_validation_error(error: ValidationError) -> str:
    """Format a validation error into a readable message."""
    path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
    return f"[{path}] {error.message}"


def validate_static_catalog(catalog: Any) -> Tuple[bool, List[str]]:
    """
    Validate a parsed static catalog document.

    Returns:
        Tuple of (is_valid, list of error messages).
        If valid, returns (True, []).
    """
    errors = sorted(_validator.iter_errors(catalog), key=lambda e: [str(p) for p in e.absolute_path])
    if not errors:
        return True, []

    error_messages = [_format_validation_error(e) for e in errors]
    logger.debug("Static catalog failed validation with %d errors", len(error_messages))
    return False, error_messages
