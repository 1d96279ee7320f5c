"""Configuration validation using JSON Schema."""

from __future__ import annotations

from typing import Any, Dict

import jsonschema
from jsonschema import Draft7Validator, validators

from exceptions import ConfigValidationError
from log_config.logger import get_logger

logger = get_logger(__name__)

FIELD_KEYS = (
    "ball_radius",
    "line_width",
    "center_radius",
    "border_strip_width_x",
    "border_strip_width_y",
    "penalty_mark_dist",
    "penalty_mark_length",
    "goal_width",
    "goal_depth",
    "goal_area_length",
    "goal_area_width",
    "field_length",
    "field_width",
)

# JSON Schema for field descriptions, every dimension is mandatory
FIELD_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": list(FIELD_KEYS),
    "properties": {key: {"type": "number", "minimum": 0} for key in FIELD_KEYS},
}

PROVIDER_SCHEMA = {
    "type": "object",
    "required": ["class_name"],
    "properties": {
        "class_name": {"type": "string", "enum": ["replay", "live", "simulated"]},
        "input_path": {"type": "string"},
        "meta_information_path": {"type": "string"},
        "output_prefix": {"type": "string"},
        "frame_period_us": {"type": "integer", "minimum": 1, "default": 30000},
        "source": {"type": ["string", "integer"]},
        "history_size": {"type": "integer", "minimum": 1, "maximum": 1000, "default": 8},
        "timeout_ms": {"type": "integer", "minimum": 1, "maximum": 60000, "default": 1000},
        "max_read_attempts": {"type": "integer", "minimum": 1, "maximum": 100, "default": 5},
        "width": {"type": "integer", "minimum": 1, "maximum": 7680},
        "height": {"type": "integer", "minimum": 1, "maximum": 4320},
        "fps": {"type": "number", "minimum": 0, "maximum": 1000},
        "intrinsic_path": {"type": "string"},
        "default_pose_path": {"type": "string"},
    },
}

# JSON Schema for monitoring session configuration
SESSION_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["image_providers", "message_manager", "live"],
    "properties": {
        "image_providers": {
            "type": "object",
            "additionalProperties": PROVIDER_SCHEMA,
        },
        "message_manager": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string"},
                "ports": {
                    "type": "array",
                    "items": {"type": "integer", "minimum": 1, "maximum": 65535},
                },
            },
        },
        "live": {"type": "boolean"},
        "msg_collection_path": {"type": "string"},
    },
}


def extend_with_default(validator_class):
    """Extend JSON Schema validator to set default values."""
    validate_properties = validator_class.VALIDATORS["properties"]

    def set_defaults(validator, properties, instance, schema):
        if isinstance(instance, dict):
            for prop, subschema in properties.items():
                if "default" in subschema:
                    instance.setdefault(prop, subschema["default"])

        for error in validate_properties(validator, properties, instance, schema):
            yield error

    return validators.extend(validator_class, {"properties": set_defaults})


DefaultValidatingValidator = extend_with_default(Draft7Validator)


def validate_document(data: Any, schema: Dict[str, Any], what: str) -> None:
    """Validate a parsed document against a JSON Schema.

    Defaults declared in the schema are written into ``data``.

    Args:
        data: Parsed document
        schema: JSON Schema to validate against
        what: Human readable name of the document for messages

    Raises:
        ConfigValidationError: If the document is invalid, the message lists
            every offending key
    """
    try:
        validator = DefaultValidatingValidator(schema)
        errors = sorted(validator.iter_errors(data), key=lambda e: list(e.path))

        if errors:
            error_messages = []
            for error in errors:
                path = " -> ".join(str(p) for p in error.path) if error.path else "root"
                error_messages.append(f"{path}: {error.message}")

            logger.error(f"{what} validation failed with {len(errors)} errors")
            for msg in error_messages:
                logger.error(f"  - {msg}")

            raise ConfigValidationError(
                f"{what} validation failed: " + "; ".join(error_messages),
                validation_errors=error_messages,
            )

        logger.debug(f"{what} validation passed")

    except jsonschema.exceptions.SchemaError as e:
        logger.error(f"Invalid schema: {e}")
        raise ConfigValidationError(f"Invalid schema definition: {e}")


def validate_field_config(data: Any) -> None:
    validate_document(data, FIELD_SCHEMA, "Field description")


def validate_session_config(data: Any) -> None:
    validate_document(data, SESSION_SCHEMA, "Session configuration")


__all__ = [
    "FIELD_KEYS",
    "FIELD_SCHEMA",
    "SESSION_SCHEMA",
    "validate_document",
    "validate_field_config",
    "validate_session_config",
]
