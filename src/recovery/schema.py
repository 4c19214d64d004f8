# src/recovery/schema.py — v1
"""Schema hints for the assisted recovery stages.

A hint may be free text, a JSON-schema dict or a pydantic model class.
Without a hint the agent definition structure is assumed.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

PLACEHOLDER_CODE = (
    "export async function execute(params) {\n"
    "  throw new Error('Agent code could not be recovered; regenerate this agent.');\n"
    "}\n"
)

DEFAULT_AGENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "default": "recovered_agent"},
        "description": {"type": "string", "default": "Recovered agent definition"},
        "code": {"type": "string", "default": PLACEHOLDER_CODE},
        "dependencies": {"type": "array", "items": {"type": "string"}},
        "execution_target": {"type": "string", "enum": ["frontend", "backend"], "default": "backend"},
        "requires_database": {"type": "boolean"},
        "version": {"type": "string", "default": "1.0.0"},
        "config": {"type": "object"},
        "secrets": {"type": "object"},
        "orchestrator_metadata": {"type": "object"},
    },
    "required": [
        "name",
        "description",
        "code",
        "dependencies",
        "execution_target",
        "requires_database",
        "version",
        "config",
        "secrets",
        "orchestrator_metadata",
    ],
}

_TYPE_DEFAULTS: dict[str, Any] = {
    "string": "",
    "array": [],
    "object": {},
    "boolean": False,
    "integer": 0,
    "number": 0,
    "null": None,
}

SchemaHint = str | dict[str, Any] | type[BaseModel] | None


def resolve_schema(hint: SchemaHint) -> dict[str, Any] | None:
    """JSON schema for a hint; None for free-text hints."""
    if hint is None:
        return DEFAULT_AGENT_SCHEMA
    if isinstance(hint, dict):
        return hint
    if isinstance(hint, type) and issubclass(hint, BaseModel):
        return hint.model_json_schema()
    return None


def render_schema_hint(hint: SchemaHint) -> str:
    """Text to embed in a repair/extraction prompt."""
    if isinstance(hint, str):
        return hint
    schema = resolve_schema(hint)
    return json.dumps(schema, indent=2)


def apply_defaults(data: dict[str, Any], hint: SchemaHint) -> tuple[dict[str, Any], list[str]]:
    """Fill missing required fields with safe defaults.

    Returns:
        The completed data and the names of the defaulted fields. Every
        defaulted field is logged.
    """
    schema = resolve_schema(hint)
    if schema is None:
        return data, []

    properties: dict[str, Any] = schema.get("properties", {})
    completed = dict(data)
    defaulted: list[str] = []
    for name in schema.get("required", []):
        if not _is_missing(completed.get(name)):
            continue
        completed[name] = _default_for(properties.get(name, {}))
        defaulted.append(name)
        logger.warning("Recovered data lacked required field %r; using default", name)
    return completed, defaulted


def validate_agent_schema(data: Any) -> bool:
    """name, description and code must be non-empty strings."""
    if not isinstance(data, dict):
        return False
    return all(
        isinstance(data.get(field), str) and data[field].strip()
        for field in ("name", "description", "code")
    )


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _default_for(prop: dict[str, Any]) -> Any:
    if "default" in prop:
        return prop["default"]
    if prop.get("enum"):
        return prop["enum"][0]
    kind = prop.get("type", "string")
    if isinstance(kind, list):
        kind = next((k for k in kind if k != "null"), "null")
    value = _TYPE_DEFAULTS.get(kind, None)
    # fresh containers per call
    return type(value)() if isinstance(value, (list, dict)) else value
