from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from formrelay.core.errors import ConfigurationError, NotFoundError
from formrelay.domain.schema import FormSchema, parse_form_schema


class SchemaRegistry:
    """Read-only map of form id to resolved schema, built once at startup."""

    def __init__(self, schemas: Mapping[str, FormSchema]) -> None:
        self._schemas = MappingProxyType(dict(schemas))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "SchemaRegistry":
        forms = raw.get("forms", raw) if isinstance(raw, Mapping) else None
        if forms is None:
            return cls({})
        if not isinstance(forms, Mapping):
            raise ConfigurationError("'forms' must be a mapping of form id to form definition")
        return cls({str(form_id): parse_form_schema(str(form_id), body) for form_id, body in forms.items()})

    def get(self, form_id: str) -> FormSchema | None:
        return self._schemas.get(form_id)

    def require(self, form_id: str) -> FormSchema:
        schema = self._schemas.get(form_id)
        if schema is None:
            raise NotFoundError(f"Form '{form_id}' not found")
        return schema

    def list_forms(self) -> list[FormSchema]:
        return sorted(self._schemas.values(), key=lambda schema: schema.id)

    def __contains__(self, form_id: object) -> bool:
        return form_id in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)


def load_schema_registry(path: str | Path) -> SchemaRegistry:
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(f"forms config not found: {config_path}") from exc
    try:
        raw = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"forms config is not valid YAML: {config_path}") from exc
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"forms config must be a mapping: {config_path}")
    return SchemaRegistry.from_mapping(raw)
