from __future__ import annotations

import re
from typing import Any, Mapping

from formrelay.core.errors import ValidationError
from formrelay.domain.schema import FormSchema


def is_empty_value(value: Any) -> bool:
    # Null, blank strings and empty containers all count as "not provided".
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple)):
        return len(value) == 0
    return False


def validate_submission(
    data: Mapping[str, Any],
    schema: FormSchema,
    *,
    check_patterns: bool = False,
) -> None:
    """Reject the first required field that is missing or empty.

    With ``check_patterns`` each provided string value is also matched against its
    field's validation pattern. Pattern checks are off by default; the required
    check is the only guaranteed rule.
    """
    for field in schema.required_fields():
        if field.name not in data or is_empty_value(data[field.name]):
            raise ValidationError(f"required field '{field.name}' is missing", field=field.name)

    if not check_patterns:
        return
    for field in schema.fields:
        if not field.validation_pattern:
            continue
        value = data.get(field.name)
        if is_empty_value(value) or not isinstance(value, str):
            continue
        if re.fullmatch(field.validation_pattern, value.strip()) is None:
            raise ValidationError(f"field '{field.name}' has an invalid value", field=field.name)
