from __future__ import annotations

import pytest

from formrelay.core.errors import ValidationError
from formrelay.services.validation import is_empty_value, validate_submission


def test_missing_required_field_names_the_field(registry) -> None:
    schema = registry.require("contact")
    with pytest.raises(ValidationError) as excinfo:
        validate_submission({"name": "Ada", "message": "hi"}, schema)
    assert excinfo.value.field == "email"
    assert "email" in str(excinfo.value)


def test_blank_and_empty_values_count_as_missing(registry) -> None:
    schema = registry.require("contact")
    for blank in ("", "   ", None, [], {}):
        with pytest.raises(ValidationError):
            validate_submission({"name": "Ada", "email": blank, "message": "hi"}, schema)


def test_falsy_scalars_are_values() -> None:
    assert not is_empty_value(0)
    assert not is_empty_value(False)
    assert is_empty_value("\t")


def test_first_missing_field_in_declared_order_wins(registry) -> None:
    schema = registry.require("contact")
    with pytest.raises(ValidationError) as excinfo:
        validate_submission({}, schema)
    assert excinfo.value.field == "name"


def test_extra_fields_are_accepted(registry) -> None:
    schema = registry.require("contact")
    validate_submission(
        {"name": "Ada", "email": "ada@example.com", "message": "hi", "utm_source": "newsletter"},
        schema,
    )


def test_patterns_only_enforced_when_enabled(registry) -> None:
    schema = registry.require("contact")
    data = {"name": "Ada", "email": "not-an-email", "message": "hi"}
    validate_submission(data, schema)
    with pytest.raises(ValidationError) as excinfo:
        validate_submission(data, schema, check_patterns=True)
    assert excinfo.value.field == "email"

    validate_submission({**data, "email": "ada@example.com"}, schema, check_patterns=True)
