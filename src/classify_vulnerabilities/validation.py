"""Validate model output against the classification taxonomy."""

from typing import Any

from classify_vulnerabilities.taxonomy import VOCABULARIES
from common.errors import ValidationError


def validate_classification(data: Any) -> dict[str, str]:
    """
    Check every enumerated field of a parsed model reply.

    Args:
        data: Parsed JSON object returned by the model

    Returns:
        Dict with the six enumerated fields plus ``reasoning``

    Raises:
        ValidationError: If the reply is not an object, a field is missing or
            empty, or a value is outside its vocabulary
    """
    if not isinstance(data, dict):
        raise ValidationError(
            f"expected a JSON object, got {type(data).__name__}", field="", allowed=()
        )

    validated: dict[str, str] = {}
    for field, allowed in VOCABULARIES.items():
        value = data.get(field)
        if not value:
            raise ValidationError(
                f"missing required field: {field} (valid: {', '.join(allowed)})",
                field=field,
                allowed=allowed,
            )
        if value not in allowed:
            raise ValidationError(
                f"invalid value for {field}: {value!r} (valid: {', '.join(allowed)})",
                field=field,
                allowed=allowed,
            )
        validated[field] = value

    reasoning = data.get("reasoning")
    validated["reasoning"] = reasoning if isinstance(reasoning, str) else ""
    return validated
