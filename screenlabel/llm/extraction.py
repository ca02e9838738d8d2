"""Turn a free-text model reply into a validated structured object.

Models are asked for JSON but often wrap it in prose. The reply is scanned
for the span from the first "{" to the last "}" (greedy, not brace-balanced),
and that span is validated against a pydantic schema.
"""

import re
from typing import TypeVar

from pydantic import BaseModel

from screenlabel.errors import NoJsonFoundError

ModelT = TypeVar("ModelT", bound=BaseModel)

_JSON_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


def first_json_object(text: str) -> str:
    """Return the greedy first-"{"-to-last-"}" span of text.

    Args:
        text: Raw model output.

    Returns:
        The candidate JSON object text.

    Raises:
        NoJsonFoundError: If text contains no such span.
    """
    match = _JSON_OBJECT_PATTERN.search(text)
    if match is None:
        raise NoJsonFoundError("No JSON found in response")
    return match.group(0)


def parse_structured_reply(content: str, schema: type[ModelT]) -> ModelT:
    """Extract the JSON object embedded in content and validate it.

    Validation is strict: types are not coerced and every required field
    must be present. Malformed JSON and schema violations both surface as
    pydantic.ValidationError.

    Args:
        content: Raw model output.
        schema: Model class describing the expected shape.

    Returns:
        Validated schema instance.
    """
    return schema.model_validate_json(first_json_object(content), strict=True)
