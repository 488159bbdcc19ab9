"""Structural parsing of inbound claim payloads.

Runs before any business rule: the body must be JSON and must fit the expected
shape. Failures raise StructuralError, which callers turn into a 400 response
without evaluating business rules.
"""

from __future__ import annotations

import json
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

ERROR_JSON = "ERROR_JSON"
ERROR_UNKNOWN = "ERROR_UNKNOWN"

ModelT = TypeVar("ModelT", bound=BaseModel)


class StructuralError(Exception):
    """The payload cannot be parsed into the expected shape.

    Attributes:
        code: ERROR_JSON when well-formed JSON has the wrong shape,
            ERROR_UNKNOWN when the body cannot be read as JSON at all.
        message: Human-readable description listing every failing path.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def _format_loc(loc: tuple[int | str, ...]) -> str:
    return "/" + "/".join(str(part) for part in loc)


def parse_payload(body: bytes | str, model: type[ModelT]) -> ModelT:
    """Parse a raw request body into a pydantic model.

    Args:
        body: Raw request body.
        model: Target model class.

    Returns:
        The parsed model instance.

    Raises:
        StructuralError: If the body is not JSON or does not fit the model.
    """
    try:
        text = body.decode("utf-8") if isinstance(body, bytes) else body
    except UnicodeDecodeError as e:
        raise StructuralError(ERROR_UNKNOWN, f"Could not parse payload due to {e}.") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise StructuralError(ERROR_UNKNOWN, f"Could not parse payload due to {e}.") from e

    if not isinstance(data, dict):
        raise StructuralError(
            ERROR_JSON,
            f"Invalid payload: Parsing failed due to expected a JSON object, "
            f"got {type(data).__name__}.",
        )

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        details = [
            f"at path {_format_loc(error['loc'])} with {error['msg']}" for error in e.errors()
        ]
        raise StructuralError(
            ERROR_JSON, f"Invalid payload: Parsing failed due to {', and '.join(details)}."
        ) from e
