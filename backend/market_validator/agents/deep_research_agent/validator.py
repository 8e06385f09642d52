"""Final shape check on the assembled report."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from ...constants import REQUIRED_RESULT_KEYS
from ...errors import ShapeValidationError

_LIST_KEYS = ("behavioralHypotheses", "marketSignals")


def validate_minimal_shape(result: Any) -> None:
    """Raise ShapeValidationError unless *result* has the five report sections.

    Accepts a model (checked in its wire form) or a plain mapping. The two
    list sections must actually be lists.
    """
    data = result.model_dump(by_alias=True) if isinstance(result, BaseModel) else result
    if not isinstance(data, Mapping):
        raise ShapeValidationError("result", "invalid_type")

    for key in REQUIRED_RESULT_KEYS:
        if key not in data:
            raise ShapeValidationError(key, "missing_key")

    for key in _LIST_KEYS:
        if not isinstance(data[key], list):
            raise ShapeValidationError(key, "invalid_type")
