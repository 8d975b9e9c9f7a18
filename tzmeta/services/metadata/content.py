from __future__ import annotations

import json
from typing import Union

from pydantic import ValidationError

from tzmeta.core.errors import InvalidMetadata
from tzmeta.models.metadata.document import MetadataDocument


def parse_metadata(content: Union[str, bytes]) -> MetadataDocument:
    """Parse TZIP-16 metadata JSON.

    Raises:
        InvalidMetadata: not JSON, not an object, or fields of the wrong type.
    """
    try:
        value = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as exc:
        raise InvalidMetadata(f"Metadata is not valid JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise InvalidMetadata(
            f"Metadata must be a JSON object, got {type(value).__name__}"
        )
    try:
        return MetadataDocument.model_validate(value)
    except ValidationError as exc:
        raise InvalidMetadata(f"Invalid metadata content: {exc}") from exc
