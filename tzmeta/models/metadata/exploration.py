from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from tzmeta.models.metadata.classified import ClassifiedMetadata
from tzmeta.models.uri.location import MetadataLocation, ValidationFinding


class Resolution(BaseModel):
    """Outcome of resolving one metadata URI."""

    location: MetadataLocation
    findings: list[ValidationFinding]
    content: bytes
    logs: list[str]


class Exploration(BaseModel):
    """Outcome of exploring a contract address or metadata URI.

    ``metadata_uri`` is the URI read from the contract when the input was
    a ``KT1`` address, and the input itself otherwise.
    """

    input: str
    contract: Optional[str] = None
    metadata_uri: str
    location: MetadataLocation
    findings: list[ValidationFinding]
    logs: list[str]
    classified: ClassifiedMetadata
