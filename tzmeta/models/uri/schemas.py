from __future__ import annotations

import hashlib
from typing import Optional

from pydantic import BaseModel

from tzmeta.models.metadata.exploration import Resolution
from tzmeta.models.uri.location import (
    MetadataLocation,
    ValidationFinding,
    needs_context_address,
)


class UriRequest(BaseModel):
    """Request body for POST /uri/parse."""

    uri: str


class ResolveRequest(BaseModel):
    """Request body for POST /uri/resolve.

    ``contract`` is used for ``tezos-storage`` URIs that omit the address.
    """

    uri: str
    contract: Optional[str] = None


class ParseResponse(BaseModel):
    location: MetadataLocation
    findings: list[ValidationFinding]
    needs_context_address: bool

    @classmethod
    def build(
        cls, location: MetadataLocation, findings: list[ValidationFinding]
    ) -> ParseResponse:
        return cls(
            location=location,
            findings=findings,
            needs_context_address=needs_context_address(location),
        )


class ResolveResponse(BaseModel):
    """Resolved content; ``text`` is set when the bytes are valid UTF-8."""

    location: MetadataLocation
    findings: list[ValidationFinding]
    size: int
    sha256: str
    content_hex: str
    text: Optional[str] = None
    logs: list[str]

    @classmethod
    def from_resolution(cls, resolution: Resolution) -> ResolveResponse:
        content = resolution.content
        try:
            text: Optional[str] = content.decode("utf-8")
        except UnicodeDecodeError:
            text = None
        return cls(
            location=resolution.location,
            findings=resolution.findings,
            size=len(content),
            sha256=hashlib.sha256(content).hexdigest(),
            content_hex=content.hex(),
            text=text,
            logs=resolution.logs,
        )
