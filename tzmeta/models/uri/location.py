"""Parsed TZIP-16 metadata locations.

A location is a small immutable tree: ``HashLocation`` wraps another
location whose content must match a SHA-256 digest; every other kind is a
leaf.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class _Location(BaseModel):
    model_config = ConfigDict(frozen=True)


class WebLocation(_Location):
    kind: Literal["web"] = "web"
    url: str

    def to_uri(self) -> str:
        return self.url


class IpfsLocation(_Location):
    kind: Literal["ipfs"] = "ipfs"
    cid: str
    path: str = ""

    def to_uri(self) -> str:
        return f"ipfs://{self.cid}{self.path}"


class StorageLocation(_Location):
    kind: Literal["storage"] = "storage"
    network: Optional[str] = None
    address: Optional[str] = None
    key: str = "metadata"

    def to_uri(self) -> str:
        """Serialize back to a ``tezos-storage`` URI.

        The empty key has no URI form of its own: it prints as
        ``tezos-storage:/``, which parses to the default ``metadata`` key.
        The root key is only reached by building the location directly.
        """
        authority = ""
        if self.address is not None:
            authority = self.address
            if self.network is not None:
                authority = f"{authority}.{self.network}"
            authority = f"//{authority}"
        return f"tezos-storage:{authority}/{quote(self.key, safe='')}"


class HashLocation(_Location):
    kind: Literal["hash"] = "hash"
    algorithm: Literal["sha256"] = "sha256"
    expected_digest: bytes
    target: MetadataLocation

    @field_serializer("expected_digest")
    def _digest_as_hex(self, value: bytes) -> str:
        return value.hex()

    def to_uri(self) -> str:
        return (
            f"sha256://0x{self.expected_digest.hex()}/"
            f"{quote(self.target.to_uri(), safe='')}"
        )


MetadataLocation = Annotated[
    Union[WebLocation, IpfsLocation, StorageLocation, HashLocation],
    Field(discriminator="kind"),
]

HashLocation.model_rebuild()


class ValidationFinding(BaseModel):
    """Non-blocking problem found in a parsed location."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["address", "network"]
    source_text: str
    message: str


def needs_context_address(location: MetadataLocation) -> bool:
    """Whether resolving *location* requires a current-contract context."""
    if isinstance(location, HashLocation):
        return needs_context_address(location.target)
    return isinstance(location, StorageLocation) and location.address is None
