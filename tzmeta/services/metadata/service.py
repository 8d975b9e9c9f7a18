from __future__ import annotations

import logging
from typing import Optional, Union

from tzmeta.core.errors import MalformedUri
from tzmeta.core.hashes import check_b58_kt1_hash
from tzmeta.models.metadata.classified import ClassifiedMetadata
from tzmeta.models.metadata.exploration import Exploration, Resolution
from tzmeta.models.uri.location import MetadataLocation, StorageLocation, ValidationFinding
from tzmeta.services.metadata.classifier import classify
from tzmeta.services.metadata.content import parse_metadata
from tzmeta.services.uri.parser import parse_uri
from tzmeta.services.uri.resolver import ContractContext, MetadataResolver
from tzmeta.workers.node_pool import NodePool

logger = logging.getLogger(__name__)

#: Big-map key holding the metadata URI of a TZIP-16 contract.
ROOT_KEY = ""


def _is_contract_address(text: str) -> bool:
    try:
        check_b58_kt1_hash(text)
    except ValueError:
        return False
    return True


class MetadataService:
    """Business logic for metadata URI resolution and classification."""

    def __init__(self, pool: NodePool) -> None:
        self._pool = pool

    def parse(self, uri: str) -> tuple[MetadataLocation, list[ValidationFinding]]:
        return parse_uri(uri)

    async def resolve(self, uri: str, contract: Optional[str] = None) -> Resolution:
        """Parse *uri* and resolve it to raw bytes.

        *contract* is the current contract for storage URIs without address.

        Raises:
            MalformedUri: the URI cannot be decoded.
            ResolutionError: propagated from the resolver.
        """
        location, findings = parse_uri(uri)
        logs: list[str] = []
        resolver = MetadataResolver(self._pool, ContractContext(contract), log=logs.append)
        content = await resolver.resolve(location)
        logger.info("Resolved %s (%d bytes)", uri, len(content))
        return Resolution(location=location, findings=findings, content=content, logs=logs)

    def classify(self, content: Union[str, bytes]) -> ClassifiedMetadata:
        """Parse metadata JSON and classify it.

        Raises:
            InvalidMetadata: the content is not TZIP-16 metadata JSON.
        """
        return classify(parse_metadata(content))

    async def explore(self, text: str) -> Exploration:
        """Resolve and classify a ``KT1`` address or a metadata URI.

        For an address, the metadata URI is first read from the root key of
        the contract's ``%metadata`` big-map, and the address becomes the
        current contract for the rest of the resolution.
        """
        text = text.strip()
        contract: Optional[str] = None
        logs: list[str] = []
        uri = text
        if _is_contract_address(text):
            contract = text
            resolver = MetadataResolver(self._pool, ContractContext(contract), log=logs.append)
            raw_uri = await resolver.resolve(StorageLocation(address=contract, key=ROOT_KEY))
            try:
                uri = raw_uri.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise MalformedUri(raw_uri.hex(), "metadata URI is not UTF-8") from exc
            logs.append(f"Metadata URI of {contract}: {uri!r}")

        location, findings = parse_uri(uri)
        resolver = MetadataResolver(self._pool, ContractContext(contract), log=logs.append)
        content = await resolver.resolve(location)
        classified = self.classify(content)
        logger.info("Explored %s: %s", text, classified.kind)
        return Exploration(
            input=text,
            contract=contract,
            metadata_uri=uri,
            location=location,
            findings=findings,
            logs=logs,
            classified=classified,
        )
