from __future__ import annotations

from typing import Iterable, Optional

from tzmeta.core.config import settings
from tzmeta.core.hashes import check_b58_chain_id_hash, check_b58_kt1_hash
from tzmeta.models.uri.location import (
    HashLocation,
    MetadataLocation,
    StorageLocation,
    ValidationFinding,
)


def validate_address(address: str) -> Optional[ValidationFinding]:
    """Structural check of a ``KT1`` contract address."""
    try:
        check_b58_kt1_hash(address)
    except ValueError as exc:
        return ValidationFinding(kind="address", source_text=address, message=str(exc))
    return None


def validate_network(
    network: str, known_networks: Optional[Iterable[str]] = None
) -> Optional[ValidationFinding]:
    """Accept a well-known network name or a structurally valid chain id."""
    known = settings.known_networks if known_networks is None else known_networks
    if network in known:
        return None
    try:
        check_b58_chain_id_hash(network)
    except ValueError as exc:
        return ValidationFinding(kind="network", source_text=network, message=str(exc))
    return None


def validate_location(location: MetadataLocation) -> list[ValidationFinding]:
    """Collect findings for every storage address and network in *location*."""
    findings: list[ValidationFinding] = []
    while isinstance(location, HashLocation):
        location = location.target
    if isinstance(location, StorageLocation):
        if location.address is not None:
            finding = validate_address(location.address)
            if finding is not None:
                findings.append(finding)
        if location.network is not None:
            finding = validate_network(location.network)
            if finding is not None:
                findings.append(finding)
    return findings
