"""Metadata-URI parsing.

Turns a TZIP-16 metadata URI into a :data:`MetadataLocation` tree.  Only the
outer URI structure can make parsing fail; addresses and network names are
kept verbatim and reported by :func:`validate_location`.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import SplitResult, unquote, urlsplit

from tzmeta.core.errors import MalformedUri
from tzmeta.models.uri.location import (
    HashLocation,
    IpfsLocation,
    MetadataLocation,
    StorageLocation,
    ValidationFinding,
    WebLocation,
)
from tzmeta.services.uri.validator import validate_location

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "metadata"
SHA256_DIGEST_SIZE = 32

_BAD_PERCENT = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _pct_decode(uri: str, text: str) -> str:
    if _BAD_PERCENT.search(text):
        raise MalformedUri(uri, f"invalid percent-encoding in {text!r}")
    try:
        return unquote(text, errors="strict")
    except UnicodeDecodeError as exc:
        raise MalformedUri(uri, f"percent-encoded bytes are not UTF-8: {exc}") from exc


def _strip_slash(path: str) -> str:
    return path[1:] if path.startswith("/") else path


def _rest(uri: str, parts: SplitResult) -> str:
    """Everything after the authority: path, query and fragment verbatim."""
    rest = uri[len(parts.scheme) + 1:]
    if rest.startswith("//"):
        rest = rest[2 + len(parts.netloc):]
    return rest


def _parse_storage(uri: str, authority: str, path: str) -> StorageLocation:
    key = _pct_decode(uri, _strip_slash(path)) or DEFAULT_STORAGE_KEY
    if not authority:
        return StorageLocation(key=key)
    parts = authority.split(".")
    if any(part == "" for part in parts) or len(parts) > 2:
        raise MalformedUri(uri, f"invalid address field: {authority!r}")
    if len(parts) == 1:
        return StorageLocation(address=parts[0], key=key)
    return StorageLocation(address=parts[0], network=parts[1], key=key)


def _parse_hash(uri: str, authority: str, path: str) -> HashLocation:
    if not authority.startswith("0x"):
        raise MalformedUri(uri, f"sha256 hash must be 0x-prefixed hex, got {authority!r}")
    try:
        digest = bytes.fromhex(authority[2:])
    except ValueError as exc:
        raise MalformedUri(uri, f"invalid hex in sha256 hash {authority!r}") from exc
    if len(digest) != SHA256_DIGEST_SIZE:
        raise MalformedUri(
            uri, f"{authority} is not a valid SHA256 hash ({len(digest)} bytes)"
        )
    target_uri = _pct_decode(uri, _strip_slash(path))
    if not target_uri:
        raise MalformedUri(uri, "missing target URI")
    return HashLocation(expected_digest=digest, target=parse_location(target_uri))


def parse_location(text: str) -> MetadataLocation:
    """Parse *text* into a location tree without validating addresses."""
    uri = text.strip()
    try:
        parts = urlsplit(uri)
    except ValueError as exc:
        raise MalformedUri(uri, str(exc)) from exc

    scheme = parts.scheme
    if not scheme:
        raise MalformedUri(uri, "missing URI scheme")
    if scheme in ("http", "https"):
        return WebLocation(url=uri)
    if scheme == "ipfs":
        if not parts.netloc:
            raise MalformedUri(uri, "missing IPFS CID")
        return IpfsLocation(cid=parts.netloc, path=_rest(uri, parts))
    if scheme == "tezos-storage":
        return _parse_storage(uri, parts.netloc, _rest(uri, parts))
    if scheme == "sha256":
        return _parse_hash(uri, parts.netloc, _rest(uri, parts))
    raise MalformedUri(uri, f"unknown URI scheme: {scheme}")


def parse_uri(text: str) -> tuple[MetadataLocation, list[ValidationFinding]]:
    """Parse a metadata URI and report address/network findings alongside.

    Raises:
        MalformedUri: when the URI itself cannot be decoded.
    """
    location = parse_location(text)
    findings = validate_location(location)
    if findings:
        logger.debug("URI %r parsed with %d finding(s)", text, len(findings))
    return location, findings
