"""Exception hierarchy for URI parsing, metadata parsing and resolution.

Every error carries the details a caller needs to display it (offending URL,
expected vs. actual digest, candidate big-map ids …) as attributes, and a
human-readable ``str()``.

Node health-probe failures are *not* errors: they are recorded as
``NonResponsive`` statuses by the node pool.
"""

from __future__ import annotations

from typing import Iterable, Optional


def oxford_join(items: Iterable[object]) -> str:
    """Join *items* for display: ``a``, ``a and b``, ``a, b, and c``."""
    parts = [str(item) for item in items]
    if len(parts) <= 1:
        return "".join(parts)
    if len(parts) == 2:
        return f"{parts[0]} and {parts[1]}"
    return ", ".join(parts[:-1]) + f", and {parts[-1]}"


class MetadataError(Exception):
    """Base class for all errors raised by this package."""


class MalformedUri(MetadataError):
    """The outer structure of a metadata URI cannot be decoded."""

    def __init__(self, uri: str, reason: str) -> None:
        self.uri = uri
        self.reason = reason
        super().__init__(f"Malformed URI {uri!r}: {reason}")


class InvalidMetadata(MetadataError):
    """Resolved content is not a valid TZIP-16 metadata document."""


class ResolutionError(MetadataError):
    """Base class for failures that abort a ``resolve`` call."""


class FetchFailed(ResolutionError):
    """An HTTP GET did not return exactly 200."""

    def __init__(
        self, url: str, reason: str = "", status: Optional[int] = None
    ) -> None:
        self.url = url
        self.reason = reason
        self.status = status
        if status is not None:
            message = f"Getting {url!r} returned code: {status}"
        else:
            message = f"Getting {url!r} failed: {reason}"
        super().__init__(message)


class DigestMismatch(ResolutionError):
    def __init__(self, expected: bytes, actual: bytes) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Hash of content {actual.hex()} is different from expected {expected.hex()}"
        )


class NoMetadataBigMap(ResolutionError):
    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Contract {address} has no valid %metadata big-map!")


class AmbiguousMetadataBigMap(ResolutionError):
    def __init__(self, address: str, ids: list[int]) -> None:
        self.address = address
        self.ids = ids
        super().__init__(
            f"Contract {address} has too many %metadata big-maps: {oxford_join(ids)}"
        )


class BigMapKeyNotFound(ResolutionError):
    def __init__(self, big_map_id: int, key: str, detail: str = "") -> None:
        self.big_map_id = big_map_id
        self.key = key
        self.detail = detail
        message = f"Key {key!r} not found in big-map {big_map_id}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MissingContractContext(ResolutionError):
    def __init__(self) -> None:
        super().__init__("Missing current contract")


class NetworkNotImplemented(ResolutionError):
    """Storage locations on an explicit network are not supported."""

    def __init__(self, network: str) -> None:
        self.network = network
        super().__init__(f"Not Implemented: storage uri with network = {network}")


class NoNodeKnowsContract(ResolutionError):
    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Cannot find a node that knows about {address!r}")


class MichelineError(ResolutionError):
    """A node returned a storage or script that is not usable Micheline."""
