from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from tzmeta.api.dependencies import get_service
from tzmeta.core.errors import MalformedUri, ResolutionError
from tzmeta.models.common import ERROR_RESPONSES
from tzmeta.models.uri.schemas import (
    ParseResponse,
    ResolveRequest,
    ResolveResponse,
    UriRequest,
)
from tzmeta.services.metadata.service import MetadataService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uri", tags=["uri"])


# ---------------------------------------------------------------------------
# POST /uri/parse
# ---------------------------------------------------------------------------


@router.post(
    "/parse",
    response_model=ParseResponse,
    responses=ERROR_RESPONSES,
    summary="Parse a TZIP-16 metadata URI",
)
async def post_parse(
    request: UriRequest,
    service: MetadataService = Depends(get_service),
) -> ParseResponse:
    """Return the location tree of a URI with its address/network findings.

    - **200** — parsed; findings are advisory
    - **400** — the URI itself cannot be decoded
    """
    try:
        location, findings = service.parse(request.uri)
    except MalformedUri as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return ParseResponse.build(location, findings)


# ---------------------------------------------------------------------------
# POST /uri/resolve
# ---------------------------------------------------------------------------


@router.post(
    "/resolve",
    response_model=ResolveResponse,
    responses=ERROR_RESPONSES,
    summary="Fetch the content a metadata URI points to",
)
async def post_resolve(
    request: ResolveRequest,
    service: MetadataService = Depends(get_service),
) -> ResolveResponse:
    """Resolve the URI and return the content with the resolution trace.

    - **200** — content fetched and, for sha256 URIs, verified
    - **400** — malformed URI or failed resolution (fetch, digest, storage …)
    - **500** — unexpected failure
    """
    try:
        resolution = await service.resolve(request.uri, contract=request.contract)
    except MalformedUri as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ResolutionError as exc:
        logger.warning("POST /uri/resolve failed for %s: %s", request.uri, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.exception("POST /uri/resolve unexpected error for %s", request.uri)
        raise HTTPException(status_code=500, detail=str(exc))
    return ResolveResponse.from_resolution(resolution)
