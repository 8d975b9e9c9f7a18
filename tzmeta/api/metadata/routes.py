from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from tzmeta.api.dependencies import get_service
from tzmeta.core.errors import InvalidMetadata, MalformedUri, ResolutionError
from tzmeta.models.common import ERROR_RESPONSES
from tzmeta.models.metadata.classified import ClassifiedMetadata
from tzmeta.models.metadata.exploration import Exploration
from tzmeta.models.metadata.schemas import ClassifyRequest, ExploreRequest
from tzmeta.services.metadata.service import MetadataService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metadata", tags=["metadata"])


# ---------------------------------------------------------------------------
# POST /metadata/classify
# ---------------------------------------------------------------------------


@router.post(
    "/classify",
    response_model=ClassifiedMetadata,
    responses=ERROR_RESPONSES,
    summary="Classify metadata JSON as TZIP-16 or TZIP-12",
)
async def post_classify(
    request: ClassifyRequest,
    service: MetadataService = Depends(get_service),
) -> ClassifiedMetadata:
    """- **200** — classified
    - **422** — not TZIP-16 metadata JSON
    """
    try:
        return service.classify(request.content)
    except InvalidMetadata as exc:
        raise HTTPException(status_code=422, detail=str(exc))


# ---------------------------------------------------------------------------
# POST /metadata/explore
# ---------------------------------------------------------------------------


@router.post(
    "/explore",
    response_model=Exploration,
    responses=ERROR_RESPONSES,
    summary="Resolve and classify the metadata of a contract or URI",
)
async def post_explore(
    request: ExploreRequest,
    service: MetadataService = Depends(get_service),
) -> Exploration:
    """Accepts a ``KT1`` address or a metadata URI.

    - **200** — metadata resolved, parsed and classified
    - **400** — malformed URI or failed resolution
    - **422** — the resolved content is not TZIP-16 metadata JSON
    - **500** — unexpected failure
    """
    try:
        return await service.explore(request.input)
    except (MalformedUri, ResolutionError) as exc:
        logger.warning("POST /metadata/explore failed for %s: %s", request.input, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except InvalidMetadata as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except Exception as exc:
        logger.exception("POST /metadata/explore unexpected error for %s", request.input)
        raise HTTPException(status_code=500, detail=str(exc))
