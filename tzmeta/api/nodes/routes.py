from __future__ import annotations

from fastapi import APIRouter, Depends

from tzmeta.api.dependencies import get_pool
from tzmeta.models.common import AcceptedResponse
from tzmeta.models.nodes.schemas import NodeStatusResponse
from tzmeta.workers.node_pool import NodePool

router = APIRouter(prefix="/nodes", tags=["nodes"])


@router.get(
    "",
    response_model=list[NodeStatusResponse],
    summary="Latest health status of every chain node",
)
async def get_nodes(pool: NodePool = Depends(get_pool)) -> list[NodeStatusResponse]:
    """Status rows in pool order; reading also makes sure polling runs."""
    pool.ensure_started()
    return [NodeStatusResponse.from_snapshot(node, snapshot) for node, snapshot in pool.snapshot()]


@router.post(
    "/wake-up",
    response_model=AcceptedResponse,
    summary="Ask the poller for an immediate sweep",
)
async def post_wake_up(pool: NodePool = Depends(get_pool)) -> AcceptedResponse:
    pool.ensure_started()
    pool.wake_up()
    return AcceptedResponse(message="Node status update requested.")
