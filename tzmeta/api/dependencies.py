from __future__ import annotations

from tzmeta.services.metadata.service import MetadataService
from tzmeta.workers.node_pool import NodePool, node_pool


def get_pool() -> NodePool:
    """FastAPI dependency returning the process-wide node pool."""
    return node_pool


def get_service() -> MetadataService:
    """FastAPI dependency that builds a ``MetadataService`` for each request."""
    return MetadataService(node_pool)
