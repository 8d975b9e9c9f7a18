from fastapi import APIRouter

from tzmeta.api.metadata.routes import router as metadata_router
from tzmeta.api.nodes.routes import router as nodes_router
from tzmeta.api.uri.routes import router as uri_router

router = APIRouter()
router.include_router(uri_router)
router.include_router(metadata_router)
router.include_router(nodes_router)
