from fastapi import APIRouter

from app.api.routing import router as routing_router

router = APIRouter(prefix="/api")
router.include_router(routing_router)
