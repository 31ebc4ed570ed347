"""
Diagnostic endpoint exposing the compiled journey graph.

GET <inquiry_path> returns every compiled step with all internal fields.
Each call serializes a fresh copy, so clients cannot affect the registry.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from journey_map.config.settings import DEFAULT_INQUIRY_PATH

if TYPE_CHECKING:
    from journey_map.map.registry import JourneyRegistry

logger = logging.getLogger(__name__)


def create_inquiry_router(
    registry: "JourneyRegistry",
    inquiry_path: str = DEFAULT_INQUIRY_PATH,
) -> APIRouter:
    """Build a router serving the journey map at `inquiry_path`."""
    router = APIRouter(tags=["journey-map"])

    @router.get(inquiry_path)
    async def get_journey_map() -> JSONResponse:
        """Return the full compiled journey graph."""
        return JSONResponse(content=jsonable_encoder(registry.get_map()))

    return router
