"""Liveness endpoints used by client extensions to detect the plugin."""

from fastapi import APIRouter, Response

from .errors import ErrorEnvelopeRoute
from .models import PingBody

router = APIRouter(route_class=ErrorEnvelopeRoute)


@router.post("/probe", status_code=204)
async def probe():
    """Answer 204 while the plugin is loaded."""
    return Response(status_code=204)


@router.post("/ping")
async def ping(body: PingBody):
    return {"message": f"Pong! {body.message}"}
