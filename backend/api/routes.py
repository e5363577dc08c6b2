"""Read-only REST routes for inspecting the signaling server."""

from fastapi import APIRouter, Request

router = APIRouter(prefix="/api")


@router.get("/devices")
async def list_devices(request: Request):
    """Return the currently online devices."""
    devices = await request.app.state.registry.list_devices()
    return {"devices": [d.to_wire() for d in devices]}


@router.get("/health")
async def health(request: Request):
    counts = await request.app.state.registry.counts()
    return {"status": "ok", **counts}
