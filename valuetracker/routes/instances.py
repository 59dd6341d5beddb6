"""Instance endpoints for the caller's own store."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from valuetracker.storage import Store

from .deps import extension_store, require_ids
from .errors import ErrorEnvelopeRoute
from .models import UpsertInstance

logger = logging.getLogger(__name__)

router = APIRouter(route_class=ErrorEnvelopeRoute)


@router.get("/instances")
async def list_instances(
    character_id: str | None = Query(None, alias="characterId"),
    store: Store = Depends(extension_store),
):
    """List instances filtered by ?characterId=."""
    require_ids("Valid characterId query parameter is required", character_id)
    return store.get_instances_by_character(character_id)


@router.get("/instances/{instance_id}")
async def get_instance(instance_id: str, store: Store = Depends(extension_store)):
    """An instance with its data."""
    require_ids("Valid instance ID is required", instance_id)
    full = store.get_full_instance(instance_id)
    if full is None:
        raise HTTPException(404, "Instance not found")
    return full


@router.post("/instances")
async def upsert_instance(body: UpsertInstance, store: Store = Depends(extension_store)):
    """Create an instance under an existing character, or update one."""
    require_ids("Valid instance ID and character ID are required", body.id, body.character_id)
    logger.debug("Upserting instance %s in %s", body.id, store.extension_id)
    return store.upsert_instance(body.id, body.character_id, body.name or None)


@router.delete("/instances/{instance_id}")
async def delete_instance(instance_id: str, store: Store = Depends(extension_store)):
    """Delete an instance and its data."""
    require_ids("Valid instance ID is required", instance_id)
    if not store.delete_instance(instance_id):
        raise HTTPException(404, "Instance not found")
    return {"success": True}
