"""Character endpoints for the caller's own store (x-extension-id header)."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from valuetracker.storage import Store

from .deps import extension_store, require_ids
from .errors import ErrorEnvelopeRoute
from .models import UpsertCharacter

logger = logging.getLogger(__name__)

router = APIRouter(route_class=ErrorEnvelopeRoute)


@router.get("/characters")
async def list_characters(store: Store = Depends(extension_store)):
    """List all characters."""
    return store.get_all_characters()


@router.get("/characters/{character_id}")
async def get_character(character_id: str, store: Store = Depends(extension_store)):
    """A character with every instance and its data."""
    require_ids("Valid character ID is required", character_id)
    full = store.get_full_character(character_id)
    if full is None:
        raise HTTPException(404, "Character not found")
    return full


@router.post("/characters")
async def upsert_character(body: UpsertCharacter, store: Store = Depends(extension_store)):
    """Create a character or rename an existing one."""
    require_ids("Valid character ID is required", body.id)
    logger.debug("Upserting character %s in %s", body.id, store.extension_id)
    # An empty name means "leave the name alone"
    return store.upsert_character(body.id, body.name or None)


@router.delete("/characters/{character_id}")
async def delete_character(character_id: str, store: Store = Depends(extension_store)):
    """Delete a character, its instances, and their data."""
    require_ids("Valid character ID is required", character_id)
    if not store.delete_character(character_id):
        raise HTTPException(404, "Character not found")
    return {"success": True}


@router.get("/characters/{character_id}/instances")
async def list_character_instances(character_id: str, store: Store = Depends(extension_store)):
    """List a character's instances."""
    require_ids("Valid character ID is required", character_id)
    return store.get_instances_by_character(character_id)


@router.delete("/characters/{character_id}/instances")
async def delete_character_instances(character_id: str, store: Store = Depends(extension_store)):
    """Delete every instance of a character, keeping the character."""
    require_ids("Valid character ID is required", character_id)
    deleted = store.delete_instances_by_character(character_id)
    return {"success": True, "deletedCount": deleted}
