"""Instance data bag endpoints: single keys, whole-bag override/merge/remove."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from valuetracker.storage import Store

from .deps import extension_store, require_ids, require_key
from .errors import ErrorEnvelopeRoute
from .models import DataEntryBody, RemoveKeysBody

logger = logging.getLogger(__name__)

router = APIRouter(route_class=ErrorEnvelopeRoute)

_MISSING = object()


def _check_keys(values: dict[str, Any]) -> None:
    for key in values:
        require_key(key, "Data keys must be non-empty strings")


@router.get("/instances/{instance_id}/data")
async def get_data(instance_id: str, store: Store = Depends(extension_store)):
    """The whole data bag."""
    require_ids("Valid instance ID is required", instance_id)
    return store.get_data(instance_id)


@router.get("/instances/{instance_id}/data/{key}")
async def get_data_value(instance_id: str, key: str, store: Store = Depends(extension_store)):
    """One value as {key: value}; {} when the key was never written."""
    require_ids("Valid instance ID is required", instance_id)
    require_key(key)
    value = store.get_data_value(instance_id, key, _MISSING)
    if value is _MISSING:
        return {}
    return {key: value}


@router.api_route("/instances/{instance_id}/data", methods=["POST", "PUT"])
async def upsert_data(instance_id: str, body: DataEntryBody, store: Store = Depends(extension_store)):
    """Write one key."""
    require_ids("Valid instance ID is required", instance_id)
    require_key(body.key)
    store.upsert_data(instance_id, body.key, body.value)
    logger.debug("Set %s.%s in %s", instance_id, body.key, store.extension_id)
    return {"success": True, "key": body.key, "value": body.value}


@router.delete("/instances/{instance_id}/data/{key}")
async def delete_data_value(instance_id: str, key: str, store: Store = Depends(extension_store)):
    """Remove one key."""
    require_ids("Valid instance ID is required", instance_id)
    require_key(key)
    if not store.delete_data_value(instance_id, key):
        raise HTTPException(404, "Data key not found")
    return {"success": True}


@router.delete("/instances/{instance_id}/data")
async def clear_data(instance_id: str, store: Store = Depends(extension_store)):
    """Empty the data bag."""
    require_ids("Valid instance ID is required", instance_id)
    if not store.clear_instance_data(instance_id):
        raise HTTPException(404, "Instance not found")
    return {"success": True}


@router.put("/instances/{instance_id}/data/override")
async def override_data(
    instance_id: str,
    values: dict[str, Any] = Body(...),
    store: Store = Depends(extension_store),
):
    """Replace the bag with exactly the given keys."""
    require_ids("Valid instance ID is required", instance_id)
    _check_keys(values)
    store.replace_data(instance_id, values)
    logger.debug("Overrode %s with %d keys in %s", instance_id, len(values), store.extension_id)
    return {"success": True, "message": "Instance data overridden successfully"}


@router.put("/instances/{instance_id}/data/merge")
async def merge_data(
    instance_id: str,
    values: dict[str, Any] = Body(...),
    store: Store = Depends(extension_store),
):
    """Write the given keys, keep the rest."""
    require_ids("Valid instance ID is required", instance_id)
    _check_keys(values)
    store.merge_data(instance_id, values)
    logger.debug("Merged %d keys into %s in %s", len(values), instance_id, store.extension_id)
    return {"success": True, "message": "Instance data merged successfully"}


@router.put("/instances/{instance_id}/data/remove")
async def remove_data_keys(
    instance_id: str, body: RemoveKeysBody, store: Store = Depends(extension_store)
):
    """Delete the listed keys. Unknown keys are ignored."""
    require_ids("Valid instance ID is required", instance_id)
    keys = [key for key in body.keys if key.strip()]
    removed = store.delete_data_values(instance_id, keys)
    return {"success": True, "removedCount": removed}
