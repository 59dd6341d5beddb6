"""Read-only views into other extensions' stores, selected by path."""

from fastapi import APIRouter, Depends, HTTPException

from valuetracker.storage import CrossExtensionReader

from .deps import get_reader, require_ids, require_key
from .errors import ErrorEnvelopeRoute

router = APIRouter(prefix="/cross-extension", route_class=ErrorEnvelopeRoute)

_MISSING = object()


@router.get("/characters/{extension_id}")
async def list_characters(extension_id: str, reader: CrossExtensionReader = Depends(get_reader)):
    require_ids("Valid extension ID is required", extension_id)
    return reader.get_all_characters(extension_id)


@router.get("/characters/{extension_id}/{character_id}")
async def get_character(
    extension_id: str, character_id: str, reader: CrossExtensionReader = Depends(get_reader)
):
    require_ids("Valid extension ID and character ID are required", extension_id, character_id)
    full = reader.get_full_character(extension_id, character_id)
    if full is None:
        raise HTTPException(404, f"Character not found in extension {extension_id}")
    return full


@router.get("/characters/{extension_id}/{character_id}/instances")
async def list_character_instances(
    extension_id: str, character_id: str, reader: CrossExtensionReader = Depends(get_reader)
):
    require_ids("Valid extension ID and character ID are required", extension_id, character_id)
    return reader.get_instances_by_character(extension_id, character_id)


@router.get("/instances/{extension_id}/{instance_id}")
async def get_instance(
    extension_id: str, instance_id: str, reader: CrossExtensionReader = Depends(get_reader)
):
    require_ids("Valid extension ID and instance ID are required", extension_id, instance_id)
    full = reader.get_full_instance(extension_id, instance_id)
    if full is None:
        raise HTTPException(404, f"Instance not found in extension {extension_id}")
    return full


@router.get("/instances/{extension_id}/{instance_id}/data")
async def get_instance_data(
    extension_id: str, instance_id: str, reader: CrossExtensionReader = Depends(get_reader)
):
    require_ids("Valid extension ID and instance ID are required", extension_id, instance_id)
    return reader.get_instance_data(extension_id, instance_id)


@router.get("/instances/{extension_id}/{instance_id}/data/{key}")
async def get_instance_data_value(
    extension_id: str,
    instance_id: str,
    key: str,
    reader: CrossExtensionReader = Depends(get_reader),
):
    require_ids("Valid extension ID and instance ID are required", extension_id, instance_id)
    require_key(key)
    value = reader.get_data_value(extension_id, instance_id, key, _MISSING)
    if value is _MISSING:
        return {}
    return {key: value}
