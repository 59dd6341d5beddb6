"""Extension (de)registration. The extension id comes from the body."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from valuetracker.storage import Registry, Store

from .deps import get_registry, require_ids
from .errors import ErrorEnvelopeRoute
from .models import DeregisterBody, RegisterBody

logger = logging.getLogger(__name__)

router = APIRouter(route_class=ErrorEnvelopeRoute)


@router.post("/register")
async def register_extension(body: RegisterBody, registry: Registry = Depends(get_registry)):
    """Create (or replace) the database for an extension."""
    require_ids("Valid extension ID is required", body.extension_id)
    if "db_path" in body.model_fields_set:
        logger.warning("Refused registration of %s: client supplied dbPath", body.extension_id)
        raise HTTPException(400, "dbPath parameter not allowed for security reasons")
    store = Store.create(body.extension_id)
    registry.register_with(body.extension_id, store)
    return {"success": True, "message": f"Extension {body.extension_id} registered successfully"}


@router.delete("/register")
async def deregister_extension(body: DeregisterBody, registry: Registry = Depends(get_registry)):
    """Drop an extension's database from the registry and close it."""
    require_ids("Valid extension ID is required", body.extension_id)
    store = registry.deregister(body.extension_id)
    if store is not None:
        store.close()
    return {"success": True, "message": f"Extension {body.extension_id} deregistered successfully"}
