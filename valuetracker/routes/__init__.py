"""FastAPI endpoints mounted under the host's plugin prefix.

Endpoint groups: probe/ping, registration, characters, instances, instance
data, and read-only cross-extension views. Own-data endpoints pick the store
from the x-extension-id header; cross-extension endpoints take the extension
id from the path; registration takes it from the body.

Every route uses ErrorEnvelopeRoute, so failures are {"error": message}.
"""

from fastapi import APIRouter

from .characters import router as characters_router
from .cross_extension import router as cross_extension_router
from .data import router as data_router
from .instances import router as instances_router
from .probe import router as probe_router
from .register import router as register_router

router = APIRouter()
router.include_router(probe_router)
router.include_router(register_router)
router.include_router(characters_router)
router.include_router(instances_router)
router.include_router(data_router)
router.include_router(cross_extension_router)
