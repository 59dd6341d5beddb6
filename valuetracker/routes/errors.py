"""Uniform {"error": message} responses for every plugin endpoint.

The route class travels with the router, so the envelope applies no matter
which host application the routes are mounted on.
"""

import logging
from collections.abc import Callable, Coroutine
from typing import Any

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import Response

from valuetracker.storage import InvalidArgumentError, StoreClosedError

logger = logging.getLogger(__name__)

_PARAM_SOURCES = {"body", "query", "path", "header"}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def describe_validation_error(exc: RequestValidationError) -> str:
    """Collapse pydantic errors into one readable sentence."""
    missing: list[str] = []
    problems: list[str] = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in _PARAM_SOURCES:
            loc = loc[1:]
        field = ".".join(loc)
        if err.get("type") == "missing":
            if not field:
                return "Request body is required"
            missing.append(field)
        else:
            problems.append(f"{field or 'body'}: {err.get('msg')}")
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    return f"Invalid request body: {'; '.join(problems)}"


class ErrorEnvelopeRoute(APIRoute):
    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()

        async def envelope(request: Request) -> Response:
            try:
                return await handler(request)
            except HTTPException as exc:
                return error_response(exc.status_code, str(exc.detail))
            except RequestValidationError as exc:
                return error_response(400, describe_validation_error(exc))
            except InvalidArgumentError as exc:
                return error_response(400, str(exc))
            except StoreClosedError as exc:
                logger.warning("%s %s hit a closed store", request.method, request.url.path)
                return error_response(500, str(exc))
            except Exception as exc:
                logger.exception("%s %s failed", request.method, request.url.path)
                return error_response(500, str(exc) or "Internal server error")

        return envelope
