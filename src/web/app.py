"""FastAPI application for the volume and collection API.

Domain errors are mapped to HTTP status codes here, at the boundary,
from their error kind rather than their message text.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.constants import API_BASE_PATH, APP_VERSION
from core.errors import ErrorKind, IpelfsError
from core.logging_config import get_logger
from volume.client import IpelfsClient
from web.models import (
    ApiResponse,
    CollectionCreateRequest,
    CollectionDeleteRequest,
    PathRequest,
    TransferRequest,
    ValueRequest,
)

_LOGGER = get_logger(__name__)

ERROR_STATUS_CODES: dict[ErrorKind, int] = {
    "validation": 400,
    "not_found": 404,
    "conflict": 409,
    "device_unmounted": 422,
    "io": 500,
    "config": 500,
    "startup": 500,
}


def create_app(client: IpelfsClient) -> FastAPI:
    """Build the API bound to one SDK client."""
    app = FastAPI(title="ipelfs", version=APP_VERSION)
    app.state.client = client
    app.include_router(_build_router(client), prefix=API_BASE_PATH)

    @app.exception_handler(IpelfsError)
    async def handle_ipelfs_error(request: Request, error: IpelfsError) -> JSONResponse:
        status_code = ERROR_STATUS_CODES[error.kind]
        _LOGGER.warning(
            "request_failed",
            path=request.url.path,
            kind=error.kind,
            status_code=status_code,
            error=error.message,
        )
        body = ApiResponse.fail(error.message, kind=error.kind, **error.context)
        return JSONResponse(status_code=status_code, content=body.model_dump())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request,
        error: RequestValidationError,
    ) -> JSONResponse:
        details = error.errors()
        fields = [_describe_location(detail.get("loc", ())) for detail in details]
        message = "; ".join(
            f"{field}: {detail.get('msg', 'invalid')}" for field, detail in zip(fields, details)
        )
        _LOGGER.warning("request_rejected", path=request.url.path, fields=fields)
        body = ApiResponse.fail(f"Invalid request: {message}", kind="validation", fields=fields)
        return JSONResponse(status_code=ERROR_STATUS_CODES["validation"], content=body.model_dump())

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, error: Exception) -> JSONResponse:
        _LOGGER.error(
            "request_crashed",
            path=request.url.path,
            error_type=type(error).__name__,
            error=str(error),
        )
        body = ApiResponse.fail(f"Internal error: {type(error).__name__}", kind="io")
        return JSONResponse(status_code=ERROR_STATUS_CODES["io"], content=body.model_dump())

    return app


def _build_router(client: IpelfsClient) -> APIRouter:
    router = APIRouter()

    @router.get("/volumes")
    def list_volumes() -> ApiResponse:
        volumes = [
            {"id": volume_id, "path": path}
            for volume_id, path in client.volumes.list_volumes().items()
        ]
        meta = {"count": len(volumes), "timestamp": datetime.now().astimezone().isoformat()}
        return ApiResponse.ok({"volumes": volumes}, meta)

    @router.post("/volumes/create")
    def create_volume(body: PathRequest) -> ApiResponse:
        volume_id = client.volumes.create(body.path)
        return ApiResponse.ok({"id": volume_id})

    @router.post("/volumes/add")
    def add_volume(body: PathRequest) -> ApiResponse:
        volume_id = client.volumes.add(body.path)
        return ApiResponse.ok({"id": volume_id})

    @router.post("/volumes/remove")
    def remove_volume(body: ValueRequest) -> ApiResponse:
        volume_id = client.volumes.remove(body.value)
        return ApiResponse.ok({"id": volume_id})

    @router.post("/volumes/delete")
    def delete_volume(body: ValueRequest) -> ApiResponse:
        volume_id = client.volumes.delete(body.value)
        return ApiResponse.ok(
            {"id": volume_id},
            {"hint": "You may now manage or wipe the volume manually"},
        )

    @router.get("/volumes/{volume_id}/info")
    def volume_info(volume_id: str) -> ApiResponse:
        return ApiResponse.ok(client.volumes.info(volume_id))

    @router.get("/volumes/{volume_id}/collections")
    def list_collections(volume_id: str) -> ApiResponse:
        collections = client.collections.list_collections(volume_id)
        return ApiResponse.ok(collections, {"count": len(collections)})

    @router.post("/volumes/{volume_id}/collections")
    def create_collection(volume_id: str, body: CollectionCreateRequest) -> ApiResponse:
        collection_id = client.collections.create(volume_id, body.name)
        return ApiResponse.ok({"id": collection_id, "name": body.name})

    @router.post("/volumes/{volume_id}/collections/delete")
    def delete_collection(volume_id: str, body: CollectionDeleteRequest) -> ApiResponse:
        collection_id = client.collections.delete(volume_id, body.value, body.by)
        return ApiResponse.ok({"id": collection_id})

    @router.post("/volumes/{from_volume_id}/collections/{collection_id}/transfer")
    def transfer_collection(
        from_volume_id: str,
        collection_id: str,
        body: TransferRequest,
    ) -> ApiResponse:
        result = client.transfers.transfer(from_volume_id, collection_id, body.to)
        return ApiResponse.ok(
            {
                "id": result.collection_id,
                "name": result.name,
                "from": result.from_volume_id,
                "to": result.to_volume_id,
                "path": str(result.path),
            }
        )

    return router


def _describe_location(location: Any) -> str:
    """Render a pydantic error location such as ("body", "path") as "path"."""
    parts = [str(part) for part in location if part != "body"]
    return ".".join(parts) or "body"
