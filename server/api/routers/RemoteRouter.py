"""Remote router. Configures and tests the optional remote mirror.

Saving or clearing the settings reloads the collection, so the response
always carries the store status that resulted from the change.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from server.models.requests import RemoteConfigRequest
from server.models.responses import RemoteStatusResponse
from shared.dependencies.auth import verify_api_key
from shared.models.config import RemoteConfig

remote_router = APIRouter(prefix="/remote", dependencies=[Depends(verify_api_key)], tags=["Remote"])


async def _status_response(request: Request) -> JSONResponse:
    store = request.app.state.document_store
    config = store.get_config()
    result = RemoteStatusResponse(
        enabled=store.is_remote_enabled(),
        status=store.status,
        endpoint=config.endpoint if config is not None else None,
        user=await store.current_user(),
    )
    return JSONResponse(content=result.model_dump(mode="json"))


@remote_router.get("/status")
async def get_remote_status(request: Request) -> JSONResponse:
    return await _status_response(request)


@remote_router.put("/config")
async def save_remote_config(request: Request, body: RemoteConfigRequest) -> JSONResponse:
    """Save the remote endpoint and key, then reload from the remote mirror."""
    await request.app.state.document_store.set_config(RemoteConfig(endpoint=body.endpoint, key=body.key))
    request.app.state.logging.info("Remote settings saved for %s.", body.endpoint.strip())
    return await _status_response(request)


@remote_router.delete("/config")
async def clear_remote_config(request: Request, purge: bool = False) -> JSONResponse:
    """Forget the remote settings and fall back to local-only storage.

    Args:
        purge (bool): Also delete the locally cached documents.
    """
    await request.app.state.document_store.clear_config(purge=purge)
    request.app.state.logging.info("Remote settings cleared (purge=%s).", purge)
    return await _status_response(request)


@remote_router.post("/test")
async def test_remote_connection(request: Request, body: RemoteConfigRequest | None = None) -> JSONResponse:
    config = RemoteConfig(endpoint=body.endpoint, key=body.key) if body is not None else None
    result = await request.app.state.document_store.test_connection(config)
    return JSONResponse(content=result.model_dump())
