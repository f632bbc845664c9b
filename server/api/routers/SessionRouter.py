"""Session router. Signs the user in and out of the remote mirror."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from server.models.requests import CredentialsRequest
from server.models.responses import SessionResponse
from shared.dependencies.auth import verify_api_key
from shared.models.session import Identity

session_router = APIRouter(prefix="/session", dependencies=[Depends(verify_api_key)], tags=["Session"])


def _session_response(request: Request, user: Identity | None) -> JSONResponse:
    result = SessionResponse(signed_in=user is not None, user=user, status=request.app.state.document_store.status)
    return JSONResponse(content=result.model_dump(mode="json"))


@session_router.get("")
async def get_session(request: Request) -> JSONResponse:
    user = await request.app.state.document_store.current_user()
    return _session_response(request, user)


@session_router.post("/sign-in")
async def sign_in(request: Request, body: CredentialsRequest) -> JSONResponse:
    """Sign in with email and password. A successful sign-in reloads the collection from the remote mirror."""
    user = await request.app.state.document_store.sign_in(body.email, body.password)
    return _session_response(request, user)


@session_router.post("/sign-up")
async def sign_up(request: Request, body: CredentialsRequest) -> JSONResponse:
    """Register a new account. Backends that require email confirmation return no session yet."""
    user = await request.app.state.document_store.sign_up(body.email, body.password)
    return _session_response(request, user)


@session_router.post("/sign-out")
async def sign_out(request: Request, clear_cache: bool = False) -> JSONResponse:
    await request.app.state.document_store.sign_out(clear_cache=clear_cache)
    request.app.state.logging.info("Signed out (clear_cache=%s).", clear_cache)
    return _session_response(request, None)
