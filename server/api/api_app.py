"""FastAPI application entry point for the DTS tracker API."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import os
from server.api.routers.DocumentRouter import document_router
from server.api.routers.RemoteRouter import remote_router
from server.api.routers.SessionRouter import session_router
from services.document_store.DocumentStore import DocumentStore
from shared.cache.LocalCache import LocalCache
from shared.clients.remote.RemoteClientManager import RemoteClientManager
from shared.errors import InvalidConfig, NotAuthenticated, RemoteUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = setup_logging()
    app.state.config = HelperConfig(logger=app.state.logging)

    # Wire up the store
    cache = LocalCache(helper_config=app.state.config)
    remote_manager = RemoteClientManager(helper_config=app.state.config, cache=cache)
    app.state.document_store = DocumentStore(
        helper_config=app.state.config,
        cache=cache,
        remote_manager=remote_manager,
    )
    docs = await app.state.document_store.boot()

    app.state.logging.info(
        "DTS tracker API ready with %d document(s), status %s.", len(docs), app.state.document_store.status.value
    )
    yield

    # Shutdown
    await app.state.document_store.close()
    app.state.logging.info("DTS tracker API shut down.")


app = FastAPI(
    title="DTS Tracker",
    description="Offline-first tracker for forwarded and received documents with an optional remote mirror.",
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidConfig)
async def handle_invalid_config(request: Request, exc: InvalidConfig) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotAuthenticated)
async def handle_not_authenticated(request: Request, exc: NotAuthenticated) -> JSONResponse:
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(RemoteUnavailable)
async def handle_remote_unavailable(request: Request, exc: RemoteUnavailable) -> JSONResponse:
    request.app.state.logging.warning("Remote mirror unavailable: %s", exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


app.include_router(document_router)
app.include_router(remote_router)
app.include_router(session_router)


# Server Start
if __name__ == "__main__":
    # start server
    import uvicorn
    logging.info(f"Starting DTS tracker API Server v{app_version} from root dir: {os.getenv('ROOT_DIR', os.getcwd())} on port 8000...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
