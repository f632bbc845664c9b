"""Document router. The collection surface consumed by the tracking UI."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from server.models.requests import DeleteRequest, ImportRequest
from server.models.responses import DeleteResponse, DocumentListResponse, ImportResponse
from shared.dependencies.auth import verify_api_key
from shared.models.document import DocumentDraft, DocumentKind
from shared.models.filter import DocumentFilter

document_router = APIRouter(prefix="/documents", dependencies=[Depends(verify_api_key)], tags=["Documents"])


@document_router.get("")
async def list_documents(
    request: Request,
    kind: DocumentKind | None = None,
    q: str = "",
    date: str = "",
) -> JSONResponse:
    """List documents, newest first, optionally filtered by kind, free text and exact date."""
    store = request.app.state.document_store
    docs = store.get_filtered(DocumentFilter(kind=kind, query=q, date=date))
    result = DocumentListResponse(documents=[d.to_cache() for d in docs], total=len(docs), status=store.status)
    return JSONResponse(content=result.model_dump(mode="json"))


@document_router.get("/{document_id}")
async def get_document(request: Request, document_id: str) -> JSONResponse:
    doc = request.app.state.document_store.get(document_id)
    if doc is None:
        raise HTTPException(status_code=404, detail=f"Document '{document_id}' not found.")
    return JSONResponse(content=doc.to_cache())


@document_router.post("", status_code=201)
async def add_document(request: Request, body: DocumentDraft) -> JSONResponse:
    """Add a forwarded or received document. An id is assigned if the body has none."""
    doc = await request.app.state.document_store.add(body)
    request.app.state.logging.info("Document %s (%s) added.", doc.id, doc.kind.value)
    return JSONResponse(status_code=201, content=doc.to_cache())


@document_router.put("/{document_id}")
async def update_document(request: Request, document_id: str, body: DocumentDraft) -> JSONResponse:
    """Replace all fields of an existing document."""
    body.id = document_id
    try:
        doc = await request.app.state.document_store.update(body)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Document '{document_id}' not found.")
    return JSONResponse(content=doc.to_cache())


@document_router.delete("")
async def delete_documents(request: Request, body: DeleteRequest) -> JSONResponse:
    removed = await request.app.state.document_store.delete_many(body.ids)
    request.app.state.logging.info("Deleted %d of %d requested document(s).", removed, len(body.ids))
    return JSONResponse(content=DeleteResponse(removed=removed).model_dump())


@document_router.post("/import")
async def import_documents(request: Request, body: ImportRequest) -> JSONResponse:
    """Import rows of an externally parsed file."""
    try:
        docs = await request.app.state.document_store.import_rows(body.rows)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    result = ImportResponse(imported=len(docs), documents=[d.to_cache() for d in docs])
    return JSONResponse(content=result.model_dump(mode="json"))
