"""
Relay endpoints: generation through /api/generate and the model list pass-through.
"""
import json
import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from ..cors import cors_headers
from ..dependencies.backend import get_backend_manager
from src.models.manager import BackendManager
from src.models.providers.base import MalformedPayload, UpstreamUnavailable
from src.pipeline.relay.relay import RelayPipeline
from src.pipeline.relay.types import Attachment, ClientPayload, ClientResponse, JsonPayload, MultipartPayload

logger = logging.getLogger(__name__)

router = APIRouter()


async def read_client_payload(request: Request) -> ClientPayload:
    """Pick the payload variant from the declared content type."""
    content_type = request.headers.get("content-type", "").lower()
    if "multipart/form-data" not in content_type:
        return JsonPayload(body=await request.body())

    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException) as e:
        raise MalformedPayload(f"Could not parse multipart body: {getattr(e, 'detail', None) or e}") from e

    payload_field = form.get("payload")
    if isinstance(payload_field, UploadFile):
        payload_field = (await payload_field.read()).decode("utf-8", errors="replace")

    image = None
    image_field = form.get("image")
    if image_field is not None:
        if not isinstance(image_field, UploadFile):
            raise MalformedPayload("'image' must be sent as a file part")
        image = Attachment(
            filename=image_field.filename,
            media_type=image_field.content_type,
            data=await image_field.read(),
        )

    return MultipartPayload(payload=payload_field, image=image)


@router.post("/ollama", response_model=ClientResponse)
async def relay_generate(request: Request, backend_manager: BackendManager = Depends(get_backend_manager)):
    """
    Relay one generation request.

    Accepts either a JSON body ({"prompt": ..., "model": ...}) or multipart form
    data with a JSON 'payload' field and an optional 'image' file. The upstream
    status code is passed through; the body is always {"response": "..."}.
    """
    payload = await read_client_payload(request)
    pipeline = RelayPipeline(backend_manager)
    result = await run_in_threadpool(pipeline.process, payload)

    return JSONResponse(
        content=result.body.model_dump(),
        status_code=result.status_code,
        headers=cors_headers(),
    )


@router.get("/models")
async def list_models(backend_manager: BackendManager = Depends(get_backend_manager)):
    """Return the backend's /api/tags JSON as-is."""
    upstream = await run_in_threadpool(backend_manager.list_models)
    try:
        json.loads(upstream.body)
    except ValueError as e:
        logger.error(f"Model list from backend is not JSON: {upstream.body[:200]!r}")
        raise UpstreamUnavailable(f"Backend returned a non-JSON model list (status {upstream.status_code})") from e

    return Response(
        content=upstream.body,
        status_code=upstream.status_code,
        media_type="application/json",
        headers=cors_headers(),
    )
