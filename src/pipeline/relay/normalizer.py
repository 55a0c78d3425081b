"""
Turns an inbound client payload into the request sent to /api/generate.

Two encodings are accepted: a plain JSON body, or multipart form data carrying
the JSON control payload in a 'payload' field plus an optional 'image' file.
Both end up as the same GenerationRequest.
"""
import json
import logging
from typing import Any, Dict, Union

from src.models.providers.base import GenerationRequest, MalformedPayload
from src.utils.image_converter import to_data_uri
from .types import ClientPayload, JsonPayload, MultipartPayload

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama3"


def _parse_control_payload(raw: Union[str, bytes], source: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except (ValueError, TypeError, RecursionError) as e:
        raise MalformedPayload(f"{source} is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise MalformedPayload(f"{source} must be a JSON object, got {type(parsed).__name__}")
    return parsed


def _from_json(payload: JsonPayload) -> Dict[str, Any]:
    return _parse_control_payload(payload.body, "Request body")


def _from_multipart(payload: MultipartPayload) -> Dict[str, Any]:
    if payload.payload is None:
        raise MalformedPayload("Multipart request is missing the 'payload' field")
    fields = _parse_control_payload(payload.payload, "'payload' field")

    attachment = payload.image
    if attachment is not None:
        fields["image"] = to_data_uri(attachment.data, attachment.media_type)
        logger.debug(f"Attached image {attachment.filename!r} ({len(attachment.data)} bytes)")
    return fields


def normalize(payload: ClientPayload, default_model: str = DEFAULT_MODEL) -> GenerationRequest:
    if isinstance(payload, MultipartPayload):
        fields = _from_multipart(payload)
    elif isinstance(payload, JsonPayload):
        fields = _from_json(payload)
    else:
        raise TypeError(f"Unsupported payload variant: {type(payload).__name__}")

    fields = dict(fields)
    prompt = fields.pop("prompt", None)
    if prompt is not None and not isinstance(prompt, str):
        raise MalformedPayload("'prompt' must be a string")

    model = fields.pop("model", None)
    if model is not None and not isinstance(model, str):
        raise MalformedPayload("'model' must be a string")
    if not model:
        model = default_model

    image = fields.pop("image", None)
    if image is not None and not isinstance(image, str):
        raise MalformedPayload("'image' must be a data URI string")

    return GenerationRequest(model=model, prompt=prompt, image=image, extra=fields)
