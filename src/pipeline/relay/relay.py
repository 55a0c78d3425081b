import logging
from src.models.manager import BackendManager
from .types import ClientPayload, RelayResult
from .normalizer import normalize
from .reassembler import reassemble
from .formatter import format_response

logger = logging.getLogger(__name__)


class RelayPipeline:
    def __init__(self, manager: BackendManager):
        self.backend_manager = manager

    def process(self, payload: ClientPayload) -> RelayResult:
        """
        Normalize the client payload, call /api/generate once, stitch the
        streamed fragments back together and wrap them for the client.

        MalformedPayload is raised before anything is sent upstream;
        UpstreamUnavailable propagates from the backend call.
        """
        settings = self.backend_manager.relay
        request = normalize(payload, default_model=settings.default_model)
        logger.info(f"Relaying generate request: model={request.model}, image={'yes' if request.image else 'no'}")

        upstream = self.backend_manager.generate(request)
        answer = reassemble(upstream.body, fallback=settings.fallback_text)

        return format_response(answer, upstream.status_code)
