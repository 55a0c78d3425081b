from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

# unified relay errors
class RelayError(RuntimeError): ...
class MalformedPayload(RelayError): ...
class UpstreamUnavailable(RelayError): ...
class UpstreamTimeout(UpstreamUnavailable): ...

@dataclass(frozen=True)
class GenerationRequest:
    model: str
    prompt: Optional[str] = None #omitted from the upstream body when the client sent none
    image: Optional[str] = None #data uri, e.g. data:image/png;base64,...
    extra: Dict[str, Any] = field(default_factory=dict) #client fields passed through as-is (stream, options, system...)

    def to_payload(self) -> Dict[str, Any]:
        payload = dict(self.extra)
        payload["model"] = self.model
        if self.prompt is not None:
            payload["prompt"] = self.prompt
        if self.image is not None:
            payload["image"] = self.image
        return payload

@dataclass(frozen=True)
class UpstreamResponse:
    body: str #raw, fully buffered response text
    status_code: int
    meta: Dict[str, Any] = field(default_factory=dict) #latency, path, provider

class BackendProvider(ABC):
    @abstractmethod
    def generate(self, req: GenerationRequest) -> UpstreamResponse:
        raise NotImplementedError

    @abstractmethod
    def list_models(self) -> UpstreamResponse:
        raise NotImplementedError

    @abstractmethod
    def health_check(self) -> bool:
        raise NotImplementedError

    def cleanup(self) -> None:
        pass
