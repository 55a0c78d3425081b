from dataclasses import dataclass
from typing import Optional, Union
from pydantic import BaseModel

# Input types
@dataclass(frozen=True)
class Attachment:
    filename: Optional[str]
    media_type: Optional[str]
    data: bytes

@dataclass(frozen=True)
class JsonPayload:
    body: bytes  # whole request body, expected to be a JSON object

@dataclass(frozen=True)
class MultipartPayload:
    payload: Optional[str]  # raw value of the 'payload' form field (JSON text)
    image: Optional[Attachment] = None

ClientPayload = Union[JsonPayload, MultipartPayload]

# Output types
class ClientResponse(BaseModel):
    response: str

@dataclass(frozen=True)
class RelayResult:
    body: ClientResponse
    status_code: int

    def to_json(self) -> str:
        return self.body.model_dump_json()
