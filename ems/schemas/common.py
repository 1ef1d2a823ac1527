"""Response envelopes shared by every router."""

from pydantic import BaseModel


class Message(BaseModel):
    message: str


class ErrorDetail(BaseModel):
    """Body of every service-layer error response."""

    detail: str
