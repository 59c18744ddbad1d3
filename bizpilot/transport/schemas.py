# bizpilot/transport/schemas.py
from typing import Any

from pydantic import BaseModel


class DispatchOut(BaseModel):
    content: str
    kind: str


class StructuredDispatchOut(DispatchOut):
    data: dict[str, Any]


class ErrorOut(BaseModel):
    error: str
