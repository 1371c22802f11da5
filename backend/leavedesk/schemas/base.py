from __future__ import annotations

from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict


T = TypeVar("T")


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ApiResponse(BaseModel, Generic[T]):
    """Envelope shared by every endpoint: ``{success, message?, data?, errors?}``."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    errors: Optional[Dict[str, List[str]]] = None
