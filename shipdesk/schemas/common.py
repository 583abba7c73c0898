"""ShipDesk — Common response envelope and identity."""
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope: {data, error, meta}."""

    data: T | None = None
    error: dict[str, Any] | None = None
    meta: dict[str, Any] | None = None


class Actor(BaseModel):
    """Who made a change. Stored verbatim on orders and history entries."""

    uid: str = ""
    email: str = ""
    role: str = ""

    def as_record(self) -> dict[str, str]:
        return {"uid": self.uid, "email": self.email, "role": self.role}
