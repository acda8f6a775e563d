"""Shared types for server actions."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass
class ActionResult:
    success: bool
    data: Any = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            result["data"] = self.data
        if self.error is not None:
            result["error"] = self.error
        return result

    @classmethod
    def fail(cls, error: str, data: Any = None) -> "ActionResult":
        return cls(success=False, error=error, data=data)


class ActionParams(BaseModel):
    """Parameters accepted by the built-in actions."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    connection_id: Optional[str] = Field(default=None, alias="connectionId")
    table: Optional[str] = None
    id: Any = None
    data: Any = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=10000)
    where: Optional[dict[str, Any]] = None
    order_by: Optional[str] = Field(default=None, alias="orderBy")
    order_direction: Literal["asc", "desc"] = Field(default="asc", alias="orderDirection")
    search: Any = None
    filters: Optional[dict[str, Any]] = None
    url: Optional[str] = None
    method: str = "GET"
    headers: Optional[dict[str, str]] = None
    body: Any = None


ActionHandler = Callable[[ActionParams, str, Optional[str]], Awaitable[ActionResult]]
