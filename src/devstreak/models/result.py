"""Uniform result shape returned by every core entry point."""

from typing import Any

from pydantic import BaseModel, Field

NOT_AUTHENTICATED = "User not authenticated"


class OperationResult(BaseModel):
    """``{success, message, data}`` result rendered by callers without
    inspecting error internals."""

    success: bool
    message: str
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, **data: Any) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, **data: Any) -> "OperationResult":
        return cls(success=False, message=message, data=data)

    @classmethod
    def not_authenticated(cls) -> "OperationResult":
        return cls(success=False, message=NOT_AUTHENTICATED, data={"not_authenticated": True})
