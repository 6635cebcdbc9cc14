"""Shared wire models between the broker, its collaborators and the host.

Keep these lightweight and stable; they form the broker↔listener contract.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field


class Capability(str, Enum):
    CAPTURE = "capture"
    PICK = "pick"

    @property
    def success_tag(self) -> str:
        """Prefix of the success message for this capability."""
        return "CAMERA_SUCCESS" if self is Capability.CAPTURE else "GALLERY_SUCCESS"


class Permission(str, Enum):
    CAMERA = "camera"
    READ_MEDIA = "read_media"
    WRITE_MEDIA = "write_media"


ALL_PERMISSIONS: frozenset[Permission] = frozenset(Permission)


class RequestState(str, Enum):
    IDLE = "idle"
    PERMISSION_PENDING = "permission_pending"
    ACTION_DISPATCHED = "action_dispatched"
    COMPLETED = "completed"


class ErrorKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    USER_CANCELLED = "user_cancelled"
    NO_IMAGE_SELECTED = "no_image_selected"
    DECODE_FAILURE = "decode_failure"
    DISPATCH_UNAVAILABLE = "dispatch_unavailable"
    STORAGE_FAILURE = "storage_failure"
    LAUNCH_FAILURE = "launch_failure"


def new_token() -> str:
    return uuid.uuid4().hex


class Request(BaseModel):
    capability: Capability
    token: str = Field(default_factory=new_token)
    state: RequestState = RequestState.IDLE
    created_at: float = Field(default_factory=time.time)
    destination: Optional[Path] = None


class ActionOutcome(BaseModel):
    """The `(code, success, payload)` triple a launcher reports back."""

    token: str
    ok: bool
    payload: Optional[str] = None
    error: Optional[ErrorKind] = None


class ResultEvent(BaseModel):
    kind: Literal["success", "cancelled", "permission_denied", "failure"]
    capability: Optional[Capability] = None
    token: Optional[str] = None
    payload: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[ErrorKind] = None

    @classmethod
    def success(cls, request: Request, payload: str) -> "ResultEvent":
        return cls(kind="success", capability=request.capability, token=request.token, payload=payload)

    @classmethod
    def cancelled(cls, request: Request) -> "ResultEvent":
        return cls(
            kind="cancelled",
            capability=request.capability,
            token=request.token,
            error=ErrorKind.USER_CANCELLED,
        )

    @classmethod
    def permission_denied(cls, request: Request) -> "ResultEvent":
        return cls(
            kind="permission_denied",
            capability=request.capability,
            token=request.token,
            error=ErrorKind.PERMISSION_DENIED,
        )

    @classmethod
    def failure(cls, request: Request, reason: str, error: ErrorKind) -> "ResultEvent":
        return cls(
            kind="failure",
            capability=request.capability,
            token=request.token,
            reason=reason,
            error=error,
        )

    def to_message(self) -> str:
        """Render the text delivered to the listener."""
        if self.kind == "success":
            return f"{self.capability.success_tag}:{self.payload}"
        if self.kind == "cancelled":
            return "CANCEL"
        if self.kind == "permission_denied":
            return "Permission Denied"
        return f"ERROR:{self.reason}"


class InitializeRequest(BaseModel):
    target: str
    method: str


class PermissionResult(BaseModel):
    token: str
    grants: dict[Permission, bool] = Field(default_factory=dict)


class RequestAccepted(BaseModel):
    token: str
    capability: Capability
    state: RequestState


class PendingPrompt(BaseModel):
    token: str
    permissions: list[Permission]


class PendingAction(BaseModel):
    token: str
    capability: Capability
    destination: Optional[str] = None
    mime_filter: Optional[str] = None
