"""Pydantic schemas for request/response contracts."""
from keyauth.schemas.actions import (
    ActionRequest,
    UserRequest,
    CreateAppRequest,
    DeleteAppRequest,
    AppScopedRequest,
    KeyScopedRequest,
    CreateKeyRequest,
    SupportChangeRequest,
    ValidateKeyRequest,
    CheckPermissionRequest,
)
from keyauth.schemas.application import ApplicationResponse
from keyauth.schemas.key import KeySummary, KeyRecord
from keyauth.schemas.support import SupportResponse

__all__ = [
    "ActionRequest",
    "UserRequest",
    "CreateAppRequest",
    "DeleteAppRequest",
    "AppScopedRequest",
    "KeyScopedRequest",
    "CreateKeyRequest",
    "SupportChangeRequest",
    "ValidateKeyRequest",
    "CheckPermissionRequest",
    "ApplicationResponse",
    "KeySummary",
    "KeyRecord",
    "SupportResponse",
]
