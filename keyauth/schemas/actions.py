"""Request payloads of the action endpoint, one model per ``action`` tag."""
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator


class ActionRequest(BaseModel):
    """Base payload: every action carries its tag."""
    action: str

    class Config:
        extra = "ignore"
        str_strip_whitespace = True
        coerce_numbers_to_str = True


class UserRequest(ActionRequest):
    """Payload naming only the acting user."""
    user_id: str = Field(..., min_length=1, max_length=255)


class CreateAppRequest(UserRequest):
    app_name: str = Field(..., min_length=1, max_length=255)


class DeleteAppRequest(UserRequest):
    app_name: str = Field(..., min_length=1, max_length=255)


class AppScopedRequest(UserRequest):
    """Payload targeting one application by its API key."""
    api: str = Field(..., min_length=1, max_length=255)


class KeyScopedRequest(AppScopedRequest):
    """Payload targeting one key of an application."""
    key: str = Field(..., min_length=1, max_length=255)


class CreateKeyRequest(AppScopedRequest):
    prefix: str = Field(..., min_length=1, max_length=50)
    days: int = Field(..., gt=0)
    device_limit: int = Field(default=1, ge=1)

    @field_validator("device_limit", mode="before")
    @classmethod
    def default_device_limit(cls, v: Any) -> Any:
        # Absent, null, empty and zero all mean the default of one device
        if v in (None, "", 0, "0"):
            return 1
        return v


class SupportChangeRequest(ActionRequest):
    user_id: str = Field(..., min_length=1, max_length=255)
    admin_id: str = Field(..., min_length=1, max_length=255)


class ValidateKeyRequest(ActionRequest):
    api: str = Field(..., min_length=1, max_length=255)
    key: str = Field(..., min_length=1, max_length=255)
    hwid: str = Field(..., min_length=1, max_length=255)
    system_info: Optional[str] = None


class CheckPermissionRequest(UserRequest):
    api: Optional[str] = Field(default=None, max_length=255)
