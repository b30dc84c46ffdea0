"""Database models."""
from keyauth.models.application import Application
from keyauth.models.key import LicenseKey, KeyHwid
from keyauth.models.support import Support

__all__ = [
    "Application",
    "LicenseKey",
    "KeyHwid",
    "Support",
]
