"""Pydantic schemas for request/response validation."""

from .avatar import AvatarResponse, ErrorResponse

__all__ = [
    "AvatarResponse",
    "ErrorResponse",
]
