"""Avatar-related Pydantic schemas for API responses."""

from pydantic import BaseModel, ConfigDict, Field


class AvatarResponse(BaseModel):
    """Response model describing a user's current avatar.

    ``avatar`` is the storage key persisted on the user record; ``url`` is
    the public address it is served from. Users without a custom image
    report the default avatar key.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "user_id": 7,
                    "avatar": "avatars/7/avatar.png",
                    "url": "https://cdn.example.com/avatars/7/avatar.png",
                    "is_default": False,
                }
            ]
        }
    )

    user_id: int = Field(..., description="Identifier of the user")
    avatar: str = Field(..., description="Storage key of the avatar", min_length=1)
    url: str = Field(..., description="Public URL of the avatar")
    is_default: bool = Field(
        False,
        description="True when the user has no custom avatar"
    )


class ErrorResponse(BaseModel):
    """Body returned for avatar service errors."""

    error: str = Field(..., description="Exception class name")
    message: str = Field(..., description="Human readable description")
    details: dict[str, str] = Field(default_factory=dict)
