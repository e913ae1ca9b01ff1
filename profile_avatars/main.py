import logging
import mimetypes
from contextlib import asynccontextmanager
from typing import Any, BinaryIO, Iterator

from fastapi import Depends, FastAPI, HTTPException, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse

from config import get_settings
from profile_avatars.avatar_service import AvatarService
from profile_avatars.db import init_db
from profile_avatars.dependencies import (
    get_avatar_service,
    get_gravatar_client,
    get_initials_client,
    get_storage_backend,
    get_user_repository,
)
from profile_avatars.exceptions import (
    AvatarError,
    AvatarStorageUnavailableError,
    NoAvatarToDeleteError,
    NotFoundError,
    StorageError,
    UnsupportedMediaTypeError,
    UpstreamServiceError,
    UserNotFoundError,
    ValidationError,
)
from profile_avatars.models import User
from profile_avatars.repositories import UserRepository
from profile_avatars.schemas import AvatarResponse, ErrorResponse
from profile_avatars.storage import StoredImage

# Get settings and configure logging before anything else
settings = get_settings()
settings.configure_logging()

logger = logging.getLogger(__name__)

STREAM_CHUNK_SIZE = 64 * 1024


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Storage type: {settings.storage_type}")
    logger.info(f"User storage: {settings.user_storage}")

    if settings.user_storage == "database":
        init_db()

    # Backend is selected once here; an invalid storage configuration aborts startup
    get_storage_backend()
    get_gravatar_client()
    get_initials_client()

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AvatarError)
async def avatar_exception_handler(request: Request, exc: AvatarError) -> JSONResponse:
    """Translate avatar service exceptions into JSON error responses."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(exc, UnsupportedMediaTypeError):
        status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    elif isinstance(exc, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, (NotFoundError, NoAvatarToDeleteError)):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, UpstreamServiceError):
        status_code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, (AvatarStorageUnavailableError, StorageError)):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    logger.error(f"Avatar error on {request.url.path}: {type(exc).__name__} - {exc.message}")

    body = ErrorResponse(error=type(exc).__name__, message=exc.message, details=exc.details)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.get("/health")
def health_check() -> dict[str, str]:
    """Simple health-check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": settings.app_version,
    }


@app.get("/config")
def get_config() -> dict[str, Any]:
    """Get current configuration (non-sensitive values only)."""
    return {
        "app_name": settings.app_name,
        "app_version": settings.app_version,
        "environment": settings.environment,
        "debug": settings.debug,
        "storage_type": settings.storage_type,
        "storage_base_url": settings.storage_base_url,
        "user_storage": settings.user_storage,
        "log_level": settings.log_level,
        "log_json": settings.log_json,
        "max_upload_size": settings.max_upload_size,
    }


def _get_user(user_repository: UserRepository, user_id: int) -> User:
    user = user_repository.find_by_id(user_id)
    if user is None:
        logger.warning(f"User not found: {user_id}")
        raise UserNotFoundError(user_id)
    return user


def _avatar_response(avatar_service: AvatarService, user: User) -> AvatarResponse:
    return AvatarResponse(
        user_id=user.id,
        avatar=user.avatar,
        url=avatar_service.avatar_url(user),
        is_default=not user.has_custom_avatar,
    )


def _iter_stream(stream: BinaryIO) -> Iterator[bytes]:
    try:
        while chunk := stream.read(STREAM_CHUNK_SIZE):
            yield chunk
    finally:
        stream.close()


@app.get("/users/{user_id}/avatar", response_model=AvatarResponse, tags=["avatars"])
def get_avatar(
    user_id: int,
    avatar_service: AvatarService = Depends(get_avatar_service),
    user_repository: UserRepository = Depends(get_user_repository),
) -> AvatarResponse:
    """Get the storage key and public URL of a user's avatar."""
    user = _get_user(user_repository, user_id)
    return _avatar_response(avatar_service, user)


@app.post("/users/{user_id}/avatar", response_model=AvatarResponse, tags=["avatars"])
def upload_avatar(
    user_id: int,
    file: UploadFile,
    avatar_service: AvatarService = Depends(get_avatar_service),
    user_repository: UserRepository = Depends(get_user_repository),
) -> AvatarResponse:
    """Upload a JPEG or PNG avatar.

    A rejected or failed upload is not an error: the user is given the
    default avatar and the response says so.
    """
    user = _get_user(user_repository, user_id)

    content = file.file.read()
    if len(content) > settings.max_upload_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Avatar exceeds the {settings.max_upload_size} byte limit",
        )

    logger.info(
        f"Processing avatar upload for user {user_id}: {file.filename}, "
        f"type: {file.content_type}, length: {len(content)}"
    )
    avatar = StoredImage(
        filename=file.filename or "avatar",
        content_type=file.content_type,
        content=content,
    )
    if avatar.is_empty:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File cannot be empty")

    user.avatar = avatar_service.save(user.id, avatar)
    user_repository.save(user)
    return _avatar_response(avatar_service, user)


@app.post("/users/{user_id}/avatar/default", response_model=AvatarResponse, tags=["avatars"])
def generate_default_avatar(
    user_id: int,
    avatar_service: AvatarService = Depends(get_avatar_service),
    user_repository: UserRepository = Depends(get_user_repository),
) -> AvatarResponse:
    """Generate an avatar from Gravatar or the user's initials."""
    user = _get_user(user_repository, user_id)

    user.avatar = avatar_service.save_default_avatar(user)
    user_repository.save(user)
    return _avatar_response(avatar_service, user)


@app.delete(
    "/users/{user_id}/avatar",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["avatars"],
)
def delete_avatar(
    user_id: int,
    avatar_service: AvatarService = Depends(get_avatar_service),
) -> Response:
    """Delete a user's avatar and fall back to the default one."""
    avatar_service.delete_user_avatar(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/files/{key:path}", tags=["files"])
def get_file(
    key: str,
    avatar_service: AvatarService = Depends(get_avatar_service),
) -> StreamingResponse:
    """Stream a stored file from the configured backend."""
    stream = avatar_service.load(key)
    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return StreamingResponse(_iter_stream(stream), media_type=media_type)
