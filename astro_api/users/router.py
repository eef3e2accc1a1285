from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from starlette.concurrency import run_in_threadpool

from astro_api.dependencies import get_user_store
from astro_api.exceptions import AuthenticationError, ConflictError, ResourceNotFoundError
from astro_api.logger import logger
from astro_api.users.models import (
    LoginUserRequest,
    RegisterUserRequest,
    UpdateUserRequest,
    UserCreate,
    UserResponse,
    to_user_response,
)
from astro_api.users.passwords import hash_password, verify_stored_password
from astro_api.users.store import UserStore, utcnow

router = APIRouter(prefix="/api/users", tags=["users"])

EMAIL_TAKEN = "Email already registered"


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
    responses={
        400: {"description": "Invalid input or email already registered"},
    },
)
@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user (legacy path)",
)
async def register_user(
    request: RegisterUserRequest,
    store: UserStore = Depends(get_user_store),
) -> UserResponse:
    """
    Create an account.

    The password is stored as ``salt:hash`` and never returned.
    """
    if await store.get_user_by_email(request.email) is not None:
        logger.warning("user_register_email_exists")
        raise ConflictError(EMAIL_TAKEN, field="email")

    credential = await run_in_threadpool(hash_password, request.password)
    fields = UserCreate(
        **request.model_dump(exclude={"password"}),
        password=credential.encoded,
    )

    # Another request may have registered the same email while we were hashing
    user = await store.create_user_if_email_available(fields)
    if user is None:
        logger.warning("user_register_email_race")
        raise ConflictError(EMAIL_TAKEN, field="email")

    logger.info("user_registered", user_id=user.id)
    return to_user_response(user)


@router.post("/login", response_model=UserResponse, summary="Check credentials")
async def login_user(
    request: LoginUserRequest,
    store: UserStore = Depends(get_user_store),
) -> UserResponse:
    """Verify email and password and return the profile. No session or token is issued."""
    user = await store.get_user_by_email(request.email)
    if user is None or not await run_in_threadpool(
        verify_stored_password, request.password, user.password
    ):
        logger.warning("user_login_failed")
        raise AuthenticationError("Invalid email or password")

    user = await store.update_user(user.id, {"last_active_at": utcnow()}) or user
    logger.info("user_login", user_id=user.id)
    return to_user_response(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    store: UserStore = Depends(get_user_store),
) -> UserResponse:
    user = await store.get_user(user_id)
    if user is None:
        raise ResourceNotFoundError("User", resource_id=user_id)
    return to_user_response(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    request: UpdateUserRequest,
    store: UserStore = Depends(get_user_store),
) -> UserResponse:
    """Apply a partial update; fields missing from the body keep their values."""
    changes = request.changes()
    user = await store.update_user(user_id, changes)
    if user is None:
        raise ResourceNotFoundError("User", resource_id=user_id)

    logger.info("user_updated", user_id=user_id, fields=sorted(changes))
    return to_user_response(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    store: UserStore = Depends(get_user_store),
) -> Response:
    if not await store.delete_user(user_id):
        raise ResourceNotFoundError("User", resource_id=user_id)

    logger.info("user_deleted", user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
