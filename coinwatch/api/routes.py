"""HTTP route definitions for user accounts."""

from __future__ import annotations

import logging

from datetime import datetime
from typing import Literal

import redis
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, EmailStr, Field

from ..config import get_settings
from ..domain.account import Account, AccountView, ImageReference, UrlImage, image_from_payload
from ..domain.contracts import CreateAccountInput, UpdateAccountInput
from ..domain.errors import (
    AccountError,
    AccountNotFound,
    DuplicateAccount,
    EmailInUse,
    InvalidCredentials,
    InvalidImage,
    MissingCredentials,
)
from ..domain.service import AccountService
from ..security.rate_limiter import RateLimiter, SlidingWindowRateLimiter
from ..security.redis_rate_limiter import RedisSlidingWindowRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["users"])


class ImageResponse(BaseModel):
    """Tagged image reference; exactly one of ``url`` or ``data`` is set."""

    kind: Literal["url", "inline"]
    url: str | None = None
    data: str | None = None
    media_type: str | None = None

    @classmethod
    def from_domain(cls, image: ImageReference) -> "ImageResponse":
        if isinstance(image, UrlImage):
            return cls(kind="url", url=image.url)
        return cls(kind="inline", data=image.encoded(), media_type=image.media_type)


class UserResponse(BaseModel):
    """Serialised account; never carries the password hash."""

    id: str
    name: str
    email: str
    description: str | None = None
    image: ImageResponse | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, account: Account | AccountView) -> "UserResponse":
        view = account.view() if isinstance(account, Account) else account
        return cls(
            id=view.account_id,
            name=view.name,
            email=view.email,
            description=view.description,
            image=ImageResponse.from_domain(view.image) if view.image is not None else None,
            created_at=view.created_at,
            updated_at=view.updated_at,
        )


class CreateUserRequest(BaseModel):
    """Registration payload. Images arrive as a URL or base64 data, not uploads."""

    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    description: str | None = None
    image_url: str | None = None
    image_base64: str | None = None


class UpdateUserRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=1)
    description: str | None = None
    image_url: str | None = None
    image_base64: str | None = None


class AuthenticateRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class AuthenticateResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"
    expires_in: int


settings = get_settings()


def _build_rate_limiter() -> RateLimiter:
    """Instantiate the configured rate limiter backend, preferring Redis when available."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        try:
            client = redis.from_url(settings.redis_url)
            client.ping()
            logger.info("rate limiter configured for redis backend at %s", settings.redis_url)
            return RedisSlidingWindowRateLimiter(
                client,
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        except redis.RedisError as exc:
            logger.warning("redis rate limiter unavailable, falling back to in-memory: %s", exc)

    logger.info("rate limiter using in-memory backend")
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


rate_limiter = _build_rate_limiter()


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def _throttle(key: str) -> None:
    if not rate_limiter.allow(key):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="rate limited")


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    request: Request,
    payload: CreateUserRequest,
    service: AccountService = Depends(get_service),
) -> UserResponse:
    """Register a new account."""
    _throttle(f"register:{_client_key(request)}")
    try:
        account = service.create_account(
            CreateAccountInput(
                name=payload.name,
                email=payload.email,
                password=payload.password,
                description=payload.description,
                image=image_from_payload(url=payload.image_url, base64_data=payload.image_base64),
            )
        )
    except AccountError as exc:
        raise _http_error(exc) from exc
    return UserResponse.from_domain(account)


@router.post("/users/authenticate", response_model=AuthenticateResponse)
def authenticate_user(
    request: Request,
    payload: AuthenticateRequest,
    service: AccountService = Depends(get_service),
) -> AuthenticateResponse:
    """Exchange email and password for a signed access token."""
    _throttle(f"auth:{_client_key(request)}:{(payload.email or '').lower()}")
    try:
        result = service.authenticate(payload.email, payload.password)
    except AccountError as exc:
        raise _http_error(exc, during_auth=True) from exc
    return AuthenticateResponse(
        user=UserResponse.from_domain(result.account),
        token=result.token,
        expires_in=result.expires_in,
    )


@router.get("/users", response_model=list[UserResponse])
def list_users(service: AccountService = Depends(get_service)) -> list[UserResponse]:
    try:
        accounts = service.list_accounts()
    except AccountError as exc:
        raise _http_error(exc) from exc
    return [UserResponse.from_domain(account) for account in accounts]


@router.get("/users/name/{name}", response_model=UserResponse)
def get_user_by_name(name: str, service: AccountService = Depends(get_service)) -> UserResponse:
    try:
        account = service.find_by_name(name)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return _found_or_404(account)


@router.get("/users/email/{email}", response_model=UserResponse)
def get_user_by_email(email: str, service: AccountService = Depends(get_service)) -> UserResponse:
    try:
        account = service.find_by_email(email)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return _found_or_404(account)


@router.get("/users/{account_id}", response_model=UserResponse)
def get_user(account_id: str, service: AccountService = Depends(get_service)) -> UserResponse:
    try:
        account = service.find_by_id(account_id)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return _found_or_404(account)


@router.put("/users/{account_id}", response_model=UserResponse)
def update_user(
    account_id: str,
    payload: UpdateUserRequest,
    service: AccountService = Depends(get_service),
) -> UserResponse:
    """Partially update an account; omitted fields, including the image, are kept."""
    try:
        account = service.update_account(
            account_id,
            UpdateAccountInput(
                name=payload.name,
                email=payload.email,
                password=payload.password,
                description=payload.description,
                image=image_from_payload(url=payload.image_url, base64_data=payload.image_base64),
            ),
        )
    except AccountError as exc:
        raise _http_error(exc) from exc
    return UserResponse.from_domain(account)


@router.delete("/users/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(account_id: str, service: AccountService = Depends(get_service)) -> Response:
    try:
        service.delete_account(account_id)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _found_or_404(account: Account | None) -> UserResponse:
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account not found")
    return UserResponse.from_domain(account)


_BAD_REQUEST = (DuplicateAccount, EmailInUse, MissingCredentials, InvalidImage)


def _http_error(exc: AccountError, *, during_auth: bool = False) -> HTTPException:
    if isinstance(exc, _BAD_REQUEST):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, InvalidCredentials):
        status_code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(exc, AccountNotFound):
        status_code = status.HTTP_401_UNAUTHORIZED if during_auth else status.HTTP_404_NOT_FOUND
    else:
        logger.error("account operation failed: %s", exc)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="internal server error",
        )
    return HTTPException(status_code=status_code, detail=str(exc))
