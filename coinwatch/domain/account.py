from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

from .errors import InvalidImage


@dataclass(frozen=True, slots=True)
class UrlImage:
    """Profile image hosted elsewhere and referenced by URL."""

    url: str


@dataclass(frozen=True, slots=True)
class InlineImage:
    """Profile image embedded directly in the account record."""

    data: bytes
    media_type: str | None = None

    def encoded(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


ImageReference = Union[UrlImage, InlineImage]


def image_from_payload(
    *, url: str | None = None, base64_data: str | None = None
) -> ImageReference | None:
    """Resolve submitted image fields into a single ``ImageReference``.

    ``base64_data`` may carry a ``data:<media-type>;base64,`` prefix, which is
    stripped and kept as the media type. Supplying both fields is rejected.
    """
    if url and base64_data:
        raise InvalidImage("provide either an image url or inline image data, not both")
    if url:
        return UrlImage(url=url)
    if not base64_data:
        return None

    media_type: str | None = None
    payload = base64_data
    if "base64," in payload:
        header, payload = payload.split("base64,", 1)
        if header.startswith("data:"):
            media_type = header[len("data:"):].rstrip(";") or None
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImage("image data is not valid base64") from exc
    if not data:
        raise InvalidImage("image data is empty")
    return InlineImage(data=data, media_type=media_type)


def image_to_document(image: ImageReference | None) -> dict[str, Any] | None:
    """Serialise an image reference into the tagged JSON stored alongside the account."""
    if image is None:
        return None
    if isinstance(image, UrlImage):
        return {"kind": "url", "url": image.url}
    return {"kind": "inline", "data": image.encoded(), "media_type": image.media_type}


def image_from_document(document: dict[str, Any] | None) -> ImageReference | None:
    if not document:
        return None
    if document.get("kind") == "url":
        return UrlImage(url=document["url"])
    return InlineImage(
        data=base64.b64decode(document["data"]),
        media_type=document.get("media_type"),
    )


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered user."""

    account_id: str
    name: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    image: ImageReference | None = None
    legacy_object_id: str | None = None

    def view(self) -> "AccountView":
        """Return the sanitized projection handed to external callers."""
        return AccountView(
            account_id=self.account_id,
            name=self.name,
            email=self.email,
            description=self.description,
            image=self.image,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True, slots=True)
class AccountView:
    """Account fields that are safe to serialise; carries no credential."""

    account_id: str
    name: str
    email: str
    description: str | None
    image: ImageReference | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class AuthResult:
    account: AccountView
    token: str
    expires_in: int
