from __future__ import annotations

import base64

import pytest

from coinwatch.domain.account import (
    InlineImage,
    UrlImage,
    image_from_document,
    image_from_payload,
    image_to_document,
)
from coinwatch.domain.errors import InvalidImage
from coinwatch.domain.identifiers import MalformedKey, NativeKey, SurrogateKey, parse_account_key
from coinwatch.security.passwords import hash_password, verify_password


def test_parse_account_key_classifies_identifiers():
    assert parse_account_key("0B0C3A52-6F1E-4F7E-9B7F-3C1D2E4F5A6B") == SurrogateKey(
        "0b0c3a52-6f1e-4f7e-9b7f-3c1d2e4f5a6b"
    )
    assert parse_account_key("65F1C2A9E4B0A1B2C3D4E5F6") == NativeKey("65f1c2a9e4b0a1b2c3d4e5f6")
    assert parse_account_key("42") == MalformedKey("42")
    assert parse_account_key("") == MalformedKey("")


def test_image_from_payload_strips_data_uri_prefix():
    raw = b"\x89PNG\r\n"
    encoded = base64.b64encode(raw).decode("ascii")

    image = image_from_payload(base64_data=f"data:image/png;base64,{encoded}")

    assert image == InlineImage(data=raw, media_type="image/png")


def test_image_from_payload_plain_base64_and_url():
    assert image_from_payload(base64_data=base64.b64encode(b"abc").decode()) == InlineImage(b"abc")
    assert image_from_payload(url="https://cdn.example.com/a.png") == UrlImage("https://cdn.example.com/a.png")
    assert image_from_payload() is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base64_data": "not base64!!"},
        {"url": "https://cdn.example.com/a.png", "base64_data": "YWJj"},
    ],
)
def test_image_from_payload_rejects_bad_input(kwargs):
    with pytest.raises(InvalidImage):
        image_from_payload(**kwargs)


def test_image_documents_preserve_the_variant():
    inline = InlineImage(b"\x00\x01", "image/jpeg")
    url = UrlImage("https://cdn.example.com/a.png")

    assert image_from_document(image_to_document(inline)) == inline
    assert image_from_document(image_to_document(url)) == url
    assert image_to_document(None) is None


def test_password_hashes_are_salted():
    first = hash_password("password123")
    second = hash_password("password123")

    assert first != second
    assert verify_password("password123", first)
    assert verify_password("password123", second)
    assert not verify_password("password124", first)


@pytest.mark.parametrize("stored", ["", "plaintext", "$pbkdf2-sha256$garbage"])
def test_verify_password_treats_malformed_hash_as_mismatch(stored):
    assert verify_password("password123", stored) is False
