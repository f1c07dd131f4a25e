"""Password hashing tests."""

import pytest

from tasktrack.auth.password import (
    hash_password,
    hash_password_async,
    verify_password,
    verify_password_async,
)


def test_hash_is_not_plaintext():
    hashed = hash_password("secret123", rounds=4)
    assert hashed != "secret123"
    assert hashed.startswith("$2b$04$")


def test_hashes_are_salted():
    assert hash_password("secret123", rounds=4) != hash_password("secret123", rounds=4)


def test_verify_roundtrip():
    hashed = hash_password("secret123", rounds=4)
    assert verify_password("secret123", hashed) is True
    assert verify_password("secret124", hashed) is False


def test_verify_never_raises_on_bad_hash():
    assert verify_password("secret123", "not-a-bcrypt-hash") is False


@pytest.mark.asyncio
async def test_async_variants():
    hashed = await hash_password_async("secret123", rounds=4)
    assert await verify_password_async("secret123", hashed) is True
    assert await verify_password_async("wrong", hashed) is False
