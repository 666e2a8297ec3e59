from __future__ import annotations

import pytest

from gatehouse.services.password_hasher import PasswordHasher


def test_hash_verifies_only_the_original_password(hasher: PasswordHasher):
    encoded = hasher.hash("secret1")
    assert encoded.startswith("$argon2id$")
    assert hasher.verify("secret1", encoded)
    assert not hasher.verify("secret2", encoded)
    assert not hasher.verify("Secret1", encoded)


def test_each_hash_uses_a_fresh_salt(hasher: PasswordHasher):
    a = hasher.hash("secret1")
    b = hasher.hash("secret1")
    assert a != b
    assert hasher.verify("secret1", a)
    assert hasher.verify("secret1", b)


@pytest.mark.parametrize(
    "encoded",
    [
        "",
        "not-a-hash",
        "$argon2id$v=19$m=8,t=1,p=1$garbage",
        "$2b$10$abcdefghijklmnopqrstuu5bA7XqkA0.Yb1jzP5V1n3sOZ/2z1Qe",
        "$argon2id$v=19$m=8,t=1,p=1$s\u00e4lz$d1gest",
        "corrupt-\u00e9",
    ],
)
def test_malformed_hash_verifies_false(hasher: PasswordHasher, encoded: str):
    assert hasher.verify("secret1", encoded) is False


def test_empty_inputs(hasher: PasswordHasher):
    with pytest.raises(ValueError):
        hasher.hash("")
    assert hasher.verify("", hasher.hash("secret1")) is False


def test_needs_rehash_when_parameters_change(hasher: PasswordHasher):
    encoded = hasher.hash("secret1")
    assert hasher.needs_rehash(encoded) is False

    stronger = PasswordHasher(time_cost=2, memory_cost=16, parallelism=1)
    assert stronger.needs_rehash(encoded) is True
    assert stronger.verify("secret1", encoded)


def test_unencodable_password_verifies_false(hasher: PasswordHasher):
    encoded = hasher.hash("secret1")
    assert hasher.verify("\ud800abc", encoded) is False
