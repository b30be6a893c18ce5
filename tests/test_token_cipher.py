try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from mailroom.services.token_cipher import (
    TokenCipherService,
    hash_password,
    verify_password,
)


def test_token_cipher_roundtrip() -> None:
    cipher = TokenCipherService(secret="super-secret-key")
    plaintext = "ya29.refresh-me"

    encrypted = cipher.encrypt(plaintext)
    assert encrypted != plaintext
    assert cipher.decrypt(encrypted) == plaintext


def test_token_cipher_rejects_bad_ciphertext() -> None:
    cipher = TokenCipherService(secret="another-secret")

    with pytest.raises(ValueError):
        cipher.decrypt("not-valid")


def test_ciphertext_from_another_secret_is_rejected() -> None:
    encrypted = TokenCipherService(secret="first").encrypt("value")

    with pytest.raises(ValueError):
        TokenCipherService(secret="second").decrypt(encrypted)


def test_empty_secret_is_refused() -> None:
    with pytest.raises(ValueError):
        TokenCipherService(secret="")


def test_decrypt_optional_passes_empty_values_through() -> None:
    cipher = TokenCipherService(secret="secret")

    assert cipher.decrypt_optional(None) is None
    assert cipher.decrypt_optional("") is None
    assert cipher.decrypt_optional(cipher.encrypt("x")) == "x"


def test_fingerprint_is_deterministic_and_keyed() -> None:
    cipher = TokenCipherService(secret="secret")

    assert cipher.fingerprint("token") == cipher.fingerprint("token")
    assert cipher.fingerprint("token") != cipher.fingerprint("other")
    assert cipher.fingerprint("token") != TokenCipherService(secret="else").fingerprint("token")


def test_password_hash_verifies_only_the_hashed_password() -> None:
    hashed = hash_password("hunter2")

    assert hashed != "hunter2"
    assert verify_password("hunter2", hashed)
    assert not verify_password("hunter3", hashed)
