"""
Tests for the credential cipher.
"""

import base64
import hashlib

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from escrow.models.domain.errors import DecryptionFailed, NoDecryptableCredentials
from escrow.services.infrastructure.credential_cipher import (
    decrypt,
    decrypt_all,
    decrypt_credential,
    encrypt,
)

SECRET_KEY = "correct horse battery staple"


def _legacy_encrypt(plaintext: str, secret_key: str, iv: bytes) -> str:
    key = base64.b64encode(hashlib.sha256(secret_key.encode()).digest())[:32]
    encryptor = Cipher(algorithms.AES(key), modes.CTR(iv)).encryptor()
    ciphertext = encryptor.update(plaintext.encode()) + encryptor.finalize()
    return f"{iv.hex()}:{ciphertext.hex()}"


def test_encrypt_decrypt_round_trip():
    encrypted = encrypt("hunter2", SECRET_KEY)

    assert encrypted != "hunter2"
    assert decrypt(encrypted, SECRET_KEY) == "hunter2"


def test_decrypt_with_wrong_key_fails():
    encrypted = encrypt("hunter2", SECRET_KEY)

    with pytest.raises(DecryptionFailed):
        decrypt(encrypted, "not the key")


def test_decrypts_legacy_ctr_payload():
    payload = _legacy_encrypt("s3cr3t-passw0rd", SECRET_KEY, iv=bytes(range(16)))

    assert decrypt(payload, SECRET_KEY) == "s3cr3t-passw0rd"


@pytest.mark.parametrize(
    "payload",
    ["", "zz:00", "abcd:ef01", "00112233:44:55", "not-a-token"],
)
def test_malformed_payloads_fail(payload):
    with pytest.raises(DecryptionFailed):
        decrypt(payload, SECRET_KEY)


def test_empty_key_fails():
    with pytest.raises(DecryptionFailed):
        decrypt(encrypt("x", SECRET_KEY), "")


def test_pin_failure_keeps_credential_without_pin(credential_repo):
    credential = credential_repo.add(
        "user-1", "Bank", "pw", encrypted_pin=encrypt("1234", "some other key")
    )

    outcome = decrypt_credential(credential, SECRET_KEY)

    assert not outcome.failed
    assert outcome.credential.password == "pw"
    assert outcome.credential.transaction_pin is None
    assert outcome.pin_error is not None


def test_primary_failure_excludes_credential(credential_repo):
    good = credential_repo.add("user-1", "Mail", "pw-1", pin="9999")
    bad = credential_repo.add("user-1", "Broker", "pw-2", key="some other key")

    batch = decrypt_all([good, bad], SECRET_KEY)

    assert [c.website_name for c in batch.decrypted] == ["Mail"]
    assert batch.decrypted[0].transaction_pin == "9999"
    assert batch.failed_items == ["Broker"]


def test_all_failures_raise_no_decryptable_credentials(credential_repo):
    creds = [
        credential_repo.add("user-1", "Mail", "pw-1", key="other"),
        credential_repo.add("user-1", "Bank", "pw-2", key="other"),
    ]

    with pytest.raises(NoDecryptableCredentials) as exc:
        decrypt_all(creds, SECRET_KEY)

    assert exc.value.failed_items == ["Mail", "Bank"]
    assert "Failed items: Mail, Bank" in exc.value.message


def test_empty_input_is_not_an_error():
    batch = decrypt_all([], SECRET_KEY)

    assert batch.decrypted == []
    assert batch.failed_items == []
