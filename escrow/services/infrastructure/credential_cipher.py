"""
Credential cipher.

Decrypts stored credential secrets with a user-supplied secret key. The key
is passed per call and is never persisted or logged.

Two payload formats are accepted:
- legacy "<iv-hex>:<ciphertext-hex>", AES-256-CTR keyed by
  base64(sha256(secret))[:32]; CTR is unauthenticated, so a plaintext that
  is not valid UTF-8 is treated as a wrong key
- Fernet tokens keyed by urlsafe_b64(sha256(secret)); written by encrypt()
"""

import base64
import binascii
import hashlib

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from escrow.infrastructure.observability.logging import get_logger
from escrow.models.domain.errors import DecryptionFailed, NoDecryptableCredentials
from escrow.models.domain.escrow_domain import (
    Credential,
    CredentialDecryption,
    DecryptedCredential,
    DecryptionBatch,
)

logger = get_logger(__name__)

LEGACY_SEPARATOR = ":"
LEGACY_IV_BYTES = 16


def _legacy_key(secret_key: str) -> bytes:
    digest = hashlib.sha256(secret_key.encode("utf-8")).digest()
    return base64.b64encode(digest)[:32]


def _fernet(secret_key: str) -> Fernet:
    digest = hashlib.sha256(secret_key.encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def _decrypt_legacy(payload: str, secret_key: str) -> str:
    parts = payload.split(LEGACY_SEPARATOR)
    if len(parts) != 2:
        raise DecryptionFailed("Invalid encrypted format")

    try:
        iv = bytes.fromhex(parts[0])
        ciphertext = bytes.fromhex(parts[1])
    except ValueError as e:
        raise DecryptionFailed("Invalid encrypted format") from e

    if len(iv) != LEGACY_IV_BYTES:
        raise DecryptionFailed("Invalid encrypted format")

    decryptor = Cipher(algorithms.AES(_legacy_key(secret_key)), modes.CTR(iv)).decryptor()
    plaintext = decryptor.update(ciphertext) + decryptor.finalize()

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionFailed() from e


def encrypt(plaintext: str, secret_key: str) -> str:
    """Encrypt a secret for storage (Fernet format)."""
    if not secret_key:
        raise ValueError("secret_key must be a non-empty string")
    return _fernet(secret_key).encrypt(plaintext.encode("utf-8")).decode("ascii")


def decrypt(encrypted_payload: str, secret_key: str) -> str:
    """
    Decrypt one stored value.

    Raises:
        DecryptionFailed: wrong key, corrupted payload or unknown format
    """
    if not encrypted_payload or not secret_key:
        raise DecryptionFailed()

    if LEGACY_SEPARATOR in encrypted_payload:
        return _decrypt_legacy(encrypted_payload, secret_key)

    try:
        return _fernet(secret_key).decrypt(encrypted_payload.encode("ascii")).decode("utf-8")
    except (InvalidToken, UnicodeError, binascii.Error, ValueError) as e:
        raise DecryptionFailed() from e


def decrypt_credential(credential: Credential, secret_key: str) -> CredentialDecryption:
    """
    Decrypt a credential's secret and, independently, its PIN.

    A failed PIN keeps the credential (without PIN); a failed secret drops it.
    """
    outcome = CredentialDecryption(credential_id=credential.id, website_name=credential.website_name)

    try:
        password = decrypt(credential.encrypted_secret, secret_key)
    except DecryptionFailed as e:
        outcome.error = e.message
        logger.warning(
            "Credential decryption failed",
            user_id=credential.user_id,
            credential_id=credential.id,
        )
        return outcome

    pin = None
    if credential.encrypted_pin:
        try:
            pin = decrypt(credential.encrypted_pin, secret_key)
        except DecryptionFailed as e:
            outcome.pin_error = e.message
            logger.warning(
                "Transaction PIN decryption failed, sharing without PIN",
                user_id=credential.user_id,
                credential_id=credential.id,
            )

    outcome.credential = DecryptedCredential(
        website_name=credential.website_name,
        description=credential.description,
        username=credential.username,
        password=password,
        transaction_pin=pin,
        notes=credential.notes,
        category=credential.category,
        validity=credential.validity,
    )
    return outcome


def decrypt_all(credentials: list[Credential], secret_key: str) -> DecryptionBatch:
    """
    Partition credentials into decrypted and failed.

    Raises:
        NoDecryptableCredentials: credentials exist but none could be decrypted
    """
    batch = DecryptionBatch()

    for credential in credentials:
        outcome = decrypt_credential(credential, secret_key)
        if outcome.failed:
            batch.failed_items.append(credential.website_name)
            batch.diagnostics.append(f"{credential.website_name}: {outcome.error}")
            continue

        batch.decrypted.append(outcome.credential)
        if outcome.pin_error:
            batch.diagnostics.append(f"{credential.website_name}: PIN omitted ({outcome.pin_error})")

    if credentials and not batch.decrypted:
        raise NoDecryptableCredentials(batch.failed_items)

    return batch
