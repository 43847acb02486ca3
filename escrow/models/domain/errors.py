"""
Error taxonomy for the escrow subsystem.

Precondition failures (NoCredentials, NoRecipients, NoDecryptableCredentials)
are surfaced to callers verbatim. DecryptionFailed is per credential and never
aborts a batch.
"""


class EscrowError(Exception):
    """Base class for escrow domain errors."""

    code = "escrow_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__doc__ or self.code)
        self.message = message or self.__doc__ or self.code


class NoCredentials(EscrowError):
    """No passwords found to share"""

    code = "no_credentials"


class NoRecipients(EscrowError):
    """No emergency email contacts found"""

    code = "no_recipients"


class NoDecryptableCredentials(EscrowError):
    """Failed to decrypt passwords. Please check your secret key."""

    code = "no_decryptable_credentials"

    def __init__(self, failed_items: list[str]):
        message = f"{self.__doc__} Failed items: {', '.join(failed_items)}"
        super().__init__(message)
        self.failed_items = failed_items


class DecryptionFailed(EscrowError):
    """Incorrect secret key or corrupted data"""

    code = "decryption_failed"


class InvalidEmail(EscrowError):
    """Invalid email format"""

    code = "invalid_email"


class DuplicateContact(EscrowError):
    """This email is already added as an emergency contact"""

    code = "duplicate_contact"


class NotFoundOrUnauthorized(EscrowError):
    """Not found or unauthorized"""

    code = "not_found_or_unauthorized"
