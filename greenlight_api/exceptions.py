"""Greenlight Offer API exceptions."""

from typing import Optional


class GreenlightApiError(Exception):
    """Base exception for the API. The message is safe to return to callers."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CredentialMissingError(GreenlightApiError):
    """Developer certificate or key could not be resolved from any source."""

    def __init__(self, kind: str, path: str):
        self.kind = kind
        self.path = path
        super().__init__(f"Developer {kind} not found at {path}")


class MissingCertificateError(CredentialMissingError):
    def __init__(self, path: str):
        super().__init__("certificate", path)


class MissingKeyError(CredentialMissingError):
    def __init__(self, path: str):
        super().__init__("key", path)


class HandshakeError(GreenlightApiError):
    """A step of the scheduler/node handshake failed."""

    step = "complete handshake"

    def __init__(self, cause: Optional[BaseException] = None, reason: Optional[str] = None):
        self.cause = cause
        self.reason = reason if reason is not None else str(cause)
        super().__init__(f"Failed to {self.step}: {self.reason}")


class SchedulerError(HandshakeError):
    step = "create scheduler"


class SignerError(HandshakeError):
    step = "create signer"


class RegistrationError(HandshakeError):
    step = "register node"


class AuthenticationError(HandshakeError):
    step = "authenticate"


class NodeUnavailableError(HandshakeError):
    step = "get node"


class OfferCreationError(HandshakeError):
    step = "create offer"


class DnsRecordError(GreenlightApiError):
    """Cloudflare refused or failed to create the username DNS record."""

    def __init__(self, message: str, errors: Optional[list] = None):
        self.errors = errors or []
        super().__init__(message)
