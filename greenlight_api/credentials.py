"""
Developer credential resolution.

The certificate and key are each taken from the first source that works:
1. GL_CERT_CONTENT / GL_KEY_CONTENT (Base64 if it decodes, raw otherwise)
2. the file at GL_CERT_PATH / GL_KEY_PATH

Nothing is cached: every call goes back to the sources so that a file
dropped in place after startup is picked up.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import structlog

from .config import Settings
from .exceptions import CredentialMissingError, MissingCertificateError, MissingKeyError

logger = structlog.get_logger(__name__)

SOURCE_ENV = "env"


@dataclass(frozen=True)
class CredentialPair:
    """Developer certificate/key bytes. Never rendered in reprs or logs."""

    cert: bytes = field(repr=False)
    key: bytes = field(repr=False)
    cert_source: str = SOURCE_ENV
    key_source: str = SOURCE_ENV


def decode_content(value: str) -> bytes:
    """Decode Base64 content, falling back to the raw UTF-8 bytes."""
    try:
        # Wrapped Base64 is common when the value was pasted from `base64 file`.
        return base64.b64decode("".join(value.split()), validate=True)
    except (binascii.Error, ValueError):
        return value.encode("utf-8")


def _read_file(path: str) -> Optional[bytes]:
    try:
        return Path(path).read_bytes()
    except OSError:
        return None


def _resolve(content: Optional[str], path: str) -> tuple[Optional[bytes], str]:
    if content and content.strip():
        return decode_content(content), SOURCE_ENV
    return _read_file(path), path


def load_credentials(settings: Settings) -> CredentialPair:
    """
    Resolve the developer certificate and key.

    Raises:
        MissingCertificateError: no certificate from env or file
        MissingKeyError: no key from env or file
    """
    cert, cert_source = _resolve(settings.gl_cert_content, settings.gl_cert_path)
    if cert is None:
        raise MissingCertificateError(settings.gl_cert_path)

    key, key_source = _resolve(settings.gl_key_content, settings.gl_key_path)
    if key is None:
        raise MissingKeyError(settings.gl_key_path)

    logger.debug("Credentials loaded", cert_source=cert_source, key_source=key_source)
    return CredentialPair(cert=cert, key=key, cert_source=cert_source, key_source=key_source)


def credentials_available(settings: Settings, quiet: bool = False) -> bool:
    """
    Whether load_credentials would currently succeed.

    quiet logs a miss at debug instead of warning, for polled callers.
    """
    try:
        load_credentials(settings)
    except CredentialMissingError as e:
        log = logger.debug if quiet else logger.warning
        log("Credentials unavailable", error=e.message)
        return False
    return True
