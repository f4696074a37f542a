"""
Certificate/key materialization.

Certificates may be given inline as PEM text or as file paths. ``ssl`` only reads
key pairs from files, so inline PEM is written into a caller-supplied directory
(or a temporary one that is removed once the context is built) instead of the
working directory.
"""

from __future__ import annotations

import os
import ssl
import tempfile
from pathlib import Path

import structlog

from confseal.core.errors import CertificateError

logger = structlog.get_logger()

PEM_MARKER = "---"
CERTIFICATE_FILE = "broker.crt"
PRIVATE_KEY_FILE = "broker.key"


def is_inline_pem(value: str) -> bool:
    return value.startswith(PEM_MARKER)


def _write_private(path: Path, content: str) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)


def materialize(certificate: str, private_key: str, directory: Path) -> tuple[Path, Path]:
    """Return absolute certificate and key paths, writing inline PEM into ``directory``."""
    if not certificate or not private_key:
        raise CertificateError("Both a certificate and a private key are required")

    directory = Path(directory)
    try:
        if is_inline_pem(certificate):
            cert_path = directory / CERTIFICATE_FILE
            _write_private(cert_path, certificate)
        else:
            cert_path = Path(certificate)

        if is_inline_pem(private_key):
            key_path = directory / PRIVATE_KEY_FILE
            _write_private(key_path, private_key)
        else:
            key_path = Path(private_key)
    except OSError as e:
        raise CertificateError(
            "Unable to write certificate material", {"directory": str(directory)}
        ) from e

    return cert_path.absolute(), key_path.absolute()


def load_context(
    certificate: str, private_key: str, directory: Path | None = None
) -> ssl.SSLContext:
    """Build a server-side ``SSLContext`` from the configured key pair."""
    if directory is not None:
        return _load_from(certificate, private_key, Path(directory))

    with tempfile.TemporaryDirectory(prefix="confseal-tls-") as tmp:
        return _load_from(certificate, private_key, Path(tmp))


def _load_from(certificate: str, private_key: str, directory: Path) -> ssl.SSLContext:
    cert_path, key_path = materialize(certificate, private_key, directory)
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    try:
        context.load_cert_chain(certfile=str(cert_path), keyfile=str(key_path))
    except (OSError, ssl.SSLError) as e:
        logger.error("certificate_load_failed", certificate=str(cert_path), error=type(e).__name__)
        raise CertificateError(
            "Unable to load the certificate key pair",
            {"certificate": str(cert_path), "private": str(key_path)},
        ) from e
    return context
