"""Self-signed certificate material for the TLS listener."""

import datetime
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from dummy_server.domain.correlation_id import get_logger

TLS_LOGGER = get_logger("bootstrap.tls")

CERT_FILE_NAME = "tls.crt"
KEY_FILE_NAME = "tls.key"
KEY_SIZE = 2048
VALIDITY_DAYS = 365


@dataclass(frozen=True)
class TlsMaterial:
    """Paths of a certificate chain and its private key on disk."""

    cert_file: str
    key_file: str


def build_self_signed_certificate(
    hostname: str, key_size: int = KEY_SIZE, validity_days: int = VALIDITY_DAYS
) -> tuple[bytes, bytes]:
    """Return PEM encoded ``(certificate, private_key)`` for ``hostname``."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    subject = issuer = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, hostname)])
    alt_names = [x509.DNSName(hostname)]
    if hostname != "localhost":
        alt_names.append(x509.DNSName("localhost"))
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=validity_days))
        .add_extension(x509.SubjectAlternativeName(alt_names), critical=False)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return cert_pem, key_pem


def _write_private(path: Path, data: bytes) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as file_handle:
        file_handle.write(data)


def materialize_self_signed(hostname: str, key_size: int = KEY_SIZE) -> TlsMaterial:
    """Generate a certificate and write it to a fresh temporary directory."""
    cert_pem, key_pem = build_self_signed_certificate(hostname, key_size)
    tls_dir = Path(tempfile.mkdtemp(suffix=".tls"))
    cert_file = tls_dir / CERT_FILE_NAME
    key_file = tls_dir / KEY_FILE_NAME
    _write_private(cert_file, cert_pem)
    _write_private(key_file, key_pem)
    TLS_LOGGER.info(
        "Generated self-signed TLS certificate",
        extra={
            "event": "tls_material_generated",
            "host": hostname,
            "cert_dir": tls_dir.as_posix(),
        },
    )
    return TlsMaterial(cert_file.as_posix(), key_file.as_posix())


def resolve_tls_material(
    cert: str | None, key: str | None, hostname: str
) -> TlsMaterial:
    """Use the configured certificate pair, or generate one when either is missing."""
    if cert and key:
        return TlsMaterial(cert, key)
    return materialize_self_signed(hostname)
