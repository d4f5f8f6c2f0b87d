"""Key and certificate helpers for artifacts written by the CA tool."""

import os
import tempfile
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from pki_issuer.lib.errors import KeyEncryptionError


def deserialize_private_key(pem_data: bytes) -> PrivateKeyTypes:
    """Deserialize an unencrypted private key from PEM bytes."""
    return serialization.load_pem_private_key(pem_data, password=None)


def serialize_encrypted_private_key(key: PrivateKeyTypes, passphrase: bytes) -> bytes:
    """Serialize private key to PEM format (PKCS8, passphrase-encrypted)."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(passphrase),
    )


def _write_private_file(path: Path, data: bytes) -> None:
    """Replace path atomically with data, readable by the owner only."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def encrypt_private_key_file(key_path: Path, passphrase: str) -> None:
    """Encrypt an unencrypted PEM private key in place with a passphrase.

    Args:
        key_path: Path of the PEM key written by the CA tool
        passphrase: Non-empty passphrase

    Raises:
        ValueError: If passphrase is empty
        KeyEncryptionError: If the key cannot be read, parsed or rewritten
    """
    if not passphrase:
        raise ValueError("passphrase must not be empty")

    try:
        key = deserialize_private_key(key_path.read_bytes())
        _write_private_file(
            key_path, serialize_encrypted_private_key(key, passphrase.encode("utf-8"))
        )
    except (OSError, ValueError, TypeError) as e:
        raise KeyEncryptionError(f"cannot encrypt private key {key_path}: {e}") from e


def get_serial_hex(serial: int) -> str:
    """Return a serial number as colon-separated uppercase hex (e.g., 3A:F2:B1)."""
    serial_hex = f"{serial:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def read_certificate_serial(cert_path: Path) -> int:
    """Read the serial number of a PEM certificate on disk."""
    return x509.load_pem_x509_certificate(cert_path.read_bytes()).serial_number
