"""Data models for issuance requests, results, and ledger records."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class CertificatePaths:
    """Locations of the artifacts produced for one common name.

    Contains the PKI root the paths were resolved against, plus the
    private key, CSR, and certificate file paths.
    """

    pki_root: Path
    private_key_path: Path
    csr_path: Path
    cert_path: Path

    def artifacts(self) -> tuple[Path, Path, Path]:
        """Return (key, csr, cert) in the order they are created."""
        return self.private_key_path, self.csr_path, self.cert_path


@dataclass(frozen=True)
class IssuanceRequest:
    """Everything needed to generate and sign one client certificate."""

    common_name: str
    key_size: int
    config_path: Path
    paths: CertificatePaths


class CertificateState(str, Enum):
    """Well-known certificate status codes of the OpenSSL CA index file.

    Ledgers may carry other per-authority codes; records keep those as the
    raw string.
    """

    VALID = "V"
    REVOKED = "R"
    EXPIRED = "E"


@dataclass(frozen=True)
class CertificateRecord:
    """One ledger line decoded into a certificate inventory entry."""

    state: CertificateState | str
    expires_at: datetime
    serial: int
    serial_hex: str
    subject: str
    common_name: str
    revoked_at: datetime | None = None
    revocation_reason: str | None = None

    @property
    def state_code(self) -> str:
        """Status code exactly as written in the ledger."""
        if isinstance(self.state, CertificateState):
            return self.state.value
        return self.state

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        data: dict[str, Any] = {
            "state": self.state_code,
            "subject": self.subject,
            "name": self.common_name,
            "expires": self.expires_at.isoformat(),
            "serial": self.serial,
            "serialHex": self.serial_hex,
        }
        if self.revoked_at is not None:
            data["revokedAt"] = self.revoked_at.isoformat()
        if self.revocation_reason is not None:
            data["revocationReason"] = self.revocation_reason
        return data
