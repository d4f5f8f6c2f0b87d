"""EasyRSA file layout for per-client artifacts."""

from collections.abc import Callable
from pathlib import Path

from pki_issuer.lib.models import CertificatePaths

PathResolver = Callable[[Path, str], CertificatePaths]


def resolve_paths(pki_root: Path, common_name: str) -> CertificatePaths:
    """Return key, request and certificate paths for a CN under an EasyRSA PKI."""
    return CertificatePaths(
        pki_root=pki_root,
        private_key_path=pki_root / "private" / f"{common_name}.key",
        csr_path=pki_root / "reqs" / f"{common_name}.req",
        cert_path=pki_root / "issued" / f"{common_name}.crt",
    )
