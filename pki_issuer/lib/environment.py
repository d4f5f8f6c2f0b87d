"""EasyRSA-compatible environment for CA tool invocations."""

from pathlib import Path

from pki_issuer.lib.config import EasyRSASettings


def build_environment(
    pki_root: Path,
    common_name: str,
    settings: EasyRSASettings,
) -> dict[str, str]:
    """Build the complete environment for an OpenSSL call against an EasyRSA PKI.

    The result replaces the caller's environment entirely; the OpenSSL
    config generated by EasyRSA expands these variables.

    Args:
        pki_root: PKI directory initialised by EasyRSA
        common_name: Subject CN of the certificate being worked on
        settings: Expiry windows, digest, DN mode and subject defaults

    Returns:
        Mapping of EASYRSA_* variable names to string values
    """
    subject = settings.subject
    return {
        "EASYRSA_PKI": str(pki_root),
        "EASYRSA_CERT_EXPIRE": str(settings.cert_expire_days),
        "EASYRSA_CRL_DAYS": str(settings.crl_days),
        "EASYRSA_DIGEST": settings.digest,
        "EASYRSA_KEY_SIZE": str(settings.key_size),
        "EASYRSA_DN": settings.dn_mode,
        "EASYRSA_REQ_CN": common_name,
        "EASYRSA_REQ_COUNTRY": subject.country,
        "EASYRSA_REQ_PROVINCE": subject.province,
        "EASYRSA_REQ_CITY": subject.city,
        "EASYRSA_REQ_ORG": subject.organization,
        "EASYRSA_REQ_OU": subject.organizational_unit,
        "EASYRSA_REQ_EMAIL": subject.email,
    }
