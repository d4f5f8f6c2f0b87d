#!/usr/bin/env python3
"""Issue a client certificate from the EasyRSA-managed CA."""

import argparse
import sys
from pathlib import Path

from pki_issuer.lib.config import load_config
from pki_issuer.lib.errors import ExecutionError, PKIError
from pki_issuer.lib.issuer import CertificateIssuer
from pki_issuer.lib.key_utils import get_serial_hex, read_certificate_serial
from pki_issuer.lib.logging_config import LOGGER


def _read_passphrase(path: Path | None) -> str | None:
    if path is None:
        return None
    return path.read_text().rstrip("\r\n")


def main(argv: list[str] | None = None) -> int:
    """Issue a client certificate for an endpoint.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Issue a client certificate")
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="JSON configuration file (pki, openssl, endpoints)",
    )
    parser.add_argument(
        "--endpoint",
        required=True,
        help="Endpoint name whose key size is used",
    )
    parser.add_argument(
        "--common-name",
        required=True,
        help="Client identifier (used as CN in certificate)",
    )
    parser.add_argument(
        "--passphrase-file",
        type=Path,
        default=None,
        help="File holding a passphrase to encrypt the private key with",
    )
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        passphrase = _read_passphrase(args.passphrase_file)
        issuer = CertificateIssuer(config)

        LOGGER.info("Issuing certificate for: %s", args.common_name)
        paths = issuer.issue(args.endpoint, args.common_name, passphrase=passphrase)

        LOGGER.info("Client certificate created:")
        LOGGER.info("  Key: %s", paths.private_key_path)
        LOGGER.info("  Req: %s", paths.csr_path)
        LOGGER.info("  Cert: %s", paths.cert_path)
        try:
            LOGGER.info("  Serial: %s", get_serial_hex(read_certificate_serial(paths.cert_path)))
        except (OSError, ValueError) as e:
            LOGGER.warning("Could not read serial from %s: %s", paths.cert_path, e)
        return 0

    except ExecutionError as e:
        LOGGER.error("Certificate issuance failed: %s\n%s", e, e.output_text)
        return 1
    except (PKIError, ValueError, OSError) as e:
        LOGGER.error("Certificate issuance failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
