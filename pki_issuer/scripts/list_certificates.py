#!/usr/bin/env python3
"""List certificates recorded in the CA index file as JSON."""

import argparse
import json
import sys
from pathlib import Path

from pki_issuer.lib.config import load_config
from pki_issuer.lib.errors import PKIError
from pki_issuer.lib.inventory import list_certificates, list_certificates_from_config
from pki_issuer.lib.logging_config import LOGGER


def main(argv: list[str] | None = None) -> int:
    """Print the certificate inventory to stdout.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="List issued certificates")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--config",
        type=Path,
        help="JSON configuration file; pki.index is read",
    )
    source.add_argument(
        "--index",
        type=Path,
        help="CA index file to read directly",
    )
    parser.add_argument(
        "--state",
        default=None,
        help="Only show certificates with this state code (V, R, E, ...)",
    )
    parser.add_argument(
        "--name",
        default=None,
        help="Only show certificates with this common name",
    )
    args = parser.parse_args(argv)

    try:
        if args.index:
            index_path = args.index
            records = list_certificates(index_path)
        else:
            config = load_config(args.config)
            index_path = config.index_path
            records = list_certificates_from_config(config)
    except PKIError as e:
        LOGGER.error("Listing certificates failed: %s", e)
        return 1

    if args.state:
        records = [r for r in records if r.state_code == args.state]
    if args.name:
        records = [r for r in records if r.common_name == args.name]

    LOGGER.info("Found %d certificates in %s", len(records), index_path)
    json.dump([record.to_dict() for record in records], sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
