"""Certificate inventory read from the OpenSSL CA index file (index.txt)."""

import re
from datetime import UTC, datetime
from pathlib import Path

from pki_issuer.lib.config import PKIConfig
from pki_issuer.lib.errors import LedgerFormatError, LedgerReadError, SubjectParseError
from pki_issuer.lib.models import CertificateRecord, CertificateState

_TAB_RUN = re.compile(r"\t+")
_CN = re.compile(r"/CN=([^/\r\n]+)")
_KNOWN_STATES = {state.value: state for state in CertificateState}

# OpenSSL writes UTCTime before 2050 and GeneralizedTime from 2050 on
_TIME_FORMATS = {13: "%y%m%d%H%M%SZ", 15: "%Y%m%d%H%M%SZ"}


def parse_asn1_time(value: str) -> datetime:
    """Parse an index-file timestamp (YYMMDDHHMMSSZ or YYYYMMDDHHMMSSZ) as UTC.

    Raises:
        ValueError: If the value is in neither format
    """
    time_format = _TIME_FORMATS.get(len(value))
    if time_format is None:
        raise ValueError(f"unexpected timestamp {value!r}")
    parsed = datetime.strptime(value, time_format).replace(tzinfo=UTC)
    # RFC 5280 UTCTime: YY >= 50 means 19YY
    if len(value) == 13 and parsed.year >= 2050:
        parsed = parsed.replace(year=parsed.year - 100)
    return parsed


def extract_common_name(subject: str) -> str | None:
    """Return the CN value of a slash-separated subject DN, or None."""
    match = _CN.search(subject)
    return match.group(1) if match else None


def parse_ledger_line(line: str, line_number: int) -> CertificateRecord:
    """Decode one index line into a CertificateRecord.

    Runs of tabs count as one separator, so the empty revocation column of
    valid and expired rows disappears and revoked rows carry one more field.
    State codes other than V, R and E are kept as the raw string.

    Args:
        line: Line without its trailing newline
        line_number: 1-based line number, reported in errors

    Raises:
        LedgerFormatError: If the line does not match the index schema
        SubjectParseError: If the subject DN has no CN
    """
    fields = _TAB_RUN.split(line)

    if len(fields) == 5:
        state_code, expiry, serial_hex, _, subject = fields
        revocation = None
    elif len(fields) == 6:
        state_code, expiry, revocation, serial_hex, _, subject = fields
    else:
        raise LedgerFormatError(line_number, f"expected 5 or 6 fields, got {len(fields)}")

    if not state_code:
        raise LedgerFormatError(line_number, "empty state")
    state = _KNOWN_STATES.get(state_code, state_code)

    if (revocation is None) != (state is not CertificateState.REVOKED):
        raise LedgerFormatError(line_number, "revocation date does not match state")

    try:
        expires_at = parse_asn1_time(expiry)
    except ValueError as e:
        raise LedgerFormatError(line_number, f"invalid expiry: {e}") from None

    revoked_at = None
    revocation_reason = None
    if revocation is not None:
        revoked_value, _, reason = revocation.partition(",")
        try:
            revoked_at = parse_asn1_time(revoked_value)
        except ValueError as e:
            raise LedgerFormatError(line_number, f"invalid revocation date: {e}") from None
        revocation_reason = reason or None

    try:
        serial = int(serial_hex, 16)
    except ValueError:
        raise LedgerFormatError(line_number, f"invalid serial {serial_hex!r}") from None

    common_name = extract_common_name(subject)
    if common_name is None:
        raise SubjectParseError(line_number, subject)

    return CertificateRecord(
        state=state,
        expires_at=expires_at,
        serial=serial,
        serial_hex=serial_hex,
        subject=subject,
        common_name=common_name,
        revoked_at=revoked_at,
        revocation_reason=revocation_reason,
    )


def parse_ledger(data: str | bytes) -> list[CertificateRecord]:
    """Decode index file contents, keeping file order.

    Bytes are decoded as UTF-8 one line at a time, so an undecodable line is
    reported by number. A trailing carriage return on each line is dropped.

    Raises:
        LedgerFormatError: If a line cannot be decoded
    """
    lines = data.split(b"\n" if isinstance(data, bytes) else "\n")
    if lines and not lines[-1]:
        lines.pop()

    records = []
    for number, line in enumerate(lines, start=1):
        if isinstance(line, bytes):
            try:
                line = line.decode("utf-8")
            except UnicodeDecodeError as e:
                raise LedgerFormatError(number, f"invalid UTF-8: {e.reason}") from None
        records.append(parse_ledger_line(line.removesuffix("\r"), number))
    return records


def list_certificates(ledger_path: Path) -> list[CertificateRecord]:
    """Read the CA index file and return every certificate it records.

    The inventory is rebuilt from the file on every call.

    Raises:
        LedgerReadError: If the file cannot be read
        LedgerFormatError: If a line cannot be decoded
    """
    try:
        data = ledger_path.read_bytes()
    except OSError as e:
        raise LedgerReadError(ledger_path, e) from e
    return parse_ledger(data)


def list_certificates_from_config(config: PKIConfig) -> list[CertificateRecord]:
    """List certificates recorded in the configured index file."""
    return list_certificates(config.index_path)
