"""Test fixtures for pki_issuer tests."""

import json
import threading
import time
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import NameOID

from pki_issuer.lib.config import EasyRSASettings, EndpointConfig, PKIConfig
from pki_issuer.lib.errors import NonZeroExitError
from pki_issuer.lib.executor import ProcessInvocation, ProcessResult

FAKE_OPENSSL_TEMPLATE = r"""#!/bin/sh
# Stand-in for openssl req/ca; shell builtins only (the environment has no PATH).
cmd="$1"
shift
printf '%s %s\n' "$cmd" "$EASYRSA_REQ_CN" >> "$EASYRSA_PKI/calls.log"
keyout=""
out=""
while [ $# -gt 0 ]; do
  case "$1" in
    -keyout) keyout="$2"; shift ;;
    -out) out="$2"; shift ;;
  esac
  shift
done
case "$cmd" in
  req)
    if [ "$EASYRSA_REQ_CN" = "fail-req" ]; then
      echo "req: problems making Certificate Request" >&2
      exit 1
    fi
    echo "Generating a RSA private key"
    printf '%s\n' __KEY_LINES__ > "$keyout"
    printf '%s\n' '-----BEGIN CERTIFICATE REQUEST-----' 'fake' '-----END CERTIFICATE REQUEST-----' > "$out"
    ;;
  ca)
    if [ "$EASYRSA_REQ_CN" = "fail-sign" ]; then
      echo "Using configuration from openssl-easyrsa.cnf"
      echo "ca: unable to load CA private key" >&2
      exit 2
    fi
    read serial < "$EASYRSA_PKI/serial"
    printf '%s\n' __CERT_LINES__ > "$out"
    printf 'V\t350101000000Z\t\t%02X\tunknown\t/CN=%s\n' "$serial" "$EASYRSA_REQ_CN" >> "$EASYRSA_PKI/index.txt"
    echo $((serial + 1)) > "$EASYRSA_PKI/serial"
    echo "Data Base Updated"
    ;;
  *)
    echo "unknown command $cmd" >&2
    exit 64
    ;;
esac
"""


def _shell_words(pem: bytes) -> str:
    return " ".join(f"'{line}'" for line in pem.decode("ascii").splitlines())


@pytest.fixture(scope="session")
def client_key() -> RSAPrivateKey:
    """Generate RSA private key standing in for OpenSSL's output."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def client_key_pem(client_key: RSAPrivateKey) -> bytes:
    """Return the client key as unencrypted PKCS8 PEM."""
    return client_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def client_cert(client_key: RSAPrivateKey) -> x509.Certificate:
    """Generate a self-signed client certificate with a known serial."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "test-client-001")])
    now = datetime.now(UTC)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(client_key.public_key())
        .serial_number(0x1F2E3D)
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=30))
        .sign(client_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def client_cert_pem(client_cert: x509.Certificate) -> bytes:
    """Return the client certificate as PEM."""
    return client_cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture
def pki_root(tmp_path: Path) -> Path:
    """Create an EasyRSA-style PKI directory with an empty index.

    Creates:
        {tmp}/pki/private/, reqs/, issued/
        {tmp}/pki/index.txt (empty), serial (counter starting at 1)
    """
    root = tmp_path / "pki"
    for sub in ("private", "reqs", "issued"):
        (root / sub).mkdir(parents=True)
    (root / "index.txt").write_text("")
    (root / "serial").write_text("1\n")
    return root


@pytest.fixture
def fake_openssl(tmp_path: Path, client_key_pem: bytes, client_cert_pem: bytes) -> Path:
    """Write an executable shell script that mimics openssl req and ca."""
    script = (
        FAKE_OPENSSL_TEMPLATE.replace("__KEY_LINES__", _shell_words(client_key_pem))
        .replace("__CERT_LINES__", _shell_words(client_cert_pem))
    )
    path = tmp_path / "bin" / "openssl"
    path.parent.mkdir()
    path.write_text(script)
    path.chmod(0o755)
    return path


@pytest.fixture
def pki_config(pki_root: Path, fake_openssl: Path) -> PKIConfig:
    """Return PKIConfig pointing at the temporary PKI and fake openssl."""
    return PKIConfig(
        pki_root=pki_root,
        ca_cert=pki_root / "ca.crt",
        ca_key=pki_root / "private" / "ca.key",
        index_path=pki_root / "index.txt",
        openssl_config=pki_root / "openssl-easyrsa.cnf",
        endpoints={
            "vpn": EndpointConfig(name="vpn", key_size=2048),
            "api": EndpointConfig(name="api", key_size=4096),
        },
        openssl_binary=fake_openssl,
        timeout=30.0,
        easyrsa=EasyRSASettings(),
    )


@pytest.fixture
def config_file(tmp_path: Path, pki_root: Path, fake_openssl: Path) -> Path:
    """Write a JSON config file matching pki_config."""
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "pki": {
                    "root": str(pki_root),
                    "cacert": str(pki_root / "ca.crt"),
                    "cakey": str(pki_root / "private" / "ca.key"),
                    "index": str(pki_root / "index.txt"),
                },
                "openssl": {
                    "config": str(pki_root / "openssl-easyrsa.cnf"),
                    "binary": str(fake_openssl),
                    "timeout": 30,
                },
                "endpoints": {"vpn": {"keysize": 2048}},
            }
        )
    )
    return path


class RecordingExecutor:
    """Executor stand-in that records invocations and succeeds after a delay."""

    def __init__(self, delay: float = 0.0, fail_on: str | None = None) -> None:
        self.delay = delay
        self.fail_on = fail_on
        self.invocations: list[ProcessInvocation] = []
        self.events: list[tuple[str, str, str]] = []
        self._lock = threading.Lock()

    def __call__(self, invocation: ProcessInvocation, timeout: float | None = None) -> ProcessResult:
        subcommand = invocation.arguments[0]
        common_name = invocation.environment["EASYRSA_REQ_CN"]
        with self._lock:
            self.invocations.append(invocation)
            self.events.append(("start", subcommand, common_name))
        time.sleep(self.delay)
        with self._lock:
            self.events.append(("end", subcommand, common_name))
        if self.fail_on == subcommand:
            raise NonZeroExitError(invocation.command, 1, captured_output=b"boom")
        return ProcessResult(exit_code=0, output=b"")


@pytest.fixture
def recording_executor() -> RecordingExecutor:
    """Return executor stand-in that records calls."""
    return RecordingExecutor()


@pytest.fixture
def make_recording_executor() -> type[RecordingExecutor]:
    """Return the RecordingExecutor class for tests needing delays or failures."""
    return RecordingExecutor
