"""PKI configuration dataclasses and JSON loader."""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from pki_issuer.lib.errors import ConfigError, UnknownEndpointError

DEFAULT_OPENSSL_BINARY = Path("/usr/bin/openssl")
DEFAULT_TIMEOUT_SECONDS = 300.0


@dataclass(frozen=True)
class SubjectDefaults:
    """Request subject fields passed to the CA tool alongside the CN."""

    country: str = "US"
    province: str = "California"
    city: str = "San Francisco"
    organization: str = "Copyleft Certificate Co"
    organizational_unit: str = "My Organizational Unit"
    email: str = "me@example.net"


@dataclass(frozen=True)
class EasyRSASettings:
    """EasyRSA environment defaults for CA tool invocations."""

    cert_expire_days: int = 3650
    crl_days: int = 180
    digest: str = "sha256"
    dn_mode: str = "cn_only"
    key_size: int = 2048
    subject: SubjectDefaults = field(default_factory=SubjectDefaults)


@dataclass(frozen=True)
class EndpointConfig:
    """Per-endpoint issuance parameters."""

    name: str
    key_size: int


@dataclass(frozen=True)
class PKIConfig:
    """Configuration consumed by issuance and inventory operations."""

    pki_root: Path
    ca_cert: Path
    ca_key: Path
    index_path: Path
    openssl_config: Path
    endpoints: dict[str, EndpointConfig]
    openssl_binary: Path = DEFAULT_OPENSSL_BINARY
    timeout: float | None = DEFAULT_TIMEOUT_SECONDS
    easyrsa: EasyRSASettings = field(default_factory=EasyRSASettings)

    def endpoint(self, name: str) -> EndpointConfig:
        """Look up an endpoint by name.

        Raises:
            UnknownEndpointError: If the endpoint is not configured
        """
        try:
            return self.endpoints[name]
        except KeyError:
            raise UnknownEndpointError(name) from None


def _section(data: dict[str, Any], name: str, required: bool = True) -> dict[str, Any]:
    value = data.get(name)
    if value is None:
        if required:
            raise ConfigError(f"missing config section: {name}")
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"config section {name} must be an object")
    return value


def _require_str(section: dict[str, Any], key: str, prefix: str) -> str:
    value = section.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigError(f"missing or invalid config field: {prefix}.{key}")
    return value


def _positive_int(value: Any, name: str) -> int:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"config field {name} must be a positive integer")
    return value


def _parse_endpoints(section: dict[str, Any]) -> dict[str, EndpointConfig]:
    endpoints: dict[str, EndpointConfig] = {}
    for name, raw in section.items():
        if not isinstance(raw, dict):
            raise ConfigError(f"endpoint {name} must be an object")
        key_size = _positive_int(raw.get("keysize"), f"endpoints.{name}.keysize")
        endpoints[name] = EndpointConfig(name=name, key_size=key_size)
    return endpoints


def _parse_easyrsa(section: dict[str, Any], subject_section: dict[str, Any]) -> EasyRSASettings:
    defaults = EasyRSASettings()
    subject_keys = {f.name for f in fields(SubjectDefaults)}

    subject_values: dict[str, str] = {}
    for key in subject_section:
        if key not in subject_keys:
            raise ConfigError(f"unknown config field: subject.{key}")
        subject_values[key] = str(subject_section[key])

    return EasyRSASettings(
        cert_expire_days=_positive_int(
            section.get("cert_expire_days", defaults.cert_expire_days),
            "easyrsa.cert_expire_days",
        ),
        crl_days=_positive_int(section.get("crl_days", defaults.crl_days), "easyrsa.crl_days"),
        digest=str(section.get("digest", defaults.digest)),
        dn_mode=str(section.get("dn_mode", defaults.dn_mode)),
        key_size=_positive_int(section.get("key_size", defaults.key_size), "easyrsa.key_size"),
        subject=SubjectDefaults(**subject_values),
    )


def parse_config(data: dict[str, Any], base_dir: Path | None = None) -> PKIConfig:
    """Build PKIConfig from a decoded configuration document.

    Relative paths are resolved against base_dir when given.

    Args:
        data: Decoded JSON configuration
        base_dir: Directory relative paths are anchored to

    Returns:
        Validated PKIConfig

    Raises:
        ConfigError: If a required field is missing or invalid
    """
    if not isinstance(data, dict):
        raise ConfigError("config root must be an object")

    def as_path(value: str) -> Path:
        path = Path(value)
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        return path

    pki = _section(data, "pki")
    openssl = _section(data, "openssl")
    endpoints = _section(data, "endpoints")

    index_path = as_path(_require_str(pki, "index", "pki"))
    root_value = pki.get("root")
    pki_root = as_path(root_value) if root_value else index_path.parent

    timeout = openssl.get("timeout", DEFAULT_TIMEOUT_SECONDS)
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError("config field openssl.timeout must be a positive number or null")
        timeout = float(timeout)

    return PKIConfig(
        pki_root=pki_root,
        ca_cert=as_path(_require_str(pki, "cacert", "pki")),
        ca_key=as_path(_require_str(pki, "cakey", "pki")),
        index_path=index_path,
        openssl_config=as_path(_require_str(openssl, "config", "openssl")),
        openssl_binary=Path(openssl.get("binary") or DEFAULT_OPENSSL_BINARY),
        timeout=timeout,
        endpoints=_parse_endpoints(endpoints),
        easyrsa=_parse_easyrsa(
            _section(data, "easyrsa", required=False),
            _section(data, "subject", required=False),
        ),
    )


def load_config(path: Path) -> PKIConfig:
    """Load PKIConfig from a JSON file.

    Relative paths inside the file are resolved against the file's directory.

    Raises:
        ConfigError: If the file cannot be read, is not valid JSON, or is invalid
    """
    try:
        data = json.loads(path.read_text())
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in config {path}: {e}") from e

    return parse_config(data, base_dir=path.parent)
