"""OpenSSL request generation and signing against an EasyRSA PKI."""

import logging
from pathlib import Path

from pki_issuer.lib.config import DEFAULT_OPENSSL_BINARY, EasyRSASettings
from pki_issuer.lib.environment import build_environment
from pki_issuer.lib.executor import Executor, ProcessInvocation, ProcessResult, execute
from pki_issuer.lib.models import IssuanceRequest

logger = logging.getLogger(__name__)


def request_arguments(request: IssuanceRequest) -> list[str]:
    """Arguments for `openssl req`: new unencrypted key plus CSR, non-interactive."""
    return [
        "req",
        "-utf8",
        "-new",
        "-newkey",
        f"rsa:{request.key_size}",
        "-config",
        str(request.config_path),
        "-keyout",
        str(request.paths.private_key_path),
        "-out",
        str(request.paths.csr_path),
        "-nodes",
        "-batch",
    ]


def sign_arguments(request: IssuanceRequest) -> list[str]:
    """Arguments for `openssl ca`: sign the CSR into a certificate, non-interactive."""
    return [
        "ca",
        "-utf8",
        "-in",
        str(request.paths.csr_path),
        "-out",
        str(request.paths.cert_path),
        "-config",
        str(request.config_path),
        "-batch",
    ]


class OpenSSLCommands:
    """Runs OpenSSL in the environment EasyRSA would set up."""

    def __init__(
        self,
        settings: EasyRSASettings,
        binary: Path = DEFAULT_OPENSSL_BINARY,
        executor: Executor = execute,
        timeout: float | None = None,
    ) -> None:
        """Initialize OpenSSL command runner.

        Args:
            settings: EasyRSA environment defaults
            binary: Path to the openssl executable
            executor: Process executor (injectable for tests)
            timeout: Seconds before a single invocation is killed
        """
        self.settings = settings
        self.binary = binary
        self.executor = executor
        self.timeout = timeout

    def _run(self, arguments: list[str], request: IssuanceRequest) -> ProcessResult:
        invocation = ProcessInvocation.create(
            self.binary,
            arguments,
            build_environment(request.paths.pki_root, request.common_name, self.settings),
        )
        return self.executor(invocation, timeout=self.timeout)

    def generate_request(self, request: IssuanceRequest) -> None:
        """Generate a private key and CSR for the request's common name.

        Raises:
            ExecutionError: Propagated unchanged from the executor
        """
        self._run(request_arguments(request), request)
        logger.info("Key written to %s", request.paths.private_key_path)
        logger.info("Req written to %s", request.paths.csr_path)

    def sign_request(self, request: IssuanceRequest) -> None:
        """Sign a previously generated CSR into a certificate.

        Raises:
            ExecutionError: Propagated unchanged from the executor
        """
        self._run(sign_arguments(request), request)
        logger.info("Cert written to %s", request.paths.cert_path)
