"""Client certificate issuance against an EasyRSA-managed OpenSSL CA."""

import logging

from pki_issuer.lib.config import PKIConfig
from pki_issuer.lib.errors import InvalidCommonNameError
from pki_issuer.lib.executor import Executor, execute
from pki_issuer.lib.issuance_lock import IssuanceLock
from pki_issuer.lib.key_utils import encrypt_private_key_file
from pki_issuer.lib.models import CertificatePaths, IssuanceRequest
from pki_issuer.lib.openssl_commands import OpenSSLCommands
from pki_issuer.lib.paths import PathResolver, resolve_paths

logger = logging.getLogger(__name__)

# X.509 upper bound for commonName (RFC 5280 ub-common-name)
MAX_COMMON_NAME_LENGTH = 64


def validate_common_name(common_name: str) -> None:
    """Reject common names that cannot double as artifact file names.

    Raises:
        InvalidCommonNameError: If the name is empty, too long, or path-like
    """
    if not common_name or not common_name.strip():
        raise InvalidCommonNameError("common name must not be empty")
    if len(common_name) > MAX_COMMON_NAME_LENGTH:
        raise InvalidCommonNameError(
            f"common name longer than {MAX_COMMON_NAME_LENGTH} characters"
        )
    if common_name in (".", "..") or common_name.startswith("-"):
        raise InvalidCommonNameError(f"invalid common name: {common_name!r}")
    if any(ch in common_name for ch in ("/", "\\", "\0")):
        raise InvalidCommonNameError(f"common name contains a path separator: {common_name!r}")


class CertificateIssuer:
    """Issues client certificates one at a time: request generation, then signing.

    Only one issuance runs at a time per PKI root, across threads and
    processes, because both steps write to the shared PKI directory and
    CA index. A failure at either step ends the issuance; artifacts already
    written (e.g. a key and CSR whose signing failed) are left in place.
    """

    def __init__(
        self,
        config: PKIConfig,
        executor: Executor = execute,
        path_resolver: PathResolver = resolve_paths,
        lock: IssuanceLock | None = None,
    ) -> None:
        """Initialize issuer.

        Args:
            config: PKI configuration
            executor: Process executor used for OpenSSL calls
            path_resolver: Maps (pki_root, common_name) to artifact paths
            lock: Issuance lock (defaults to one scoped to the PKI root)
        """
        self.config = config
        self.path_resolver = path_resolver
        self.lock = lock or IssuanceLock(config.pki_root)
        self.commands = OpenSSLCommands(
            settings=config.easyrsa,
            binary=config.openssl_binary,
            executor=executor,
            timeout=config.timeout,
        )

    def issue(
        self,
        endpoint_name: str,
        common_name: str,
        passphrase: str | None = None,
    ) -> CertificatePaths:
        """Generate a key and CSR for common_name and sign it.

        When a passphrase is given, the generated key is re-encrypted with it
        before signing; the OpenSSL request itself always runs without one.

        Args:
            endpoint_name: Configured endpoint supplying the key size
            common_name: Subject CN of the client certificate
            passphrase: Optional passphrase protecting the private key

        Returns:
            CertificatePaths of the key, CSR and certificate

        Raises:
            UnknownEndpointError: If endpoint_name is not configured
            InvalidCommonNameError: If common_name is unusable
            ExecutionError: If either OpenSSL step fails
            KeyEncryptionError: If the key cannot be encrypted
            IssuanceLockError: If the issuance lock cannot be taken
        """
        endpoint = self.config.endpoint(endpoint_name)
        validate_common_name(common_name)
        if passphrase is not None and not passphrase:
            raise ValueError("passphrase must not be empty")

        paths = self.path_resolver(self.config.pki_root, common_name)
        request = IssuanceRequest(
            common_name=common_name,
            key_size=endpoint.key_size,
            config_path=self.config.openssl_config,
            paths=paths,
        )

        with self.lock.hold():
            logger.info(
                "Issuing certificate for %s (endpoint=%s, keysize=%d)",
                common_name,
                endpoint.name,
                endpoint.key_size,
            )
            self.commands.generate_request(request)

            if passphrase is not None:
                encrypt_private_key_file(paths.private_key_path, passphrase)
                logger.info("Key encrypted with passphrase: %s", paths.private_key_path)

            self.commands.sign_request(request)

        return paths
