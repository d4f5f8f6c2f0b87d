"""Exception taxonomy for issuance and inventory operations."""

from pathlib import Path


class PKIError(Exception):
    """Base class for all pki_issuer errors."""


class ConfigError(PKIError):
    """Configuration is missing a required field or holds an invalid value."""


class UnknownEndpointError(ConfigError):
    """Requested endpoint is not declared in the configuration."""

    def __init__(self, endpoint_name: str) -> None:
        self.endpoint_name = endpoint_name
        super().__init__(f"unknown endpoint: {endpoint_name}")


class InvalidCommonNameError(PKIError, ValueError):
    """Common name cannot be used as a certificate subject or file name."""


class ExecutionError(PKIError):
    """External command failed to complete successfully.

    Args:
        message: Human-readable description of the failure
        captured_output: Combined stdout/stderr captured before the failure
        cause: Underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        captured_output: bytes = b"",
        cause: BaseException | None = None,
    ) -> None:
        self.captured_output = captured_output
        self.cause = cause
        super().__init__(message)

    @property
    def output_text(self) -> str:
        """Captured output decoded for display."""
        return self.captured_output.decode("utf-8", errors="replace")


class SpawnError(ExecutionError):
    """External command could not be started."""


class NonZeroExitError(ExecutionError):
    """External command ran and exited with a non-zero code."""

    def __init__(self, command: str, exit_code: int, captured_output: bytes = b"") -> None:
        self.exit_code = exit_code
        super().__init__(
            f"{command} exited with code {exit_code}",
            captured_output=captured_output,
        )


class ExecutionTimeoutError(ExecutionError):
    """External command did not finish within the allowed time and was killed."""

    def __init__(self, command: str, timeout: float, captured_output: bytes = b"") -> None:
        self.timeout = timeout
        super().__init__(
            f"{command} did not finish within {timeout}s",
            captured_output=captured_output,
        )


class KeyEncryptionError(PKIError):
    """Generated private key could not be protected with the passphrase."""


class IssuanceLockError(PKIError):
    """Issuance lock file could not be opened or locked."""


class LedgerError(PKIError):
    """Base class for ledger (index file) errors."""


class LedgerReadError(LedgerError):
    """Ledger file is missing or unreadable."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"cannot read ledger {path}: {cause}")


class LedgerFormatError(LedgerError):
    """Ledger line does not match the expected schema."""

    def __init__(self, line_number: int, reason: str) -> None:
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"ledger line {line_number}: {reason}")


class SubjectParseError(LedgerFormatError):
    """Subject DN on a ledger line carries no common name."""

    def __init__(self, line_number: int, subject: str) -> None:
        self.subject = subject
        super().__init__(line_number, f"no CN in subject {subject!r}")
