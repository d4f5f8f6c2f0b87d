"""JSON logging for pki_issuer scripts and library modules."""

import logging
import os
import sys

from pythonjsonlogger import jsonlogger

LOGGER_NAME = "pki_issuer"
LOG_LEVEL_ENV = "PKI_ISSUER_LOG_LEVEL"

_ALLOWED_FIELDS = frozenset({"timestamp", "level", "logger", "message", "exc_info", "funcName", "lineno"})


class IssuerJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter emitting a fixed, short field set.

    Keeps timestamp, level, logger, message, exc_info, funcName and lineno.
    The logger name is kept so executor output can be told apart from
    issuance progress.
    """

    def add_fields(self, log_record, record, message_dict):
        """Rename levelname/name and drop everything outside the allowed set."""
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")
        if "name" in log_record:
            log_record["logger"] = log_record.pop("name")

        for key in [key for key in log_record if key not in _ALLOWED_FIELDS]:
            log_record.pop(key)


def _setup_logger() -> logging.Logger:
    """Configure the package logger once; library modules log through its children.

    Records go to stderr so CLI output on stdout stays machine-readable.
    """
    logger = logging.getLogger(LOGGER_NAME)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        IssuerJsonFormatter(
            fmt="%(timestamp)s %(levelname)s %(name)s %(funcName)s %(lineno)d %(message)s",
            timestamp=True,
        )
    )

    logger.setLevel(os.environ.get(LOG_LEVEL_ENV, "INFO").upper())
    logger.addHandler(handler)
    logger.propagate = False

    return logger


LOGGER = _setup_logger()
