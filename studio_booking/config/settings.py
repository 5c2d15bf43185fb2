"""
Configuration loader for the studio booking client.

Reads runtime settings from environment variables, loads the price catalog
from YAML with JSON-schema validation, and provides a logging filter that
redacts bearer tokens.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import jsonschema
import yaml

from studio_booking.domain.catalog import PackageCatalog

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""

    pass


CONFIG_DIR = Path(__file__).resolve().parent
DEFAULT_CATALOG_FILE = CONFIG_DIR / "catalog.yaml"
CATALOG_SCHEMA_FILE = CONFIG_DIR / "catalog.schema.json"

DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_SESSION_FILE = "~/.studio_booking/session.json"
SESSION_BACKENDS = ("memory", "file", "dynamodb")

# Where the booking form sends the user after a successful booking
BOOKINGS_VIEW_PATH = "/profile/bookings"


def _read_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


class SecretRedactionFilter(logging.Filter):
    """
    Logging filter that redacts secret values from log records.
    Replaces secret substrings with ***REDACTED*** to prevent accidental leakage.
    """

    def __init__(self, secrets: Optional[Iterable[str]] = None):
        super().__init__()
        self.redacted_values: set[str] = set()
        for secret in secrets or ():
            self.register(secret)

    def register(self, secret: Optional[str]) -> None:
        """Add a value to redact. Very short strings are ignored."""
        if isinstance(secret, str) and len(secret) > 3:
            self.redacted_values.add(secret)

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact log record."""
        try:
            record.msg = self._redact_string(str(record.msg))
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {k: self._redact_string(str(v)) for k, v in record.args.items()}
                elif isinstance(record.args, (list, tuple)):
                    record.args = tuple(self._redact_string(str(arg)) for arg in record.args)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Error during secret redaction: {e}")
        return True

    def _redact_string(self, text: str) -> str:
        for secret in self.redacted_values:
            if secret in text:
                text = text.replace(secret, "***REDACTED***")
        return text


class Settings:
    """
    Runtime configuration, read from the environment at construction time.
    """

    def __init__(self):
        self.api_url = (os.getenv("STUDIO_API_URL") or DEFAULT_API_URL).rstrip("/")
        self.http_timeout = _read_float("STUDIO_HTTP_TIMEOUT", 10.0)
        self.session_backend = os.getenv("STUDIO_SESSION_BACKEND", "file").lower()
        self.session_file = os.path.expanduser(
            os.getenv("STUDIO_SESSION_FILE", DEFAULT_SESSION_FILE)
        )
        self.session_table = os.getenv("STUDIO_SESSION_TABLE", "session")
        self.aws_region = os.getenv("AWS_REGION", "ap-south-1")
        self.min_fetch_interval = _read_float("STUDIO_MIN_FETCH_INTERVAL", 5.0)
        self.redirect_delay = _read_float("STUDIO_REDIRECT_DELAY", 3.0)
        self.catalog_file = os.getenv("STUDIO_CATALOG_FILE") or str(DEFAULT_CATALOG_FILE)

        if self.session_backend not in SESSION_BACKENDS:
            raise ConfigurationError(
                f"STUDIO_SESSION_BACKEND must be one of {SESSION_BACKENDS}, "
                f"got {self.session_backend!r}"
            )
        if self.http_timeout <= 0:
            raise ConfigurationError("STUDIO_HTTP_TIMEOUT must be positive")
        if self.min_fetch_interval < 0:
            raise ConfigurationError("STUDIO_MIN_FETCH_INTERVAL must not be negative")

    def load_catalog(self) -> PackageCatalog:
        """Load and validate the price catalog configured for this process."""
        return load_catalog(self.catalog_file)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "api_url": self.api_url,
            "http_timeout": self.http_timeout,
            "session_backend": self.session_backend,
            "session_file": self.session_file,
            "session_table": self.session_table,
            "aws_region": self.aws_region,
            "min_fetch_interval": self.min_fetch_interval,
            "redirect_delay": self.redirect_delay,
            "catalog_file": self.catalog_file,
        }


def load_catalog(
    catalog_path: Optional[str] = None, schema_path: Optional[str] = None
) -> PackageCatalog:
    """
    Load the price catalog from YAML and validate it against the schema.

    Args:
        catalog_path: Path to catalog YAML (default: bundled catalog.yaml)
        schema_path: Path to JSON schema (default: bundled catalog.schema.json)

    Returns:
        PackageCatalog

    Raises:
        ConfigurationError: If a file is missing, unparsable, or fails validation
    """
    catalog_path = catalog_path or str(DEFAULT_CATALOG_FILE)
    schema_path = schema_path or str(CATALOG_SCHEMA_FILE)

    try:
        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Catalog schema file not found: {schema_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {schema_path}: {e}") from e

    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Catalog file not found: {catalog_path}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {catalog_path}: {e}") from e

    if not document:
        raise ConfigurationError(f"Empty catalog: {catalog_path}")

    try:
        jsonschema.validate(instance=document, schema=schema)
    except jsonschema.ValidationError as e:
        raise ConfigurationError(f"Catalog validation failed: {e.message}") from e
    except jsonschema.SchemaError as e:
        raise ConfigurationError(f"Catalog schema is invalid: {e.message}") from e

    catalog = PackageCatalog.from_dict(document)
    logger.debug(
        f"Loaded catalog with {len(catalog.services)} services "
        f"and {len(catalog.packages)} packages from {catalog_path}"
    )
    return catalog


def setup_token_redaction(
    logger_instance: Optional[logging.Logger] = None,
) -> SecretRedactionFilter:
    """
    Attach a SecretRedactionFilter to every handler that may emit client logs.

    Covers the given logger (root by default) and all loggers already created
    under the `studio_booking` namespace, since each structured logger owns
    its own handler. A filter already attached to the target logger is
    reused, so repeated calls never stack filters. Returns the filter so
    tokens can be registered as they are issued.
    """
    target = logger_instance or logging.getLogger()
    redaction_filter = next(
        (f for f in target.filters if isinstance(f, SecretRedactionFilter)), None
    ) or SecretRedactionFilter()

    loggers = [target]
    for name, candidate in logging.Logger.manager.loggerDict.items():
        if name.startswith("studio_booking") and isinstance(candidate, logging.Logger):
            loggers.append(candidate)

    for logger_obj in loggers:
        logger_obj.addFilter(redaction_filter)
        for handler in logger_obj.handlers:
            handler.addFilter(redaction_filter)

    return redaction_filter
