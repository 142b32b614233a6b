"""
Secure Configuration Module
===========================

Provides immutable, environment-aware configuration with security-first defaults.

Security Features:
- Immutable configuration after initialization
- Environment variable override support
- No secrets in default values or loaded from the environment
- OS-aware path handling
"""

from __future__ import annotations

import hashlib
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Any, Optional

from medsecure.security.constants import (
    MAX_PEM_CHARS,
    MAX_PEM_UPLOAD_BYTES,
    MAX_UPLOAD_BYTES,
    MIN_RSA_KEY_BITS,
)


_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "token", "api_key",
    "private", "credential", "salt", "pass",
})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _get_default_data_dir() -> Path:
    """Get OS-appropriate default data directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    elif system == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:  # Linux and others
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    return base / "MedSecure"


def _get_default_upload_dir() -> Path:
    return _get_default_data_dir() / "uploads"


def _get_default_log_dir() -> Path:
    """Get OS-appropriate default log directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / "MedSecure" / "Logs"
    elif system == "darwin":
        return Path.home() / "Library" / "Logs" / "MedSecure"
    else:  # Linux and others
        return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / "MedSecure" / "logs"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Immutable path configuration with OS-aware defaults."""

    data_dir: Path = field(default_factory=_get_default_data_dir)
    upload_dir: Path = field(default_factory=_get_default_upload_dir)
    log_dir: Path = field(default_factory=_get_default_log_dir)

    def __post_init__(self) -> None:
        for field_name in ["data_dir", "upload_dir", "log_dir"]:
            path = getattr(self, field_name)
            if not path.is_absolute():
                raise ValueError(f"{field_name} must be an absolute path: {path}")


@dataclass(frozen=True, slots=True)
class SecurityConfig:
    """Immutable security limits."""

    max_pem_chars: int = MAX_PEM_CHARS
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    max_pem_upload_bytes: int = MAX_PEM_UPLOAD_BYTES
    min_rsa_key_bits: int = MIN_RSA_KEY_BITS

    def __post_init__(self) -> None:
        if self.min_rsa_key_bits < 2048:
            raise ValueError("RSA keys below 2048 bits are not accepted")
        if self.max_pem_chars <= 0 or self.max_upload_bytes <= 0:
            raise ValueError("Size limits must be positive")


@dataclass(frozen=True, slots=True)
class SenderConfig:
    """Location of the server's Ed25519 signing identity."""

    signing_pem_path: Optional[Path] = None
    verify_pem_path: Optional[Path] = None

    @property
    def is_configured(self) -> bool:
        return self.signing_pem_path is not None and self.verify_pem_path is not None


@dataclass(frozen=True, slots=True)
class MailConfig:
    """
    Outbound mail settings.

    The SMTP password is never part of configuration; the transport
    reads it from MEDSECURE_SMTP_PASSWORD when it connects.
    """

    host: str = "localhost"
    port: int = 465
    use_ssl: bool = True
    username: str = ""
    mail_from: str = "MedSecure <no-reply@medsecure.local>"
    auto_send_on_upload: bool = False

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid SMTP port: {self.port}")


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Database location. Empty URL means SQLite under the data directory."""

    database_url: str = ""

    @property
    def is_postgres(self) -> bool:
        return self.database_url.startswith(("postgres://", "postgresql://"))


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "INFO"
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = False
    enable_json: bool = False

    def __post_init__(self) -> None:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}")
        if self.max_file_size_bytes <= 0:
            raise ValueError("max_file_size_bytes must be positive")
        if self.backup_count < 0:
            raise ValueError("backup_count cannot be negative")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Immutable application configuration."""

    app_name: str = "MedSecure"
    version: str = "0.1.0"
    cors_origin: str = "*"


class SecureConfig:
    """
    Centralized, immutable configuration loader with environment override support.

    Usage:
        config = SecureConfig.load()
        upload_dir = config.paths.upload_dir
        max_pem = config.security.max_pem_chars
    """

    __slots__ = (
        "_paths", "_security", "_sender", "_mail", "_storage",
        "_logging", "_app", "_frozen", "_config_hash",
    )

    _instance: Optional[SecureConfig] = None

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        security: Optional[SecurityConfig] = None,
        sender: Optional[SenderConfig] = None,
        mail: Optional[MailConfig] = None,
        storage: Optional[StorageConfig] = None,
        logging: Optional[LoggingConfig] = None,
        app: Optional[AppConfig] = None,
    ) -> None:
        """Initialize configuration. Use SecureConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_paths", paths or PathConfig())
        object.__setattr__(self, "_security", security or SecurityConfig())
        object.__setattr__(self, "_sender", sender or SenderConfig())
        object.__setattr__(self, "_mail", mail or MailConfig())
        object.__setattr__(self, "_storage", storage or StorageConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_app", app or AppConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        """Compute a hash of the configuration for integrity checking."""
        config_str = (
            f"{self._paths}|{self._security}|{self._sender}|{self._mail}|"
            f"{self._storage}|{self._logging}|{self._app}"
        )
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def security(self) -> SecurityConfig:
        return self._security

    @property
    def sender(self) -> SenderConfig:
        return self._sender

    @property
    def mail(self) -> MailConfig:
        return self._mail

    @property
    def storage(self) -> StorageConfig:
        return self._storage

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def app(self) -> AppConfig:
        return self._app

    @property
    def config_hash(self) -> str:
        return self._config_hash

    @property
    def sqlite_path(self) -> Path:
        return self._paths.data_dir / "medsecure.db"

    @classmethod
    def load(cls, env_prefix: str = "MEDSECURE") -> SecureConfig:
        """
        Load configuration with environment variable overrides.

        Environment variables are prefixed with MEDSECURE_ and use
        double underscores for nested values.

        Examples:
            MEDSECURE_LOGGING__LEVEL=DEBUG
            MEDSECURE_PATHS__UPLOAD_DIR=/srv/medsecure/uploads
            MEDSECURE_SENDER__SIGNING_PEM_PATH=/etc/medsecure/sender_ed25519.pem
            MEDSECURE_MAIL__AUTO_SEND_ON_UPLOAD=true
            MEDSECURE_STORAGE__DATABASE_URL=postgresql://...
        """
        env = cls._parse_env_overrides(env_prefix)

        paths_kwargs: dict[str, Any] = {}
        for name in ("data_dir", "upload_dir", "log_dir"):
            if f"paths.{name}" in env:
                paths_kwargs[name] = Path(env[f"paths.{name}"])
        if "data_dir" in paths_kwargs and "upload_dir" not in paths_kwargs:
            paths_kwargs["upload_dir"] = paths_kwargs["data_dir"] / "uploads"

        security_kwargs: dict[str, Any] = {}
        for name in ("max_pem_chars", "max_upload_bytes", "max_pem_upload_bytes", "min_rsa_key_bits"):
            if f"security.{name}" in env:
                security_kwargs[name] = int(env[f"security.{name}"])

        sender_kwargs: dict[str, Any] = {}
        for name in ("signing_pem_path", "verify_pem_path"):
            if f"sender.{name}" in env:
                sender_kwargs[name] = Path(env[f"sender.{name}"])

        mail_kwargs: dict[str, Any] = {}
        for name in ("host", "username", "mail_from"):
            if f"mail.{name}" in env:
                mail_kwargs[name] = env[f"mail.{name}"]
        if "mail.port" in env:
            mail_kwargs["port"] = int(env["mail.port"])
        for name in ("use_ssl", "auto_send_on_upload"):
            if f"mail.{name}" in env:
                mail_kwargs[name] = _as_bool(env[f"mail.{name}"])

        storage_kwargs: dict[str, Any] = {}
        if "storage.database_url" in env:
            storage_kwargs["database_url"] = env["storage.database_url"]

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env:
            logging_kwargs["level"] = env["logging.level"]
        for name in ("enable_console", "enable_file", "enable_json"):
            if f"logging.{name}" in env:
                logging_kwargs[name] = _as_bool(env[f"logging.{name}"])
        for name in ("max_file_size_bytes", "backup_count"):
            if f"logging.{name}" in env:
                logging_kwargs[name] = int(env[f"logging.{name}"])

        app_kwargs: dict[str, Any] = {}
        if "app.cors_origin" in env:
            app_kwargs["cors_origin"] = env["app.cors_origin"]

        return cls(
            paths=PathConfig(**paths_kwargs) if paths_kwargs else None,
            security=SecurityConfig(**security_kwargs) if security_kwargs else None,
            sender=SenderConfig(**sender_kwargs) if sender_kwargs else None,
            mail=MailConfig(**mail_kwargs) if mail_kwargs else None,
            storage=StorageConfig(**storage_kwargs) if storage_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
            app=AppConfig(**app_kwargs) if app_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # MEDSECURE_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                # SECURITY: Skip sensitive keys from environment
                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> SecureConfig:
        """Get or create the singleton configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def ensure_directories(self) -> None:
        """Create all required directories with secure permissions."""
        import stat

        directories = [
            self._paths.data_dir,
            self._paths.upload_dir,
            self._paths.log_dir,
        ]

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

            if platform.system().lower() != "windows":
                directory.chmod(stat.S_IRWXU)  # 700 - owner only

    def __repr__(self) -> str:
        """Safe string representation without sensitive data."""
        return f"SecureConfig(hash={self._config_hash}, app={self._app.app_name})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("SecureConfig is immutable after initialization")
        super().__setattr__(name, value)
