# ============================================================================
# authprobe/base/config.py
# Application Configuration Management
# ============================================================================
#
# PURPOSE:
# Defines every tunable setting of the prober in one place: network bounds,
# scheduling, output locations, logging, and AWS credential selection.
#
# KEY CONCEPTS:
# 1. Dataclasses: frozen sections, one per concern
# 2. Environment Variables: AUTHPROBE_* overrides (e.g., AUTHPROBE_TIMEOUT=5)
# 3. Singleton Pattern: one shared config, replaceable in tests
#
# ============================================================================

from __future__ import annotations

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from authprobe.errors import ConfigurationError, ErrorCode

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


# ============================================================================
# Network Configuration
# ============================================================================
# Bounds every outbound request. A request exceeding request_timeout is a
# transport failure for that mutation, never a stall of the whole run.

@dataclass(frozen=True)
class NetConfig:
    # Seconds before a single request is abandoned
    request_timeout: float = 10.0

    # Retries for throttling / transient gateway statuses (429, 502, 503, 504).
    # Every retry is signed again because signatures are time-scoped.
    max_retries: int = 2

    # Sent on every request (unsigned and signed)
    user_agent: str = "authprobe/0.1.0"

    # TLS verification against the service endpoints
    verify_tls: bool = True


# ============================================================================
# Run / Scheduling Configuration
# ============================================================================

@dataclass(frozen=True)
class RunConfig:
    # How many independent scheduling units may probe at once.
    # 1 = strictly sequential run (stable, auditable trace)
    max_concurrent_actions: int = 1

    # Whether two absent error codes count as "the same" error code when the
    # classifier looks for pre-auth validation. False routes those triples to
    # later rules instead of silently calling them pre-auth.
    absent_codes_match: bool = False


# ============================================================================
# Output Configuration
# ============================================================================

@dataclass(frozen=True)
class OutputConfig:
    # Root directory; each run gets its own timestamped subdirectory
    base_dir: Path = field(default_factory=lambda: Path("output"))

    # Raw request/response transcripts (<label>-<leg>.http)
    write_http_logs: bool = True

    # Shell scripts under reproduce/ that replay each request
    write_reproduce_scripts: bool = True


# ============================================================================
# Logging Configuration
# ============================================================================

@dataclass(frozen=True)
class LogConfig:
    # DEBUG / INFO / WARNING / ERROR
    level: str = "INFO"

    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    # File logging is off by default; the run directory already holds evidence
    file_enabled: bool = False
    file_name: str = "authprobe.log"
    max_file_size_mb: int = 10
    backup_count: int = 5


# ============================================================================
# AWS Configuration
# ============================================================================

@dataclass(frozen=True)
class AwsConfig:
    # Named profile for the credential chain (None = default chain)
    profile: Optional[str] = None

    # Region used for STS when it cannot be derived from an ARN
    sts_region: str = "us-east-1"


# ============================================================================
# Master Configuration Container
# ============================================================================

@dataclass
class ProbeConfig:
    net: NetConfig = field(default_factory=NetConfig)
    run: RunConfig = field(default_factory=RunConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    log: LogConfig = field(default_factory=LogConfig)
    aws: AwsConfig = field(default_factory=AwsConfig)

    def validate(self) -> None:
        """
        Reject settings that would make a run meaningless.

        Raises:
            ConfigurationError: on the first invalid value found
        """
        if self.net.request_timeout <= 0:
            raise ConfigurationError(
                ErrorCode.CONFIG_INVALID,
                f"request_timeout must be positive, got {self.net.request_timeout}",
            )
        if self.net.max_retries < 0:
            raise ConfigurationError(
                ErrorCode.CONFIG_INVALID,
                f"max_retries cannot be negative, got {self.net.max_retries}",
            )
        if self.run.max_concurrent_actions < 1:
            raise ConfigurationError(
                ErrorCode.CONFIG_INVALID,
                f"max_concurrent_actions must be at least 1, got {self.run.max_concurrent_actions}",
            )

    # Factory: builds a ProbeConfig from AUTHPROBE_* environment variables
    @classmethod
    def from_env(cls) -> "ProbeConfig":
        try:
            net = NetConfig(
                request_timeout=float(os.getenv("AUTHPROBE_TIMEOUT", "10")),
                max_retries=int(os.getenv("AUTHPROBE_MAX_RETRIES", "2")),
                user_agent=os.getenv("AUTHPROBE_USER_AGENT", "authprobe/0.1.0"),
                verify_tls=_env_bool("AUTHPROBE_VERIFY_TLS", "true"),
            )
            run = RunConfig(
                max_concurrent_actions=int(os.getenv("AUTHPROBE_CONCURRENCY", "1")),
                absent_codes_match=_env_bool("AUTHPROBE_ABSENT_CODES_MATCH", "false"),
            )
            log_cfg = LogConfig(
                level=os.getenv("AUTHPROBE_LOG_LEVEL", "INFO"),
                file_enabled=_env_bool("AUTHPROBE_LOG_FILE", "false"),
            )
        except ValueError as e:
            raise ConfigurationError(ErrorCode.CONFIG_INVALID, f"Invalid numeric setting: {e}") from e

        output = OutputConfig(
            base_dir=Path(os.getenv("AUTHPROBE_OUTPUT_DIR", "output")),
            write_http_logs=_env_bool("AUTHPROBE_HTTP_LOGS", "true"),
            write_reproduce_scripts=_env_bool("AUTHPROBE_REPRODUCE_SCRIPTS", "true"),
        )

        aws = AwsConfig(
            profile=os.getenv("AWS_PROFILE") or None,
            sts_region=os.getenv("AUTHPROBE_STS_REGION", "us-east-1"),
        )

        return cls(net=net, run=run, output=output, log=log_cfg, aws=aws)


# ============================================================================
# Global Configuration Singleton
# ============================================================================

_config: Optional[ProbeConfig] = None


def get_config() -> ProbeConfig:
    """
    Get the global configuration instance.

    Returns:
        The shared ProbeConfig instance (created from the environment on first use)
    """
    global _config
    if _config is None:
        _config = ProbeConfig.from_env()
    return _config


def set_config(config: Optional[ProbeConfig]) -> None:
    """
    Replace the global configuration (mainly used for testing and the CLI).

    Passing None resets it so the next get_config() re-reads the environment.
    """
    global _config
    _config = config


def setup_logging(config: Optional[ProbeConfig] = None) -> None:
    """
    Configure Python's logging system based on our settings.

    Call this once at application startup.
    """
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_enabled:
        from logging.handlers import RotatingFileHandler
        cfg.output.base_dir.mkdir(parents=True, exist_ok=True)
        log_path = cfg.output.base_dir / cfg.log.file_name
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, cfg.log.level.upper(), logging.INFO),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
