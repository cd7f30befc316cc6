# ip_provisioner/config.py
from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional
from botocore.config import Config  # type: ignore

from ip_provisioner import NAME, __version__
from ip_provisioner.errors import ConfigError
from ip_provisioner.models import Tag

# ---- Env helpers
def _env_str(key: str, default: str) -> str:
    v = os.getenv(key)
    return v if v is not None else default

def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except Exception:
        return default

def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except Exception:
        return default

def _env_bool(key: str, default: bool) -> bool:
    v = os.getenv(key)
    return default if v is None else v.strip().lower() in {"1", "true", "yes", "y"}

# ---- SDK config
# Standard mode only retries inside a single API call; the run itself never loops.
SDK_CONFIG = Config(
    retries={"max_attempts": _env_int("IP_PROVISIONER_SDK_MAX_ATTEMPTS", 3), "mode": "standard"},
    connect_timeout=_env_int("IP_PROVISIONER_SDK_CONNECT_TIMEOUT", 5),
    read_timeout=_env_int("IP_PROVISIONER_SDK_READ_TIMEOUT", 30),
    user_agent_extra=f"{NAME}/{__version__}",
)

# ------------------------------------------------------------
# DEFAULTS
# Each can be overridden via env vars; CLI flags take precedence.
# ------------------------------------------------------------

LOG_LEVELS = ("debug", "info")
LOG_LEVEL = _env_str("IP_PROVISIONER_LOG_LEVEL", "info")
INITIAL_WAIT_RANDOM_SECONDS = _env_int("IP_PROVISIONER_INITIAL_WAIT_RANDOM_SECONDS", 5)

ID_TAG_KEY = _env_str("IP_PROVISIONER_ID_TAG_KEY", "Id")
KIND_TAG_KEY = _env_str("IP_PROVISIONER_KIND_TAG_KEY", "Kind")
MOUNTED_EIP_FILE_PATH = _env_str("IP_PROVISIONER_MOUNTED_EIP_FILE_PATH", "/data/eip.yaml")
RECOVER_FROM_TAGS = _env_bool("IP_PROVISIONER_RECOVER_FROM_TAGS", False)

# --- Instance metadata (IMDSv2) ---
IMDS_ENDPOINT = _env_str("IP_PROVISIONER_IMDS_ENDPOINT", "http://169.254.169.254")
IMDS_TIMEOUT = _env_float("IP_PROVISIONER_IMDS_TIMEOUT", 2.0)
IMDS_TOKEN_TTL_SECONDS = _env_int("IP_PROVISIONER_IMDS_TOKEN_TTL_SECONDS", 21600)

# --- Exit codes ---
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_RETRYABLE = 75  # EX_TEMPFAIL


def default_region() -> Optional[str]:
    return os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or None


@dataclass(frozen=True)
class ProvisionerConfig:
    """Per-run settings handed to the orchestrator at construction."""

    id_tag: Tag
    kind_tag: Tag
    log_level: str = LOG_LEVEL
    max_jitter: int = INITIAL_WAIT_RANDOM_SECONDS
    record_path: str = MOUNTED_EIP_FILE_PATH
    region: Optional[str] = None
    recover_from_tags: bool = RECOVER_FROM_TAGS

    def validate(self) -> "ProvisionerConfig":
        """Raise :class:`ConfigError` on the first invalid field; return self."""
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")
        if isinstance(self.max_jitter, bool) or not isinstance(self.max_jitter, int) or self.max_jitter < 0:
            raise ConfigError(f"max jitter must be an integer >= 0, got {self.max_jitter!r}")
        for label, tag in (("id", self.id_tag), ("kind", self.kind_tag)):
            if not tag.key or not tag.key.strip():
                raise ConfigError(f"{label} tag key is required")
            if not tag.value or not tag.value.strip():
                raise ConfigError(f"{label} tag value is required")
        if self.id_tag.key == self.kind_tag.key:
            raise ConfigError(f"id and kind tag keys must differ (both {self.id_tag.key!r})")
        if not self.record_path:
            raise ConfigError("record file path is required")
        return self
