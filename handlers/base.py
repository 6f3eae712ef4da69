# Base utilities for the network handlers
# Environment configuration, logging setup and JSON helpers
import json
import logging
import os
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
DEFAULT_SUBJECTS = "network.create.aws,network.delete.aws"
DEFAULT_REGION = "eu-west-1"


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


def get_env_int(key: str, default: Optional[int] = None) -> Optional[int]:
    raw = get_env(key).strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {key}={raw!r}")
        return default


def get_env_float(key: str, default: float) -> float:
    raw = get_env(key).strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {key}={raw!r}")
        return default


def get_env_list(key: str, default: str = "") -> List[str]:
    """Comma separated list, blanks dropped."""
    return [item.strip() for item in get_env(key, default).split(",") if item.strip()]


def bus_topic_arn() -> str:
    return get_env("NETWORK_BUS_TOPIC_ARN")


def bus_endpoint_url() -> Optional[str]:
    return get_env("NETWORK_BUS_ENDPOINT_URL") or None


def bus_region() -> str:
    return get_env("AWS_REGION", DEFAULT_REGION)


def ec2_endpoint_url() -> Optional[str]:
    return get_env("EC2_ENDPOINT_URL") or None


def subscribed_subjects() -> List[str]:
    return get_env_list("NETWORK_SUBJECTS", DEFAULT_SUBJECTS)


def interface_poll_interval() -> float:
    return get_env_float("INTERFACE_POLL_INTERVAL_SECONDS", 1.0)


def interface_poll_max_attempts() -> Optional[int]:
    # unset or 0 means poll until the subnet is clear
    value = get_env_int("INTERFACE_POLL_MAX_ATTEMPTS")
    return value if value and value > 0 else None


def worker_max_concurrency() -> int:
    return max(1, get_env_int("WORKER_MAX_CONCURRENCY", 10) or 10)


# =============================================================================
# LOGGING
# =============================================================================
def configure_logging(level: Optional[str] = None) -> None:
    """Set the root logger level (Lambda installs its own handler)."""
    name = (level or get_env("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, name, logging.INFO))
    if not root.handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s %(message)s")


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================
def jdump(x: Any) -> str:
    """JSON dump with defaults for non-serializable types."""
    return json.dumps(x, ensure_ascii=False, default=str)
