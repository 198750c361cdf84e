"""
coop_config -- single public entrypoint for rate-policy configuration.

Responsibility:
    Provides the runtime way to obtain the rate policy through
    ``get_active_policy()``.  YAML loading lives in ``coop_config.loader``.

Architecture position:
    Configuration -- sits above ``coop_kernel`` and below
    ``coop_services`` and the CLI.  The kernel and the engines never import
    from ``coop_config``; they receive a ``RatePolicy`` as a parameter.

Failure modes:
    - ``FileNotFoundError`` -- the requested policy file does not exist.
    - ``ConfigError`` -- the file fails validation.

Audit relevance:
    Every successful ``get_active_policy()`` call emits a
    ``COOP_CONFIG_TRACE`` log entry with the policy name and checksum.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from coop_config.loader import compute_checksum, load_policy, parse_policy
from coop_kernel.domain.policy import DEFAULT_POLICY, RatePolicy

_logger = logging.getLogger("coop_kernel.config")

DEFAULT_POLICY_PATH = Path(__file__).parent / "sets" / "default.yaml"
POLICY_PATH_ENV = "COOP_LEDGER_POLICY"
DATABASE_URL_ENV = "COOP_LEDGER_DATABASE_URL"
DEFAULT_DATABASE_URL = "sqlite:///coop_ledger.db"


def get_active_policy(policy_path: Path | str | None = None) -> RatePolicy:
    """
    Load the rate policy in force.

    Resolution order: explicit ``policy_path``, then the
    ``COOP_LEDGER_POLICY`` environment variable, then the bundled
    ``sets/default.yaml``.
    """
    if policy_path is None:
        policy_path = os.environ.get(POLICY_PATH_ENV) or DEFAULT_POLICY_PATH
    path = Path(policy_path)
    policy = load_policy(path)
    _logger.info(
        "COOP_CONFIG_TRACE",
        extra={
            "trace_type": "COOP_CONFIG_TRACE",
            "policy_name": policy.name,
            "policy_path": str(path),
            "checksum": compute_checksum(policy),
        },
    )
    return policy


def get_database_url() -> str:
    """Database URL for the persistent dataset store."""
    return os.environ.get(DATABASE_URL_ENV) or DEFAULT_DATABASE_URL


__all__ = [
    "DEFAULT_POLICY",
    "RatePolicy",
    "compute_checksum",
    "get_active_policy",
    "get_database_url",
    "load_policy",
    "parse_policy",
]
