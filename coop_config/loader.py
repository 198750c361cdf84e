"""
Configuration Loader (``coop_config.loader``).

Responsibility
--------------
Loads a YAML rate-policy file and parses it into the frozen
``coop_kernel.domain.policy.RatePolicy``.  Runtime callers go through
``coop_config.get_active_policy()`` instead of calling this directly.

Invariants enforced
-------------------
* Rates are parsed through ``str`` into ``Decimal`` (a YAML float such as
  ``0.02`` never becomes a binary float amount) and must be >= 0.
* ``due_day`` is an integer in 1..28 so every month has that day.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``ConfigError``.
* Bad or negative rates, bad ``due_day``  -> ``ConfigError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from coop_kernel.domain.policy import DEFAULT_POLICY, RatePolicy
from coop_kernel.exceptions import ConfigError

_RATE_FIELDS = ("loan_rate", "fd_rate", "late_fee_rate")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        ConfigError: if the file is not valid YAML or not a mapping.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(str(path), f"invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(str(path), "top level must be a mapping")
    return data


def parse_rate(value: Any, field: str, source: str) -> Decimal:
    """Parse a non-negative rate from YAML (string, int or float)."""
    if isinstance(value, bool):
        raise ConfigError(source, f"{field} must be a number")
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ConfigError(source, f"{field} must be a number, got {value!r}") from e
    if not rate.is_finite() or rate < 0:
        raise ConfigError(source, f"{field} must be >= 0, got {value!r}")
    return rate


def parse_policy(data: dict[str, Any], source: str = "<dict>") -> RatePolicy:
    """
    Parse a ``RatePolicy`` from a dict.

    Keys that are absent fall back to the built-in defaults.
    """
    rates = {
        field: parse_rate(data[field], field, source) if field in data else getattr(DEFAULT_POLICY, field)
        for field in _RATE_FIELDS
    }
    due_day = data.get("due_day", DEFAULT_POLICY.due_day)
    if isinstance(due_day, bool) or not isinstance(due_day, int) or not 1 <= due_day <= 28:
        raise ConfigError(source, f"due_day must be an integer 1..28, got {due_day!r}")
    return RatePolicy(
        loan_rate=rates["loan_rate"],
        fd_rate=rates["fd_rate"],
        late_fee_rate=rates["late_fee_rate"],
        due_day=due_day,
        name=str(data.get("name", DEFAULT_POLICY.name)),
    )


def load_policy(path: Path) -> RatePolicy:
    """Load and parse a policy YAML file."""
    return parse_policy(load_yaml_file(path), source=str(path))


def compute_checksum(policy: RatePolicy) -> str:
    """
    Compute SHA-256 checksum of the policy's canonical JSON serialization.

    Identical policies always produce identical checksums.
    """
    canonical = json.dumps(policy.as_dict(), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
