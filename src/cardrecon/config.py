"""Reconciliation tunables.

All thresholds used by matching, selection and expansion live here so they
can be tuned and tested independently. Values can be overridden through
environment variables.
"""

import os
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Optional

from cardrecon.domain.errors import ValidationError


@dataclass(frozen=True)
class ReconciliationConfig:
    """Runtime configuration for bill matching.

    Percentages are expressed on a 0-100 scale.
    """

    # |difference| below this is an exact match
    exact_epsilon: Decimal
    # Confidence tiers by difference percent
    high_percent: Decimal
    medium_percent: Decimal
    # |difference| above this flags the link as a mismatch
    mismatch_tolerance: Decimal
    # difference percent above this is rejected unless forced
    reject_percent: Decimal
    # bills further off than this are not offered as candidates
    candidate_max_percent: Decimal
    date_window_days: int
    max_candidates: int
    amount_weight: Decimal
    date_weight: Decimal


DEFAULT_CONFIG = ReconciliationConfig(
    exact_epsilon=Decimal("0.01"),
    high_percent=Decimal("2"),
    medium_percent=Decimal("10"),
    mismatch_tolerance=Decimal("0.01"),
    reject_percent=Decimal("10"),
    candidate_max_percent=Decimal("50"),
    date_window_days=20,
    max_candidates=5,
    amount_weight=Decimal("0.7"),
    date_weight=Decimal("0.3"),
)

DECIMAL_OVERRIDES = {
    "exact_epsilon": "CARDRECON_EXACT_EPSILON",
    "high_percent": "CARDRECON_HIGH_CONFIDENCE_PERCENT",
    "medium_percent": "CARDRECON_MEDIUM_CONFIDENCE_PERCENT",
    "mismatch_tolerance": "CARDRECON_MISMATCH_TOLERANCE",
    "reject_percent": "CARDRECON_REJECT_PERCENT",
    "candidate_max_percent": "CARDRECON_CANDIDATE_MAX_PERCENT",
}

INT_OVERRIDES = {
    "date_window_days": "CARDRECON_DATE_WINDOW_DAYS",
    "max_candidates": "CARDRECON_MAX_CANDIDATES",
}

_config_cache: Optional[ReconciliationConfig] = None


def _decimal_from_env(env_var: str, raw: str) -> Decimal:
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        raise ValidationError(f"{env_var} must be a decimal number, got '{raw}'")
    if value < 0:
        raise ValidationError(f"{env_var} must not be negative, got '{raw}'")
    return value


def _int_from_env(env_var: str, raw: str) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValidationError(f"{env_var} must be an integer, got '{raw}'")
    if value < 1:
        raise ValidationError(f"{env_var} must be at least 1, got '{raw}'")
    return value


def validate_config(config: ReconciliationConfig) -> ReconciliationConfig:
    """Check that tier thresholds are ordered.

    Raises:
        ValidationError: If high_percent exceeds medium_percent or the
            candidate threshold is not positive
    """
    if config.high_percent > config.medium_percent:
        raise ValidationError(
            f"High confidence threshold ({config.high_percent}%) must not exceed "
            f"medium confidence threshold ({config.medium_percent}%)"
        )
    if config.candidate_max_percent <= 0:
        raise ValidationError("Candidate threshold must be greater than zero")
    return config


def load_reconciliation_config(force_reload: bool = False) -> ReconciliationConfig:
    """Load reconciliation configuration with environment overrides.

    Caches the result to avoid re-reading the environment.
    """
    global _config_cache
    if _config_cache is not None and not force_reload:
        return _config_cache

    overrides: dict = {}
    for field_name, env_var in DECIMAL_OVERRIDES.items():
        raw = os.getenv(env_var)
        if raw:
            overrides[field_name] = _decimal_from_env(env_var, raw)
    for field_name, env_var in INT_OVERRIDES.items():
        raw = os.getenv(env_var)
        if raw:
            overrides[field_name] = _int_from_env(env_var, raw)

    config = validate_config(replace(DEFAULT_CONFIG, **overrides))
    _config_cache = config
    return config
