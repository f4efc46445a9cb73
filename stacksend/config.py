from __future__ import annotations
"""
stacksend.config - configuration for the escrow ledger and the rate oracle

Covers:
- Platform fee (basis points, 10_000 = 100%) and its ceiling
- Contributor roster cap and metadata length bounds
- Rate oracle fixed-point decimals, accepted rate band and maximum quote age

Environment overrides (all optional; defaults match the deployed contracts):

  # Escrow
  STACKSEND_ESCROW_FEE_BPS=50
  STACKSEND_ESCROW_MAX_FEE_BPS=500
  STACKSEND_ESCROW_ROSTER_CAP=100
  STACKSEND_ESCROW_MAX_DESCRIPTION_LEN=256
  STACKSEND_ESCROW_MAX_CURRENCY_PAIR_LEN=10
  STACKSEND_ESCROW_POOL_ACCOUNT=stacksend-escrow

  # Oracle
  STACKSEND_ORACLE_RATE_DECIMALS=8
  STACKSEND_ORACLE_MIN_RATE=100
  STACKSEND_ORACLE_MAX_RATE=10000000000000000
  STACKSEND_ORACLE_MAX_RATE_AGE=86400
  STACKSEND_ORACLE_MAX_PAIR_LEN=10

  STACKSEND_LOG_LEVEL=INFO

You can also load from a JSON or YAML file via
`STACKSEND_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file.
"""


from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional
import json
import logging
import os
from pathlib import Path

import yaml

BPS_DENOMINATOR = 10_000


# -------------------------- Data classes --------------------------


@dataclass
class EscrowParams:
    """Escrow ledger parameters."""
    default_fee_bps: int = 50            # 0.5% platform fee at deployment
    max_fee_bps: int = 500               # 5% ceiling for update_platform_fee
    roster_cap: int = 100                # distinct contributors per remittance
    max_description_len: int = 256
    max_currency_pair_len: int = 10
    pool_account: str = "stacksend-escrow"

    def validate(self) -> None:
        if not (0 <= self.max_fee_bps <= BPS_DENOMINATOR):
            raise ValueError(f"max_fee_bps must be between 0 and 10000 (got {self.max_fee_bps}).")
        if not (0 <= self.default_fee_bps <= self.max_fee_bps):
            raise ValueError(
                f"default_fee_bps must be between 0 and max_fee_bps={self.max_fee_bps} "
                f"(got {self.default_fee_bps})."
            )
        if self.roster_cap <= 0:
            raise ValueError("roster_cap must be positive.")
        if self.max_description_len < 0 or self.max_currency_pair_len < 0:
            raise ValueError("metadata length bounds must be non-negative.")
        if not self.pool_account:
            raise ValueError("pool_account must be a non-empty identity.")


@dataclass
class OracleParams:
    """Rate oracle parameters. Rates are integers scaled by 10**rate_decimals."""
    rate_decimals: int = 8
    min_rate: int = 100
    max_rate: int = 10_000_000_000_000_000
    max_rate_age: int = 86_400           # 24 hours in clock units (seconds)
    max_pair_len: int = 10

    def validate(self) -> None:
        if self.rate_decimals < 0:
            raise ValueError("rate_decimals must be non-negative.")
        if self.min_rate <= 0:
            raise ValueError("min_rate must be positive.")
        if self.max_rate < self.min_rate:
            raise ValueError(f"max_rate ({self.max_rate}) must be >= min_rate ({self.min_rate}).")
        if self.max_rate_age <= 0:
            raise ValueError("max_rate_age must be positive.")
        if self.max_pair_len <= 0:
            raise ValueError("max_pair_len must be positive.")


@dataclass
class StackSendConfig:
    """Top-level configuration container."""
    escrow: EscrowParams = field(default_factory=EscrowParams)
    oracle: OracleParams = field(default_factory=OracleParams)
    log_level: str = "INFO"

    def validate(self) -> None:
        self.escrow.validate()
        self.oracle.validate()
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log_level {self.log_level!r}.")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StackSendConfig":
        escrow = dict(data.get("escrow") or {})
        oracle = dict(data.get("oracle") or {})
        cfg = cls(
            escrow=EscrowParams(**escrow),
            oracle=OracleParams(**oracle),
            log_level=str(data.get("log_level", "INFO")),
        )
        cfg.validate()
        return cfg


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except ValueError as e:
        raise ValueError(f"Invalid int for {name}: {v!r}") from e


def _getenv_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None or v == "" else v


def from_env(base: Optional[StackSendConfig] = None, prefix: str = "STACKSEND_") -> StackSendConfig:
    """
    Build a StackSendConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or StackSendConfig()
    e, o = cfg.escrow, cfg.oracle

    new_cfg = StackSendConfig(
        escrow=EscrowParams(
            default_fee_bps=_getenv_int(f"{prefix}ESCROW_FEE_BPS", e.default_fee_bps),
            max_fee_bps=_getenv_int(f"{prefix}ESCROW_MAX_FEE_BPS", e.max_fee_bps),
            roster_cap=_getenv_int(f"{prefix}ESCROW_ROSTER_CAP", e.roster_cap),
            max_description_len=_getenv_int(f"{prefix}ESCROW_MAX_DESCRIPTION_LEN", e.max_description_len),
            max_currency_pair_len=_getenv_int(
                f"{prefix}ESCROW_MAX_CURRENCY_PAIR_LEN", e.max_currency_pair_len
            ),
            pool_account=_getenv_str(f"{prefix}ESCROW_POOL_ACCOUNT", e.pool_account),
        ),
        oracle=OracleParams(
            rate_decimals=_getenv_int(f"{prefix}ORACLE_RATE_DECIMALS", o.rate_decimals),
            min_rate=_getenv_int(f"{prefix}ORACLE_MIN_RATE", o.min_rate),
            max_rate=_getenv_int(f"{prefix}ORACLE_MAX_RATE", o.max_rate),
            max_rate_age=_getenv_int(f"{prefix}ORACLE_MAX_RATE_AGE", o.max_rate_age),
            max_pair_len=_getenv_int(f"{prefix}ORACLE_MAX_PAIR_LEN", o.max_pair_len),
        ),
        log_level=_getenv_str(f"{prefix}LOG_LEVEL", cfg.log_level),
    )
    new_cfg.validate()
    return new_cfg


def from_file(path: str | os.PathLike[str]) -> StackSendConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"config file {p} must contain a mapping at the top level")

    try:
        return StackSendConfig.from_dict(data)
    except TypeError as e:
        # unknown keys inside escrow/oracle sections
        raise ValueError(f"invalid config file {p}: {e}") from e


def load_config(path: str | os.PathLike[str] | None = None) -> StackSendConfig:
    """
    Load configuration using the following precedence:
      1) Defaults
      2) File at `path` or $STACKSEND_CONFIG_FILE (JSON/YAML)
      3) Environment variables (STACKSEND_*), applied on top
    """
    file_path = path or os.getenv("STACKSEND_CONFIG_FILE")
    base = from_file(file_path) if file_path else StackSendConfig()
    return from_env(base=base)


def pretty(cfg: Optional[StackSendConfig] = None) -> str:
    """Return a human-readable JSON string of the current config."""
    obj = (cfg or load_config()).to_dict()
    return json.dumps(obj, indent=2, sort_keys=True)


__all__ = [
    "BPS_DENOMINATOR",
    "EscrowParams",
    "OracleParams",
    "StackSendConfig",
    "from_env",
    "from_file",
    "load_config",
    "pretty",
]
