"""
Settings — business pricing policy and PSP connection details.

Resolution order: explicit kwargs, then BOOKPAY_* environment variables, then
~/.bookpay/config.json, then defaults.
"""

import json
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from bookpay.errors import ConfigError
from bookpay.models.pricing import DepositPolicy

CONFIG_FILE = Path.home() / ".bookpay" / "config.json"
ENV_PREFIX = "BOOKPAY_"


class Settings(BaseModel):
    tax_rate_percent: Decimal = Field(default=Decimal("7.75"), ge=0)
    deposit_percent: Decimal = Field(default=Decimal("33.33"), ge=0, le=100)
    deposit_fixed: Optional[Decimal] = Field(default=None, ge=0)
    deposits_enabled: bool = True
    full_payment_threshold: Decimal = Field(default=Decimal("200.00"), ge=0)
    deferred_deposit: Decimal = Field(default=Decimal("200.00"), ge=0)
    currency: str = "usd"
    psp_base_url: str = "http://localhost:3000"
    psp_secret_key: Optional[str] = None
    return_url: str = "http://localhost:3000/payment-success"
    cherry_checkout_url: str = "https://pay.withcherry.com/"
    authorization_ttl_minutes: int = Field(default=20, gt=0)

    def deposit_policy(self) -> DepositPolicy:
        return DepositPolicy(
            enabled=self.deposits_enabled,
            percent=self.deposit_percent,
            fixed=self.deposit_fixed,
        )

    @classmethod
    def load(cls, config_file: Optional[Path] = None, **overrides: Any) -> "Settings":
        values: dict[str, Any] = {}
        values.update(load_config_file(config_file or CONFIG_FILE))
        values.update(_from_env())
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls(**values)
        except PydanticValidationError as e:
            raise ConfigError(f"Invalid bookpay settings: {e}")


def load_config_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return {k: v for k, v in data.items() if k in Settings.model_fields}


def save_config_file(values: dict[str, Any], path: Optional[Path] = None) -> None:
    path = path or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(values, indent=2))


def _from_env() -> dict[str, Any]:
    values = {}
    for name in Settings.model_fields:
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is not None:
            values[name] = raw
    return values
