from __future__ import annotations

import importlib.metadata
import json

from loguru import logger
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def list_parse_fallback(v: str):
    v = v.replace(" ", "")
    if len(v) > 0:
        if v.startswith("[") or v.startswith("{"):
            return json.loads(v)
        else:
            return v.split(",")
    else:
        return []


class AccountSettings(BaseModel):
    @classmethod
    def validate_list(cls, val):
        if isinstance(val, str):
            val = list_parse_fallback(val)
        return val


class AccountEnvSettings(AccountSettings):
    debug: bool = Field(default=False)
    debug_database: bool = Field(default=False)
    account_data_folder: str = Field(default="./data")
    account_database_url: str | None = Field(default=None)
    enable_log_to_file: bool = Field(default=False)
    log_rotation: str = Field(default="100 MB")
    log_retention: str = Field(default="3 months")
    user_agent: str = Field(default="")
    version: str = Field(default="0.0.0")


class NetworkSettings(AccountSettings):
    # embit network name: main, test, regtest or signet
    network: str = Field(default="main")

    @field_validator("network")
    @classmethod
    def validate_network(cls, val: str) -> str:
        if val not in ("main", "test", "regtest", "signet"):
            raise ValueError(f"Unknown network '{val}'.")
        return val

    @property
    def bolt11_currency(self) -> str:
        return {
            "main": "bc",
            "test": "tb",
            "signet": "tbs",
            "regtest": "bcrt",
        }[self.network]


class LnurlSettings(AccountSettings):
    lnurl_timeout: float = Field(default=10)
    lnurl_callback_url_rules: list[str] = Field(default=[])
    lnurl_auth_max_derivation_attempts: int = Field(default=100, ge=1)
    lnurl_pay_nonce_bytes: int = Field(default=12, ge=1)

    @field_validator("lnurl_callback_url_rules", mode="before")
    @classmethod
    def validate_callback_url_rules(cls, val):
        return cls.validate_list(val)


class SweepSettings(AccountSettings):
    sweep_conf_targets: list[int] = Field(default=[2, 6, 25])
    sweep_dust_limit_sat: int = Field(default=573, ge=0)

    @field_validator("sweep_conf_targets", mode="before")
    @classmethod
    def validate_conf_targets(cls, val):
        return cls.validate_list(val)


class LndRestSettings(AccountSettings):
    lnd_rest_endpoint: str | None = Field(default=None)
    lnd_rest_cert: str | None = Field(default=None)
    lnd_rest_macaroon: str | None = Field(default=None)
    lnd_rest_timeout: float = Field(default=30)


class WalletRpcSettings(LndRestSettings):
    wallet_rpc_class: str = Field(default="LndRestWallet")


class Settings(
    AccountEnvSettings,
    NetworkSettings,
    LnurlSettings,
    SweepSettings,
    WalletRpcSettings,
    BaseSettings,
):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()

try:
    settings.version = importlib.metadata.version("lnaccount")
except importlib.metadata.PackageNotFoundError:
    logger.debug("lnaccount is not installed, using default version.")

if not settings.user_agent:
    settings.user_agent = f"lnaccount/{settings.version}"
