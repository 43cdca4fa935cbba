"""
Configuration management using pydantic-settings.
"""

from typing import Literal

from dogecore.chainparams import ChainParams, get_chain
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DOGEWALLET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    network: Literal["mainnet", "testnet", "regtest"] = "mainnet"

    log_level: str = "INFO"

    # SIGHASH_ALL
    default_sighash_type: int = Field(default=1, ge=1, le=0xFF)

    bip44_account: int = Field(default=0, ge=0, lt=0x80000000)

    @property
    def chain(self) -> ChainParams:
        return get_chain(self.network)


def get_settings() -> Settings:
    return Settings()
