import json
import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    # JSON is the documented format; bare host lists are tolerated so a
    # misconfigured deployment still starts.
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]

    origins: list[str] = []
    for part in re.split(r"[,\s]+", raw):
        if not part:
            continue
        if part == "*":
            return ["*"]
        if "://" in part:
            candidates = [part]
        else:
            candidates = [f"http://{part}", f"https://{part}"]
        for origin in candidates:
            if origin not in origins:
                origins.append(origin)
    return origins


class Settings(BaseSettings):
    """Service settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - exposes exception messages in 500 responses
    debug: bool = False

    # Ledger connection
    rpc_url: str = "http://localhost:8545"
    chain_id: int = 11155111  # Sepolia
    access_contract_address: str = ZERO_ADDRESS
    ledger_mock_mode: bool = False  # Serve reads from in-memory state

    # RPC retry policy
    rpc_max_retries: int = 2
    rpc_retry_base_delay: float = 0.25

    # HTTP client pool settings
    httpx_connect_timeout: float = 5.0
    httpx_read_timeout: float = 15.0
    httpx_write_timeout: float = 5.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive_connections: int = 20

    # Per-user rate limiting
    rate_limit_requests_per_minute: int = 30
    rate_limit_window_seconds: int = 60
    rate_limit_max_users: int = 10000

    # Authorization policy
    global_price_accuracy_cap: int = 3000  # Shared across all subscription tiers
    initial_grant_amount: int = 50
    max_batch_size: int = 100

    # Credit accrual constants
    prompts_per_credit: int = 2
    referral_credit_amount: int = 6
    social_quest_credit_amount: int = 2
    max_social_quests_per_user: int = 5

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # CORS settings
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator(
        "rate_limit_requests_per_minute",
        "rate_limit_window_seconds",
        "rate_limit_max_users",
    )
    @classmethod
    def validate_rate_limit_positive(cls, v: int) -> int:
        """Validate rate limit values are positive."""
        if v < 1:
            raise ValueError("Rate limit values must be at least 1")
        return v

    @field_validator(
        "global_price_accuracy_cap",
        "initial_grant_amount",
        "max_batch_size",
        "prompts_per_credit",
    )
    @classmethod
    def validate_policy_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("policy values must be at least 1")
        return v

    @field_validator("rpc_max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("rpc_max_retries must not be negative")
        return v

    @field_validator("httpx_connect_timeout", "httpx_read_timeout")
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    @property
    def access_contract_configured(self) -> bool:
        """True only for a well-formed, non-zero contract address."""
        address = self.access_contract_address.strip()
        return Web3.is_address(address) and address.lower() != ZERO_ADDRESS

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
