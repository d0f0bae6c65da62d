"""Application configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Aggregation cache lifetime (seconds)
    cache_ttl_seconds: float = 300.0

    # Per-source signal weights
    news_weight: float = 0.4
    onchain_weight: float = 0.3

    # Confidence component weights
    base_weight: float = 0.3
    signal_weight: float = 0.4
    history_weight: float = 0.3

    # Multipliers applied to raw confidence by prediction model id
    model_quality_factors: dict[str, float] = Field(
        default_factory=lambda: {"ensemble": 1.1, "naive": 0.9}
    )

    # Resolved predictions needed before history counts
    min_samples_for_history: int = 10

    # Online calibration against the outcome ledger
    calibration_enabled: bool = True
    calibration_min_samples: int = 20
    bucket_min_samples: int = 5

    # Liquidity below this dampens confidence
    min_liquidity: float = 10_000.0

    # Kelly criterion fraction (0.25 = quarter-Kelly)
    kelly_fraction: float = 0.25

    # Capital available and per-trade cap
    bankroll: float = 1000.0
    max_bet_size: float = 100.0

    # Minimum calibrated confidence to act on a decision
    min_confidence: float = 0.65

    # Order price bounds: market price +/- this
    max_slippage: float = 0.02

    # Execution venue: polymarket, kalshi or both
    platform: str = "polymarket"

    # SQLite database path for decision tracking
    db_path: Path = Path.home() / ".oracle-edge" / "decisions.db"

    # HTTP request timeout seconds
    http_timeout: float = 30.0

    @field_validator(
        "news_weight", "onchain_weight",
        "base_weight", "signal_weight", "history_weight",
    )
    @classmethod
    def _weight_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"weights must be in [0, 1], got {v}")
        return v

    @field_validator("kelly_fraction")
    @classmethod
    def _kelly_fraction_in_range(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"kelly_fraction must be in (0, 1], got {v}")
        return v

    @field_validator("min_confidence")
    @classmethod
    def _min_confidence_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"min_confidence must be in [0, 1], got {v}")
        return v

    @field_validator("max_slippage")
    @classmethod
    def _slippage_in_range(cls, v: float) -> float:
        if not 0.0 <= v < 1.0:
            raise ValueError(f"max_slippage must be in [0, 1), got {v}")
        return v

    @field_validator("bankroll")
    @classmethod
    def _bankroll_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"bankroll must be > 0, got {v}")
        return v

    @field_validator("max_bet_size", "min_liquidity", "cache_ttl_seconds")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"value must be >= 0, got {v}")
        return v

    @field_validator("platform")
    @classmethod
    def _known_platform(cls, v: str) -> str:
        v = v.lower()
        if v not in ("polymarket", "kalshi", "both"):
            raise ValueError(f"platform must be polymarket, kalshi or both, got {v!r}")
        return v

    @model_validator(mode="after")
    def _component_weights_sum(self) -> Settings:
        total = self.base_weight + self.signal_weight + self.history_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"confidence component weights must sum to 1, got {total:.3f}")
        return self


def get_settings() -> Settings:
    """Load settings from the environment and .env file."""
    return Settings()
