"""Configuration models and YAML loader for the contractor ranking engine."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from contractor_match.core.schemas import ScoringWeights

DISTANCE_PROVIDERS = ("haversine", "openrouteservice")


class ScoringConfig(BaseModel):
    """Default weights and the constants behind each component score (0-1 scale)."""

    weights: ScoringWeights = Field(default_factory=ScoringWeights)

    # Availability: step function of hours between the requested time and the best slot.
    perfect_match_score: float = Field(default=1.0, gt=0.0, le=1.0)
    near_match_score: float = Field(default=0.7, gt=0.0, le=1.0)
    near_match_window_hours: float = Field(default=2.0, ge=0.0)
    far_match_score: float = Field(default=0.4, gt=0.0, le=1.0)

    max_rating: float = Field(default=5.0, gt=0.0)

    # Distance: full marks, then linear decay, then a flat outer band, then zero.
    full_score_radius_miles: float = Field(default=10.0, ge=0.0)
    decay_end_miles: float = Field(default=30.0, ge=0.0)
    decay_floor_score: float = Field(default=0.3, ge=0.0, le=1.0)
    outer_band_score: float = Field(default=0.2, ge=0.0, le=1.0)
    max_service_radius_miles: float = Field(default=50.0, gt=0.0)

    @model_validator(mode="after")
    def scores_non_increasing(self) -> "ScoringConfig":
        if not self.perfect_match_score >= self.near_match_score >= self.far_match_score:
            msg = "availability scores must satisfy perfect >= near >= far"
            raise ValueError(msg)
        if not self.full_score_radius_miles <= self.decay_end_miles <= self.max_service_radius_miles:
            msg = "distance bands must satisfy full_score_radius <= decay_end <= max_service_radius"
            raise ValueError(msg)
        if self.outer_band_score > self.decay_floor_score:
            msg = "outer_band_score must not exceed decay_floor_score"
            raise ValueError(msg)
        return self


class DistanceConfig(BaseModel):
    """Which distance provider to use and how the routing API is called."""

    provider: str = "haversine"
    api_key_env: str = "ORS_API_KEY"
    timeout_s: float = Field(default=10.0, gt=0.0)
    cache_ttl_hours: float = Field(default=24.0, gt=0.0)
    max_cache_entries: int = Field(default=10_000, ge=1)

    @field_validator("provider")
    @classmethod
    def provider_known(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in DISTANCE_PROVIDERS:
            msg = f"distance provider must be one of {list(DISTANCE_PROVIDERS)}, got '{v}'"
            raise ValueError(msg)
        return v


class RankingConfig(BaseModel):
    """Ranking defaults."""

    default_top_n: int = 5
    # Off: only the weekly template is consulted.
    exclude_booked_jobs: bool = False


class RosterConfig(BaseModel):
    """Location of the YAML roster used by the file-backed repository."""

    path: str = "config/roster.yaml"


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    distance: DistanceConfig = Field(default_factory=DistanceConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    roster: RosterConfig = Field(default_factory=RosterConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
