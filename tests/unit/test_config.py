"""Tests for configuration models and YAML loading."""

from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from contractor_match.core.config import (
    DistanceConfig,
    RankingConfig,
    RosterConfig,
    ScoringConfig,
    Settings,
)

REPO_ROOT = Path(__file__).resolve().parents[2]


class TestScoringConfig:
    def test_defaults(self) -> None:
        s = ScoringConfig()
        assert s.weights.availability == 0.4
        assert s.perfect_match_score == 1.0
        assert s.near_match_score == 0.7
        assert s.far_match_score == 0.4
        assert s.near_match_window_hours == 2.0
        assert s.max_service_radius_miles == 50.0

    def test_availability_scores_must_not_increase(self) -> None:
        with pytest.raises(ValidationError, match="perfect >= near >= far"):
            ScoringConfig(near_match_score=0.3, far_match_score=0.5)

    def test_far_match_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ScoringConfig(far_match_score=0.0)

    def test_distance_bands_ordered(self) -> None:
        with pytest.raises(ValidationError, match="distance bands"):
            ScoringConfig(full_score_radius_miles=40, decay_end_miles=30)

    def test_outer_band_below_decay_floor(self) -> None:
        with pytest.raises(ValidationError, match="outer_band_score"):
            ScoringConfig(outer_band_score=0.5, decay_floor_score=0.3)

    def test_weights_validated(self) -> None:
        with pytest.raises(ValidationError, match="must equal 1.0"):
            ScoringConfig(weights={"availability": 0.9, "rating": 0.3, "distance": 0.3})


class TestDistanceConfig:
    def test_defaults(self) -> None:
        d = DistanceConfig()
        assert d.provider == "haversine"
        assert d.api_key_env == "ORS_API_KEY"
        assert d.cache_ttl_hours == 24.0
        assert d.max_cache_entries == 10_000

    def test_provider_normalized(self) -> None:
        assert DistanceConfig(provider=" OpenRouteService ").provider == "openrouteservice"

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValidationError, match="distance provider must be one of"):
            DistanceConfig(provider="carrier-pigeon")

    def test_timeout_positive(self) -> None:
        with pytest.raises(ValidationError):
            DistanceConfig(timeout_s=0)


class TestRankingConfig:
    def test_defaults(self) -> None:
        r = RankingConfig()
        assert r.default_top_n == 5
        assert r.exclude_booked_jobs is False


class TestSettings:
    def test_all_defaults(self) -> None:
        s = Settings()
        assert s.roster == RosterConfig()
        assert s.distance.provider == "haversine"

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        yaml_content = dedent("""\
            scoring:
              weights:
                availability: 0.5
                rating: 0.25
                distance: 0.25
              max_service_radius_miles: 75
            distance:
              provider: openrouteservice
              timeout_s: 5
            ranking:
              default_top_n: 3
              exclude_booked_jobs: true
            roster:
              path: data/roster.yaml
        """)
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml_content)

        settings = Settings.from_yaml(config_file)

        assert settings.scoring.weights.availability == 0.5
        assert settings.scoring.max_service_radius_miles == 75.0
        assert settings.distance.provider == "openrouteservice"
        assert settings.distance.timeout_s == 5.0
        assert settings.ranking.default_top_n == 3
        assert settings.ranking.exclude_booked_jobs is True
        assert settings.roster.path == "data/roster.yaml"

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("")
        settings = Settings.from_yaml(config_file)
        assert settings.ranking.default_top_n == 5

    def test_file_not_found(self) -> None:
        with pytest.raises(FileNotFoundError):
            Settings.from_yaml("/nonexistent/path.yaml")

    def test_invalid_weights_raise(self, tmp_path: Path) -> None:
        yaml_content = dedent("""\
            scoring:
              weights:
                availability: 0.2
                rating: 0.2
                distance: 0.2
        """)
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml_content)

        with pytest.raises(ValidationError, match="must equal 1.0"):
            Settings.from_yaml(config_file)

    def test_load_example_settings(self) -> None:
        """The shipped example config/settings.yaml must be valid."""
        settings = Settings.from_yaml(REPO_ROOT / "config" / "settings.yaml")
        assert settings.scoring.weights == ScoringConfig().weights
        assert settings.roster.path == "config/roster.yaml"
