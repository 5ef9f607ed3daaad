"""Tests for the OpenRouteService provider: cache, retries and fallback."""

import pytest
import requests

from contractor_match.core.config import DistanceConfig
from contractor_match.core.schemas import Location
from contractor_match.distance import openroute
from contractor_match.distance.base import haversine_miles
from contractor_match.distance.openroute import (
    DistanceCache,
    OpenRouteServiceProvider,
    cache_key,
)

ORIGIN = Location(latitude=30.2672, longitude=-97.7431)
DEST = Location(latitude=30.5083, longitude=-97.6789)


class DummyResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}

    def json(self):
        return self._payload


class DummySession:
    def __init__(self, responses=None, error=None):
        self.calls = []
        self._responses = list(responses or [])
        self._error = error
        self.closed = False

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append((url, json, headers, timeout))
        if self._error is not None:
            raise self._error
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]

    def close(self):
        self.closed = True


def _route(meters: float) -> DummyResponse:
    return DummyResponse(payload={"routes": [{"summary": {"distance": meters, "duration": 900.0}}]})


def _provider(session: DummySession, api_key: str | None = "key") -> OpenRouteServiceProvider:
    config = DistanceConfig(provider="openrouteservice", timeout_s=7)
    return OpenRouteServiceProvider(config, session=session, api_key=api_key)  # type: ignore[arg-type]


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr(openroute.time, "sleep", recorded.append)
    return recorded


# ---------------------------------------------------------------------------
# API success and caching
# ---------------------------------------------------------------------------


class TestApiLookup:
    def test_success_converts_meters_to_miles(self) -> None:
        session = DummySession([_route(16093.44)])
        miles = _provider(session).distance_miles(ORIGIN, DEST)
        assert miles == pytest.approx(10.0, abs=0.01)

    def test_request_shape(self) -> None:
        session = DummySession([_route(1000.0)])
        _provider(session).distance_miles(ORIGIN, DEST)
        url, body, headers, timeout = session.calls[0]
        assert url.endswith("/v2/directions/driving-car")
        # GeoJSON order: longitude first
        assert body["coordinates"] == [[-97.7431, 30.2672], [-97.6789, 30.5083]]
        assert headers["Authorization"] == "key"
        assert timeout == 7

    def test_result_cached(self) -> None:
        session = DummySession([_route(5000.0)])
        provider = _provider(session)
        first = provider.distance_miles(ORIGIN, DEST)
        second = provider.distance_miles(ORIGIN, DEST)
        assert first == second
        assert len(session.calls) == 1

    def test_cache_is_bidirectional(self) -> None:
        session = DummySession([_route(5000.0)])
        provider = _provider(session)
        provider.distance_miles(ORIGIN, DEST)
        provider.distance_miles(DEST, ORIGIN)
        assert len(session.calls) == 1

    def test_same_location_skips_api(self) -> None:
        session = DummySession([_route(5000.0)])
        assert _provider(session).distance_miles(ORIGIN, ORIGIN) == 0.0
        assert session.calls == []


# ---------------------------------------------------------------------------
# Retries and fallback
# ---------------------------------------------------------------------------


class TestRateLimitRetry:
    def test_retries_after_429(self, sleeps: list[float]) -> None:
        session = DummySession([DummyResponse(status_code=429), _route(8046.72)])
        miles = _provider(session).distance_miles(ORIGIN, DEST)
        assert miles == pytest.approx(5.0, abs=0.01)
        assert len(session.calls) == 2
        assert sleeps == [1.0]

    def test_gives_up_after_five_attempts(self, sleeps: list[float]) -> None:
        session = DummySession([DummyResponse(status_code=429)])
        miles = _provider(session).distance_miles(ORIGIN, DEST)
        assert len(session.calls) == 5
        assert sleeps == [1.0, 2.0, 4.0, 8.0]
        assert miles == pytest.approx(haversine_miles(ORIGIN, DEST))

    def test_recovers_on_last_attempt(self, sleeps: list[float]) -> None:
        session = DummySession([DummyResponse(status_code=429)] * 4 + [_route(1609.344)])
        miles = _provider(session).distance_miles(ORIGIN, DEST)
        assert miles == pytest.approx(1.0, abs=0.01)
        assert len(session.calls) == 5

    def test_final_rate_limit_logged_as_error(
        self, sleeps: list[float], caplog: pytest.LogCaptureFixture,
    ) -> None:
        session = DummySession([DummyResponse(status_code=429)])
        _provider(session).distance_miles(ORIGIN, DEST)
        assert "OpenRouteService returned 429 on attempt 5" in caplog.text


class TestFallback:
    def test_server_error_falls_back(self) -> None:
        session = DummySession([DummyResponse(status_code=500)])
        miles = _provider(session).distance_miles(ORIGIN, DEST)
        assert miles == pytest.approx(haversine_miles(ORIGIN, DEST))
        assert len(session.calls) == 1

    def test_fallback_not_cached(self) -> None:
        session = DummySession([DummyResponse(status_code=500)])
        provider = _provider(session)
        provider.distance_miles(ORIGIN, DEST)
        provider.distance_miles(ORIGIN, DEST)
        assert len(session.calls) == 2

    def test_malformed_payload_falls_back(self) -> None:
        session = DummySession([DummyResponse(payload={"routes": []})])
        miles = _provider(session).distance_miles(ORIGIN, DEST)
        assert miles == pytest.approx(haversine_miles(ORIGIN, DEST))

    def test_transport_error_falls_back(self) -> None:
        session = DummySession(error=requests.ConnectionError("boom"))
        miles = _provider(session).distance_miles(ORIGIN, DEST)
        assert miles == pytest.approx(haversine_miles(ORIGIN, DEST))

    def test_timeout_falls_back(self) -> None:
        session = DummySession(error=requests.Timeout("slow"))
        miles = _provider(session).distance_miles(ORIGIN, DEST)
        assert miles == pytest.approx(haversine_miles(ORIGIN, DEST))

    def test_missing_api_key_never_calls(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ORS_API_KEY", raising=False)
        session = DummySession([_route(5000.0)])
        miles = _provider(session, api_key=None).distance_miles(ORIGIN, DEST)
        assert session.calls == []
        assert miles == pytest.approx(haversine_miles(ORIGIN, DEST))

    def test_api_key_read_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORS_API_KEY", "from-env")
        session = DummySession([_route(5000.0)])
        _provider(session, api_key=None).distance_miles(ORIGIN, DEST)
        assert session.calls[0][2]["Authorization"] == "from-env"


# ---------------------------------------------------------------------------
# Cache internals
# ---------------------------------------------------------------------------


class TestDistanceCache:
    def test_cache_key_symmetric(self) -> None:
        assert cache_key(ORIGIN, DEST) == cache_key(DEST, ORIGIN)

    def test_cache_key_format(self) -> None:
        assert cache_key(ORIGIN, DEST) == "30.267200,-97.743100|30.508300,-97.678900"

    def test_expired_entry_dropped(self) -> None:
        cache = DistanceCache(ttl_s=0.0, max_entries=10)
        cache.put("k", 1.0)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_hit(self) -> None:
        cache = DistanceCache(ttl_s=60.0, max_entries=10)
        cache.put("k", 3.5)
        assert cache.get("k") == 3.5

    def test_evicts_when_full(self) -> None:
        cache = DistanceCache(ttl_s=60.0, max_entries=2)
        cache.put("a", 1.0)
        cache.put("b", 2.0)
        cache.put("c", 3.0)
        assert len(cache) == 2
        assert cache.get("a") is None
        assert cache.get("c") == 3.0


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------


class TestClose:
    def test_closes_own_session(self, monkeypatch: pytest.MonkeyPatch) -> None:
        session = DummySession([_route(1000.0)])
        monkeypatch.setattr(openroute.requests, "Session", lambda: session)
        provider = OpenRouteServiceProvider(DistanceConfig(provider="openrouteservice"), api_key="key")
        provider.close()
        assert session.closed

    def test_leaves_injected_session_open(self) -> None:
        session = DummySession([_route(1000.0)])
        _provider(session).close()
        assert not session.closed
