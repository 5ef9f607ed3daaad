"""Weighted scoring and ranking of contractors for a job.

Score range: 0-1 for every component and for the overall score.
  - availability: step function of how far the best slot is from the requested time
  - rating: linear, rating / max_rating
  - distance: full marks near the job, linear decay, flat outer band, zero past the radius
Overall is the weighted sum, except that a contractor with no feasible slot
floors to 0.0 so it always ranks after every contractor that has one.
"""

import logging
from collections.abc import Mapping, Sequence

from contractor_match.core.config import ScoringConfig
from contractor_match.core.schemas import (
    Contractor,
    ContractorScore,
    RankingRequest,
    ScoringWeights,
    TimeSlot,
)
from contractor_match.distance.base import DistanceProvider
from contractor_match.distance.haversine import HaversineProvider
from contractor_match.pipeline.availability import (
    MalformedScheduleError,
    find_available_slots,
    find_best_slot,
)

logger = logging.getLogger(__name__)

AVAILABILITY_FLOOR = 0.0


def availability_score(mismatch_hours: float | None, config: ScoringConfig) -> float:
    """Map the best slot's start mismatch to a score. None means no feasible slot."""
    if mismatch_hours is None:
        return AVAILABILITY_FLOOR
    if mismatch_hours <= 0:
        return config.perfect_match_score
    if mismatch_hours <= config.near_match_window_hours:
        return config.near_match_score
    return config.far_match_score


def rating_score(rating: float, config: ScoringConfig) -> float:
    return _clamp(rating / config.max_rating)


def distance_score(distance_miles: float, config: ScoringConfig) -> float:
    """Closer is better; zero at and beyond the max service radius."""
    if distance_miles >= config.max_service_radius_miles:
        return 0.0
    if distance_miles < config.full_score_radius_miles:
        return 1.0
    if distance_miles <= config.decay_end_miles:
        span = config.decay_end_miles - config.full_score_radius_miles
        if span <= 0:
            return config.decay_floor_score
        decay = (distance_miles - config.full_score_radius_miles) / span
        return 1.0 - decay * (1.0 - config.decay_floor_score)
    return config.outer_band_score


def overall_score(
    availability: float,
    rating: float,
    distance: float,
    weights: ScoringWeights,
    has_slot: bool = True,
) -> float:
    """Weighted sum of the component scores, clamped to 0-1."""
    if not has_slot:
        return AVAILABILITY_FLOOR
    total = (
        availability * weights.availability
        + rating * weights.rating
        + distance * weights.distance
    )
    return round(_clamp(total), 6)


def score_contractor(
    contractor: Contractor,
    request: RankingRequest,
    config: ScoringConfig,
    distance_provider: DistanceProvider,
    booked: Sequence[TimeSlot] = (),
) -> ContractorScore:
    """Score one contractor against a job request.

    A malformed schedule does not raise: the contractor is scored as having no slot.
    """
    weights = request.weights or config.weights

    try:
        slots = find_available_slots(
            contractor, request.target_date, request.required_duration_hours, booked,
        )
    except MalformedScheduleError as e:
        logger.warning("Treating contractor %s as unavailable: %s", contractor.id, e)
        slots = []

    best_slot, mismatch = find_best_slot(
        slots, request.required_duration_hours, request.target_time,
    )
    miles = distance_provider.distance_miles(contractor.base_location, request.job_location)

    avail = availability_score(mismatch, config)
    rating = rating_score(contractor.rating, config)
    dist = distance_score(miles, config)

    return ContractorScore(
        contractor_id=contractor.id,
        availability_score=avail,
        rating_score=rating,
        distance_score=dist,
        overall_score=overall_score(avail, rating, dist, weights, has_slot=best_slot is not None),
        best_available_slot=best_slot,
    )


def rank_candidates(
    contractors: Sequence[Contractor],
    request: RankingRequest,
    config: ScoringConfig | None = None,
    distance_provider: DistanceProvider | None = None,
    booked: Mapping[str, Sequence[TimeSlot]] | None = None,
) -> list[ContractorScore]:
    """Score every contractor and return the scores in rank order.

    Order: contractors with a slot first, then overall desc, rating score desc,
    distance score asc, and finally input position. No contractor is dropped.
    """
    config = config or ScoringConfig()
    distance_provider = distance_provider or HaversineProvider()
    booked = booked or {}

    scored = [
        score_contractor(c, request, config, distance_provider, booked.get(c.id, ()))
        for c in contractors
    ]
    order = sorted(range(len(scored)), key=lambda i: _rank_key(scored[i], i))
    ranked = [scored[i] for i in order]

    logger.debug(
        "Ranked %d contractors (%d with a feasible slot)",
        len(ranked), sum(1 for s in ranked if s.has_slot),
    )
    return ranked


def _rank_key(score: ContractorScore, position: int) -> tuple[bool, float, float, float, int]:
    return (
        not score.has_slot,
        -score.overall_score,
        -score.rating_score,
        score.distance_score,
        position,
    )


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))
