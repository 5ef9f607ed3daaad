"""Orchestrator: wires repository, filter chain, scorer and result enrichment.

Data flow for a ranking request:
  1. top_n gate (<= 0 -> empty, nothing fetched)
  2. Repository fetch -> active contractors
  3. Filter chain -> eligible candidates
  4. Booked slots (only when exclude_booked_jobs is on)
  5. Scorer -> ranked scores for the whole candidate set
  6. Truncate to top_n, resolve job-type names, attach distances
"""

import asyncio
import json
import logging
from datetime import date

from contractor_match.core.config import Settings
from contractor_match.core.schemas import (
    Contractor,
    ContractorScore,
    RankedContractorResult,
    RankingRequest,
    TimeSlot,
)
from contractor_match.distance import DistanceProvider, get_shared_provider
from contractor_match.pipeline.availability import MalformedScheduleError, find_available_slots
from contractor_match.pipeline.matcher import ActiveFilter, Filter, JobTypeFilter, run_filter_chain
from contractor_match.pipeline.scorer import rank_candidates
from contractor_match.repositories.base import ContractorRepository

logger = logging.getLogger(__name__)


class ContractorNotFoundError(LookupError):
    """Raised when a contractor id does not exist in the repository."""


async def rank_contractors(
    request: RankingRequest,
    repository: ContractorRepository,
    settings: Settings | None = None,
    distance_provider: DistanceProvider | None = None,
) -> list[RankedContractorResult]:
    """Rank eligible contractors for a job and return at most top_n results.

    An empty list means no eligible contractor (or top_n <= 0); it is not an error.
    """
    settings = settings or Settings()
    if request.top_n <= 0:
        logger.info("top_n=%d - returning no contractors", request.top_n)
        return []

    distance_provider = distance_provider or get_shared_provider(settings.distance)

    all_contractors = await repository.get_active_contractors()
    logger.debug("Repository returned %d active contractors", len(all_contractors))

    candidates = run_filter_chain(all_contractors, _build_filters(request))
    logger.info("Eligible contractors for job type '%s': %d", request.job_type_id, len(candidates))
    if not candidates:
        return []

    booked: dict[str, list[TimeSlot]] = {}
    if settings.ranking.exclude_booked_jobs:
        booked = await _fetch_booked_slots(repository, candidates, request.target_date)

    scores = rank_candidates(
        candidates,
        request,
        config=settings.scoring,
        distance_provider=distance_provider,
        booked=booked,
    )
    top_scores = scores[: request.top_n]

    by_id = {c.id: c for c in candidates}
    results: list[RankedContractorResult] = []
    for score in top_scores:
        contractor = by_id[score.contractor_id]
        job_type_name = await repository.get_job_type_name(contractor.job_type_id)
        if job_type_name is None:
            logger.warning("Job type '%s' not found for contractor %s", contractor.job_type_id, contractor.id)
        miles = distance_provider.distance_miles(contractor.base_location, request.job_location)
        results.append(_to_result(contractor, job_type_name, score, miles))

    logger.info(
        "Ranked %d candidates for '%s' on %s, returning %d",
        len(scores), request.job_type_id, request.target_date, len(results),
    )
    return results


async def get_availability(
    contractor_id: str,
    target_date: date,
    required_duration_hours: float,
    repository: ContractorRepository,
    settings: Settings | None = None,
) -> list[TimeSlot]:
    """List every slot on target_date that can host a job of the given length.

    Raises:
        ValueError: If required_duration_hours is not positive.
        ContractorNotFoundError: If the contractor does not exist.
    """
    if required_duration_hours <= 0:
        msg = f"required duration must be positive, got {required_duration_hours}"
        raise ValueError(msg)

    settings = settings or Settings()
    contractor = await repository.get_contractor(contractor_id)
    if contractor is None:
        msg = f"Contractor with ID {contractor_id} not found"
        raise ContractorNotFoundError(msg)

    booked: list[TimeSlot] = []
    if settings.ranking.exclude_booked_jobs:
        booked = await repository.get_booked_slots(contractor.id, target_date)

    try:
        return find_available_slots(contractor, target_date, required_duration_hours, booked)
    except MalformedScheduleError as e:
        logger.warning("No availability reported for %s: %s", contractor.id, e)
        return []


def export_results_json(results: list[RankedContractorResult]) -> str:
    """Export ranked results as a JSON string."""
    data = []
    for rank, r in enumerate(results, start=1):
        slot = r.best_available_slot
        data.append({
            "rank": rank,
            "contractor_id": r.contractor_id,
            "formatted_id": r.formatted_id,
            "name": r.name,
            "job_type": r.job_type,
            "rating": r.rating,
            "base_location": r.base_location.model_dump(),
            "distance_miles": round(r.distance_miles, 2),
            "best_available_slot": None if slot is None else {
                "start": slot.start.isoformat(timespec="minutes"),
                "end": slot.end.isoformat(timespec="minutes"),
                "duration_hours": slot.duration_hours,
            },
            "score_breakdown": {
                "availability_score": r.score.availability_score,
                "rating_score": r.score.rating_score,
                "distance_score": r.score.distance_score,
                "overall_score": r.score.overall_score,
            },
        })
    return json.dumps(data, indent=2)


async def _fetch_booked_slots(
    repository: ContractorRepository,
    contractors: list[Contractor],
    target_date: date,
) -> dict[str, list[TimeSlot]]:
    """Fetch committed intervals for every candidate concurrently."""
    booked = await asyncio.gather(
        *(repository.get_booked_slots(c.id, target_date) for c in contractors),
    )
    return {c.id: slots for c, slots in zip(contractors, booked)}


def _to_result(
    contractor: Contractor,
    job_type_name: str | None,
    score: ContractorScore,
    distance_miles: float,
) -> RankedContractorResult:
    return RankedContractorResult(
        contractor_id=contractor.id,
        formatted_id=contractor.formatted_id,
        name=contractor.name,
        job_type=job_type_name,
        rating=contractor.rating,
        base_location=contractor.base_location,
        distance_miles=distance_miles,
        best_available_slot=score.best_available_slot,
        score=score,
    )


def _build_filters(request: RankingRequest) -> list[Filter]:
    """Build the eligibility filter chain for a request."""
    filters: list[Filter] = [
        ActiveFilter(),
        JobTypeFilter(request.job_type_id),
    ]
    return filters
