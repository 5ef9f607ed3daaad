"""CLI entry point for the contractor ranking engine."""

import argparse
import asyncio
import logging
import sys
from datetime import date, time

from contractor_match.core.config import Settings
from contractor_match.core.schemas import Location, RankingRequest, ScoringWeights
from contractor_match.distance import close_shared_providers
from contractor_match.pipeline.orchestrator import (
    ContractorNotFoundError,
    export_results_json,
    get_availability,
    rank_contractors,
)
from contractor_match.repositories.yaml_roster import YamlRosterRepository


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Contractor ranking engine - rank contractors for a job",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    common.add_argument(
        "--roster",
        help="Path to roster YAML file (default: roster.path from settings)",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # --- rank subcommand ---
    rank_parser = subparsers.add_parser("rank", parents=[common], help="Rank contractors for a job")
    rank_parser.add_argument("--job-type", required=True, help="Job type id")
    rank_parser.add_argument("--date", required=True, type=date.fromisoformat, help="Target date (YYYY-MM-DD)")
    rank_parser.add_argument("--time", required=True, type=time.fromisoformat, help="Target time (HH:MM)")
    rank_parser.add_argument("--lat", required=True, type=float, help="Job latitude")
    rank_parser.add_argument("--lon", required=True, type=float, help="Job longitude")
    rank_parser.add_argument("--address", help="Job address (informational)")
    rank_parser.add_argument("--duration", required=True, type=float, help="Required duration in hours")
    rank_parser.add_argument(
        "--top-n",
        type=int,
        help="Number of contractors to return (default: ranking.default_top_n from settings)",
    )
    rank_parser.add_argument(
        "--weights",
        help="Weight override as availability,rating,distance (e.g. 0.5,0.3,0.2)",
    )
    rank_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export results to format (json)",
    )

    # --- availability subcommand ---
    avail_parser = subparsers.add_parser(
        "availability",
        parents=[common],
        help="List a contractor's open slots for a date",
    )
    avail_parser.add_argument("--contractor", required=True, help="Contractor id")
    avail_parser.add_argument("--date", required=True, type=date.fromisoformat, help="Target date (YYYY-MM-DD)")
    avail_parser.add_argument("--duration", required=True, type=float, help="Required duration in hours")

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_weights(raw: str | None) -> ScoringWeights | None:
    """Parse 'availability,rating,distance' into ScoringWeights."""
    if raw is None:
        return None
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 3:
        msg = f"--weights needs three comma-separated values, got '{raw}'"
        raise ValueError(msg)
    availability, rating, distance = (float(p) for p in parts)
    return ScoringWeights(availability=availability, rating=rating, distance=distance)


def load_settings(path: str) -> Settings:
    """Load settings, falling back to defaults when the default file is absent."""
    try:
        return Settings.from_yaml(path)
    except FileNotFoundError:
        if path != "config/settings.yaml":
            raise
        logging.getLogger(__name__).info("No %s - using default settings", path)
        return Settings()


async def cmd_rank(args: argparse.Namespace, settings: Settings, repository: YamlRosterRepository) -> None:
    """Handle rank subcommand."""
    request = RankingRequest(
        job_type_id=args.job_type,
        target_date=args.date,
        target_time=args.time,
        job_location=Location(latitude=args.lat, longitude=args.lon, address=args.address),
        required_duration_hours=args.duration,
        weights=parse_weights(args.weights),
        top_n=args.top_n if args.top_n is not None else settings.ranking.default_top_n,
    )
    results = await rank_contractors(request, repository, settings)

    if args.export == "json":
        print(export_results_json(results))
        return

    if not results:
        print(f"No contractors available for job type '{args.job_type}'.")
        return

    print(f"\nTop {len(results)} contractors for '{args.job_type}' on {args.date} at {args.time:%H:%M}:")
    for rank, r in enumerate(results, start=1):
        slot = str(r.best_available_slot) if r.best_available_slot else "no slot"
        print(f"  {rank}. {r.formatted_id or r.contractor_id} {r.name} "
              f"({r.job_type or 'unknown type'}, rating {r.rating:.1f}, {r.distance_miles:.1f} mi)")
        print(f"     {r.score} | best slot: {slot}")


async def cmd_availability(
    args: argparse.Namespace,
    settings: Settings,
    repository: YamlRosterRepository,
) -> None:
    """Handle availability subcommand."""
    slots = await get_availability(args.contractor, args.date, args.duration, repository, settings)
    if not slots:
        print(f"Contractor {args.contractor} has no {args.duration:g}h slot on {args.date}.")
        return
    print(f"Contractor {args.contractor} on {args.date} ({args.duration:g}h job):")
    for slot in slots:
        print(f"  {slot} ({slot.duration_hours:g}h)")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
        repository = YamlRosterRepository.from_yaml(args.roster or settings.roster.path)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "rank":
            asyncio.run(cmd_rank(args, settings, repository))
        else:
            asyncio.run(cmd_availability(args, settings, repository))
    except (ContractorNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        close_shared_providers()


if __name__ == "__main__":
    main()
