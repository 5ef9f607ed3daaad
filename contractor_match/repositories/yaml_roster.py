"""Contractor repository backed by a YAML roster file.

Times must be quoted in YAML ("09:00"); unquoted 09:00 is read as a number.
"""

import logging
from datetime import date, time
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from contractor_match.core.schemas import Contractor, TimeSlot
from contractor_match.repositories.base import ContractorRepository

logger = logging.getLogger(__name__)


class JobType(BaseModel):
    """A job category contractors specialise in."""

    id: str
    name: str


class Booking(BaseModel):
    """A committed job occupying part of a contractor's day."""

    contractor_id: str
    day: date
    start: time
    end: time

    def to_slot(self) -> TimeSlot:
        return TimeSlot(start=self.start, end=self.end)


class RosterFile(BaseModel):
    """Top-level roster document."""

    job_types: list[JobType] = Field(default_factory=list)
    contractors: list[Contractor] = Field(default_factory=list)
    bookings: list[Booking] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_contractor_ids(self) -> "RosterFile":
        seen: set[str] = set()
        for c in self.contractors:
            if c.id in seen:
                msg = f"duplicate contractor id '{c.id}'"
                raise ValueError(msg)
            seen.add(c.id)
        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RosterFile":
        """Load a roster from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Roster file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)


class YamlRosterRepository(ContractorRepository):
    """Serves contractors, job types and bookings from an in-memory roster."""

    def __init__(self, roster: RosterFile) -> None:
        self._roster = roster
        self._contractors = {c.id: c for c in roster.contractors}
        self._job_types = {jt.id: jt.name for jt in roster.job_types}

    @classmethod
    def from_yaml(cls, path: str | Path) -> "YamlRosterRepository":
        roster = RosterFile.from_yaml(path)
        logger.info(
            "Loaded roster %s: %d contractors, %d job types, %d bookings",
            path, len(roster.contractors), len(roster.job_types), len(roster.bookings),
        )
        return cls(roster)

    async def get_active_contractors(self) -> list[Contractor]:
        return [c for c in self._roster.contractors if c.is_active]

    async def get_contractor(self, contractor_id: str) -> Contractor | None:
        return self._contractors.get(contractor_id)

    async def get_job_type_name(self, job_type_id: str) -> str | None:
        return self._job_types.get(job_type_id)

    async def get_booked_slots(self, contractor_id: str, target_date: date) -> list[TimeSlot]:
        return [
            b.to_slot()
            for b in self._roster.bookings
            if b.contractor_id == contractor_id and b.day == target_date
        ]
