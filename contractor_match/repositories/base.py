"""Abstract base class for the contractor data source."""

from abc import ABC, abstractmethod
from datetime import date

from contractor_match.core.schemas import Contractor, TimeSlot


class ContractorRepository(ABC):
    """Read-only source of contractor snapshots and job-type names.

    The ranking core never mutates what it gets back.
    """

    @abstractmethod
    async def get_active_contractors(self) -> list[Contractor]:
        """Return active contractors with their weekly schedules populated."""

    @abstractmethod
    async def get_contractor(self, contractor_id: str) -> Contractor | None:
        """Return one contractor (active or not), or None if unknown."""

    @abstractmethod
    async def get_job_type_name(self, job_type_id: str) -> str | None:
        """Return the display name of a job type, or None if unknown."""

    async def get_booked_slots(self, contractor_id: str, target_date: date) -> list[TimeSlot]:
        """Intervals already committed on target_date. Sources without bookings return []."""
        return []
