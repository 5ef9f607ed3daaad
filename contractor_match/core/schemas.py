"""Core data models for the contractor ranking engine."""

from datetime import date, time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def seconds_of(t: time) -> int:
    """Time of day as whole seconds since midnight. Sub-second parts are ignored."""
    return t.hour * 3600 + t.minute * 60 + t.second


def hours_to_seconds(hours: float) -> int:
    """Round a duration in hours to whole seconds, so 0.7 h is exactly 2520 s."""
    return round(hours * 3600)


class Location(BaseModel):
    """A geographic point. Equality is by coordinates; the address is informational."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    address: str | None = None

    @field_validator("latitude", "longitude")
    @classmethod
    def round_coordinate(cls, v: float) -> float:
        return round(v, 6)

    @field_validator("address")
    @classmethod
    def strip_address(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return (self.latitude, self.longitude) == (other.latitude, other.longitude)

    def __hash__(self) -> int:
        return hash((self.latitude, self.longitude))


class TimeSlot(BaseModel):
    """A contiguous time-of-day interval. Always start < end."""

    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    @model_validator(mode="after")
    def end_after_start(self) -> "TimeSlot":
        if self.end <= self.start:
            msg = f"end time must be after start time ({self.start} - {self.end})"
            raise ValueError(msg)
        return self

    @property
    def duration_seconds(self) -> int:
        return seconds_of(self.end) - seconds_of(self.start)

    @property
    def duration_hours(self) -> float:
        return self.duration_seconds / 3600

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.start < other.end and self.end > other.start

    def can_accommodate(self, required_duration_hours: float) -> bool:
        # Whole seconds on both sides: a window exactly as long as the job fits.
        return self.duration_seconds >= hours_to_seconds(required_duration_hours)

    def __str__(self) -> str:
        return f"{self.start:%H:%M} - {self.end:%H:%M}"


class WeeklyScheduleEntry(BaseModel):
    """One recurring available window on a weekday (0=Monday .. 6=Sunday).

    Several entries on the same weekday express split shifts. Time order is not
    validated here: snapshots can carry malformed rows, and the availability
    resolver decides how to treat them.
    """

    model_config = ConfigDict(frozen=True)

    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time

    @field_validator("day_of_week", mode="before")
    @classmethod
    def parse_day_name(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip().isdigit():
            name = v.strip().lower()
            if name not in DAY_NAMES:
                msg = f"day_of_week must be a weekday name or 0-6, got '{v}'"
                raise ValueError(msg)
            return DAY_NAMES.index(name)
        return v

    @property
    def is_valid(self) -> bool:
        return self.end_time > self.start_time

    def to_slot(self) -> TimeSlot:
        """Return the entry as a TimeSlot. Raises ValueError if malformed."""
        if not self.is_valid:
            msg = (
                f"schedule entry on {DAY_NAMES[self.day_of_week]} has end "
                f"{self.end_time} not after start {self.start_time}"
            )
            raise ValueError(msg)
        return TimeSlot(start=self.start_time, end=self.end_time)


class Contractor(BaseModel):
    """Read-only contractor snapshot as supplied by the repository."""

    model_config = ConfigDict(frozen=True)

    id: str
    formatted_id: str = ""
    name: str
    job_type_id: str
    base_location: Location
    rating: float = Field(ge=0.0, le=5.0)
    is_active: bool = True
    weekly_schedule: list[WeeklyScheduleEntry] = Field(default_factory=list)


class ScoringWeights(BaseModel):
    """Relative importance of availability, rating and distance. Sums to 1.0."""

    model_config = ConfigDict(frozen=True)

    availability: float = Field(default=0.4, ge=0.0, le=1.0)
    rating: float = Field(default=0.3, ge=0.0, le=1.0)
    distance: float = Field(default=0.3, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def weights_sum_to_one(self) -> "ScoringWeights":
        total = self.availability + self.rating + self.distance
        if abs(total - 1.0) > 0.001:
            msg = f"availability + rating + distance weights must equal 1.0 (got {total:.3f})"
            raise ValueError(msg)
        return self

    def __str__(self) -> str:
        return (
            f"Availability: {self.availability:.0%}, "
            f"Rating: {self.rating:.0%}, "
            f"Distance: {self.distance:.0%}"
        )


DEFAULT_WEIGHTS = ScoringWeights()


class ContractorScore(BaseModel):
    """Score breakdown for one contractor. All components on a 0-1 scale."""

    model_config = ConfigDict(frozen=True)

    contractor_id: str
    availability_score: float = Field(ge=0.0, le=1.0)
    rating_score: float = Field(ge=0.0, le=1.0)
    distance_score: float = Field(ge=0.0, le=1.0)
    overall_score: float = Field(ge=0.0, le=1.0)
    best_available_slot: TimeSlot | None = None

    @property
    def has_slot(self) -> bool:
        return self.best_available_slot is not None

    def __str__(self) -> str:
        return (
            f"Score: {self.overall_score:.2f} "
            f"(Avail: {self.availability_score:.2f}, "
            f"Rating: {self.rating_score:.2f}, "
            f"Dist: {self.distance_score:.2f})"
        )


class RankedContractorResult(BaseModel):
    """Presentation-ready ranking row. Produced per request, never persisted."""

    model_config = ConfigDict(frozen=True)

    contractor_id: str
    formatted_id: str
    name: str
    job_type: str | None = None
    rating: float
    base_location: Location
    distance_miles: float = Field(ge=0.0)
    best_available_slot: TimeSlot | None = None
    score: ContractorScore


class RankingRequest(BaseModel):
    """Job requirements for a ranking call.

    top_n has no lower bound: zero or negative means "return nothing".
    """

    model_config = ConfigDict(frozen=True)

    job_type_id: str
    target_date: date
    target_time: time
    job_location: Location
    required_duration_hours: float = Field(gt=0.0)
    weights: ScoringWeights | None = None
    top_n: int = 5
