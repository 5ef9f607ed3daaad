"""Filter chain that narrows the contractor pool to eligible candidates.

Filter order:
  1. ActiveFilter   - drop deactivated contractors
  2. JobTypeFilter  - keep only the requested job type
"""

import logging
from collections.abc import Callable

from contractor_match.core.schemas import Contractor

logger = logging.getLogger(__name__)

# A filter is a callable that takes contractors and returns a subset, order preserved.
Filter = Callable[[list[Contractor]], list[Contractor]]


class ActiveFilter:
    """Remove contractors whose active flag is off."""

    def __call__(self, contractors: list[Contractor]) -> list[Contractor]:
        result = [c for c in contractors if c.is_active]
        removed = len(contractors) - len(result)
        if removed:
            logger.debug("ActiveFilter: removed %d inactive contractors", removed)
        return result


class JobTypeFilter:
    """Keep contractors whose job type matches the request."""

    def __init__(self, job_type_id: str) -> None:
        self._job_type_id = job_type_id

    def __call__(self, contractors: list[Contractor]) -> list[Contractor]:
        result = [c for c in contractors if c.job_type_id == self._job_type_id]
        removed = len(contractors) - len(result)
        if removed:
            logger.debug(
                "JobTypeFilter: removed %d contractors not of type '%s'",
                removed, self._job_type_id,
            )
        return result


def run_filter_chain(
    contractors: list[Contractor],
    filters: list[Filter],
) -> list[Contractor]:
    """Apply filters in order, returning the surviving contractors."""
    result = contractors
    for f in filters:
        result = f(result)
    return result
