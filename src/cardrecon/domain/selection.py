"""Link decisions for ranked bill candidates."""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from cardrecon.config import ReconciliationConfig
from cardrecon.domain.entities import PotentialMatch
from cardrecon.domain.errors import NotFoundError
from cardrecon.domain.matching import exceeds_tolerance, has_mismatch


@dataclass(frozen=True)
class AutoLinked:
    """A single safe candidate; link without asking."""

    candidate: PotentialMatch
    has_mismatch: bool


@dataclass(frozen=True)
class RequiresSelection:
    """A human has to choose between the candidates."""

    candidates: list[PotentialMatch]


@dataclass(frozen=True)
class NoMatch:
    """No candidate bill exists."""


Decision = Union[AutoLinked, RequiresSelection, NoMatch]


def decide(candidates: Sequence[PotentialMatch], config: ReconciliationConfig) -> Decision:
    """Decide what to do with a cycle's ranked candidates.

    Exactly one candidate within the reject threshold is linked
    automatically. Anything ambiguous, or a lone candidate that would need
    force, goes to a human.
    """
    if not candidates:
        return NoMatch()

    if len(candidates) == 1:
        only = candidates[0]
        if not exceeds_tolerance(only.difference_percent, config):
            return AutoLinked(
                candidate=only,
                has_mismatch=has_mismatch(only.amount_difference, config),
            )

    return RequiresSelection(candidates=list(candidates))


def resolve_selection(
    candidates: Sequence[PotentialMatch], bill_id: Optional[int]
) -> Optional[PotentialMatch]:
    """Pick the candidate a human chose.

    Args:
        candidates: The cycle's offered candidates
        bill_id: Chosen bill, or None to keep the cycle pending

    Returns:
        The chosen candidate, or None when bill_id is None

    Raises:
        NotFoundError: If bill_id is not among the candidates
    """
    if bill_id is None:
        return None
    for candidate in candidates:
        if candidate.bill_id == bill_id:
            return candidate
    raise NotFoundError(f"Bill payment {bill_id} is not a candidate for this billing cycle")
