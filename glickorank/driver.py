"""Control loops around the core update: batching and repetition."""

from __future__ import annotations

import logging
from typing import Iterator, Mapping, Sequence

from glickorank.config import System
from glickorank.glicko2 import InvalidParameter, Match, Rating
from glickorank.ratingfile import Universe

logger = logging.getLogger(__name__)


def split_batches(matches: Sequence[Match], size: int) -> Iterator[Sequence[Match]]:
    """Yield consecutive slices of at most *size* matches (all of them if size <= 0)."""
    if not matches:
        return
    if size <= 0:
        yield matches
        return
    for start in range(0, len(matches), size):
        yield matches[start:start + size]


def run_passes(
    system: System,
    ratings: Mapping[str, Rating],
    matches: Sequence[Match],
    batch: int = 0,
    repetitions: int = 0,
    executor=None,
    label: str = "",
) -> dict[str, Rating]:
    """Apply ``1 + repetitions`` rounds of updates, one rating period per batch.

    Each period sees only the table produced by the one before it.
    """
    if batch < 0:
        raise InvalidParameter(f"batch size cannot be negative: {batch}")
    if repetitions < 0:
        raise InvalidParameter(f"repetitions cannot be negative: {repetitions}")

    table = dict(ratings)
    periods = 0
    for round_ in range(1 + repetitions):
        for chunk in split_batches(matches, batch):
            logger.debug(
                "%s round=%d period=%d matches=%d", label, round_, periods, len(chunk),
            )
            table = system.update(table, chunk, executor=executor)
            periods += 1

    logger.info(
        "%s rated %d players over %d periods", label, len(table), periods,
    )
    return table


def rate_universes(
    system: System,
    universes: Mapping[str, Universe],
    batch: int = 0,
    repetitions: int = 0,
    executor=None,
) -> list[tuple[Universe, dict[str, Rating]]]:
    """Rate every namespace independently, in namespace order."""
    results = []
    for name in sorted(universes):
        universe = universes[name]
        table = run_passes(
            system,
            universe.ratings,
            universe.matches,
            batch=batch,
            repetitions=repetitions,
            executor=executor,
            label=name,
        )
        results.append((universe, table))
    return results
