"""Glicko-2 rating updates from a batch of pairwise match outcomes.

Implements the rating period update from Glickman's "Example of the
Glicko-2 system":

  mu = (r - 1500) / 173.7178        phi = RD / 173.7178
  g(phi) = 1 / sqrt(1 + 3 phi^2 / pi^2)
  E = 1 / (1 + exp(-g(phi_j) (mu - mu_j)))
  v = [sum g(phi_j)^2 E (1 - E)]^-1
  delta = v sum g(phi_j) (s_j - E)

The new volatility is the root of f(x) found with the Illinois method.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

SCALE = 173.7178
RATING_OFFSET = 1500.0

DEFAULT_RATING = 1500.0
DEFAULT_DEVIATION = 350.0
DEFAULT_VOLATILITY = 0.06
DEFAULT_TAU = 0.5

EPSILON = 0.000001
MAX_BRACKET_STEPS = 10_000
MAX_SOLVER_ITERATIONS = 10_000

# Scores from the perspective of the player being rated
LOSS = 0.0
DRAW = 0.5
WIN = 1.0


# ── Errors ──────────────────────────────────────────────────────────

class GlickoError(Exception):
    """Base class for rating update failures."""


class InvalidParameter(GlickoError, ValueError):
    pass


class InvalidRating(GlickoError, ValueError):
    def __init__(self, player: str, reason: str) -> None:
        super().__init__(f"invalid rating for {player!r}: {reason}")
        self.player = player
        self.reason = reason


class MalformedMatch(GlickoError, ValueError):
    def __init__(self, match: Match, reason: str) -> None:
        super().__init__(f"bad match {match}: {reason}")
        self.match = match
        self.reason = reason


class SolverError(GlickoError, RuntimeError):
    """The volatility solver failed to converge."""


# ── Value types ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class Rating:
    """A player's rating on the public (1500-centred) scale."""

    rating: float = DEFAULT_RATING
    deviation: float = DEFAULT_DEVIATION
    volatility: float = DEFAULT_VOLATILITY


@dataclass(frozen=True)
class InternalRating:
    """The same state on the Glicko-2 scale (mu, phi, sigma)."""

    mu: float
    phi: float
    sigma: float


@dataclass(frozen=True)
class Match:
    """Result of a single game."""

    left: str
    right: str
    winner: str | None = None  # None = draw


@dataclass(frozen=True)
class Observation:
    """One player's view of one match: who they faced and how it went."""

    opponent: InternalRating
    result: float


def check_rating(player: str, r: Rating) -> None:
    if r.deviation < 0:
        raise InvalidRating(player, "rating deviation cannot be negative")
    if r.volatility < 0:
        raise InvalidRating(player, "volatility cannot be negative")


def check_match(m: Match) -> None:
    if not m.left:
        raise MalformedMatch(m, "missing left player")
    if not m.right:
        raise MalformedMatch(m, "missing right player")
    if m.left == m.right:
        raise MalformedMatch(m, "player cannot play against themselves")
    if m.winner is not None and m.winner not in (m.left, m.right):
        raise MalformedMatch(m, "winner is non-player")


# ── Scale conversion ────────────────────────────────────────────────

def to_internal(r: Rating) -> InternalRating:
    return InternalRating(
        mu=(r.rating - RATING_OFFSET) / SCALE,
        phi=r.deviation / SCALE,
        sigma=r.volatility,
    )


def to_public(r: InternalRating) -> Rating:
    return Rating(
        rating=SCALE * r.mu + RATING_OFFSET,
        deviation=SCALE * r.phi,
        volatility=r.sigma,
    )


# ── Match aggregation ───────────────────────────────────────────────

def result_for(m: Match, player: str) -> float:
    """Score of *player* in *m*: 1 for a win, 0 for a loss, 0.5 for a draw."""
    if m.winner is None:
        return DRAW
    return WIN if m.winner == player else LOSS


def aggregate_matches(
    matches: Iterable[Match],
    lookup: Callable[[str], Rating],
    players: Iterable[str] = (),
) -> dict[str, list[Observation]]:
    """Group observations by player, one for each side of every match.

    *lookup* must return pre-update ratings so both sides of a match see
    the same snapshot.  Every name in *players* gets an entry, even when it
    played no matches.
    """
    observations: dict[str, list[Observation]] = {p: [] for p in players}
    for m in matches:
        observations.setdefault(m.left, []).append(
            Observation(to_internal(lookup(m.right)), result_for(m, m.left))
        )
        observations.setdefault(m.right, []).append(
            Observation(to_internal(lookup(m.left)), result_for(m, m.right))
        )
    return observations


# ── Variance / delta ────────────────────────────────────────────────

def g(phi: float) -> float:
    r = phi / math.pi
    return 1.0 / math.sqrt(1.0 + 3.0 * r * r)


def expected_score(mu: float, opponent: InternalRating) -> float:
    return 1.0 / (1.0 + math.exp(-g(opponent.phi) * (mu - opponent.mu)))


def estimated_variance(mu: float, observations: list[Observation]) -> float:
    """Estimated variance of the player's rating based on game outcomes only."""
    if not observations:
        raise ValueError("variance is undefined without observations")
    total = 0.0
    for o in observations:
        og = g(o.opponent.phi)
        e = expected_score(mu, o.opponent)
        total += og * og * e * (1.0 - e)
    return 1.0 / total


def delta(mu: float, scale: float, observations: list[Observation]) -> float:
    """``scale * sum g(phi_j) (s_j - E)``; zero when there are no observations."""
    total = 0.0
    for o in observations:
        total += g(o.opponent.phi) * (o.result - expected_score(mu, o.opponent))
    return scale * total


# ── Volatility ──────────────────────────────────────────────────────

def new_volatility(r: InternalRating, v: float, d: float, tau: float) -> float:
    """Solve for sigma' with the Illinois variant of regula falsi.

    Raises :class:`SolverError` if the bracket cannot be established or the
    iteration does not converge.
    """
    if r.sigma == 0:
        return 0.0

    phi2 = r.phi * r.phi
    a = math.log(r.sigma * r.sigma)
    tau2 = tau * tau

    def f(x: float) -> float:
        ex = math.exp(x)
        denom = phi2 + v + ex
        return ex * (d * d - phi2 - v - ex) / (2.0 * denom * denom) - (x - a) / tau2

    try:
        A = a
        if r.sigma * r.sigma > phi2 + v and d * d - phi2 - v > 0:
            B = math.log(d * d - phi2 - v)
        else:
            k = 1
            while f(a - k * tau) < 0:
                k += 1
                if k > MAX_BRACKET_STEPS:
                    raise SolverError(
                        f"no volatility bracket after {MAX_BRACKET_STEPS} steps "
                        f"(sigma={r.sigma}, phi={r.phi}, v={v}, delta={d}, tau={tau})"
                    )
            B = a - k * tau

        fa = f(A)
        fb = f(B)
        for _ in range(MAX_SOLVER_ITERATIONS):
            if abs(B - A) <= EPSILON:
                return math.exp(A / 2.0)
            C = A + (A - B) * fa / (fb - fa)
            fc = f(C)
            if fc * fb < 0:
                A, fa = B, fb
            else:
                fa /= 2.0  # Illinois: damp the stale endpoint
            B, fb = C, fc
    except (OverflowError, ZeroDivisionError) as err:
        raise SolverError(
            f"volatility solver failed: {err} "
            f"(sigma={r.sigma}, phi={r.phi}, v={v}, delta={d}, tau={tau})"
        ) from err

    raise SolverError(
        f"volatility did not converge in {MAX_SOLVER_ITERATIONS} iterations "
        f"(sigma={r.sigma}, phi={r.phi}, v={v}, delta={d}, tau={tau})"
    )


# ── Update ──────────────────────────────────────────────────────────

def update_internal(
    r: InternalRating, tau: float, observations: list[Observation],
) -> InternalRating:
    if not observations:
        # No games this period: only the deviation grows.
        return InternalRating(
            mu=r.mu, phi=math.sqrt(r.phi * r.phi + r.sigma * r.sigma), sigma=r.sigma,
        )

    v = estimated_variance(r.mu, observations)
    d = delta(r.mu, v, observations)
    sigma = new_volatility(r, v, d, tau)

    pre_phi = math.sqrt(r.phi * r.phi + sigma * sigma)
    phi = 1.0 / math.sqrt(1.0 / (pre_phi * pre_phi) + 1.0 / v)
    mu = r.mu + delta(r.mu, phi * phi, observations)
    return InternalRating(mu=mu, phi=phi, sigma=sigma)


def update_player(rating: Rating, observations: list[Observation], tau: float) -> Rating:
    """Rate one player for one period.  Pure; safe to run in a worker process."""
    return to_public(update_internal(to_internal(rating), tau, observations))


def update(
    tau: float,
    default: Rating,
    old: Mapping[str, Rating] | None,
    matches: Iterable[Match],
    executor=None,
) -> dict[str, Rating]:
    """Return a new rating table after one rating period.

    Every player in *old* or in *matches* appears in the result.  Players
    without a prior rating start from *default*.  *old* is not modified.

    Each player is updated independently from the pre-update snapshot; pass a
    ``concurrent.futures.Executor`` to spread that work across workers.
    """
    if not tau > 0:
        raise InvalidParameter(f"invalid value for tau: {tau}")

    old = old or {}
    for player, r in old.items():
        check_rating(player, r)

    matches = list(matches)
    for m in matches:
        check_match(m)

    def lookup(player: str) -> Rating:
        return old.get(player, default)

    observations = aggregate_matches(matches, lookup, players=old)
    players = list(observations)

    mapper = map if executor is None else executor.map
    updated = mapper(
        update_player,
        [lookup(p) for p in players],
        [observations[p] for p in players],
        [tau] * len(players),
    )
    return dict(zip(players, updated))
