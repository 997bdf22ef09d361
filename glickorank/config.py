"""System configuration: optional settings resolved against defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Iterable, Mapping

from glickorank.glicko2 import (
    DEFAULT_DEVIATION,
    DEFAULT_RATING,
    DEFAULT_TAU,
    DEFAULT_VOLATILITY,
    InvalidParameter,
    Match,
    Rating,
    check_rating,
    update,
)

ENV_VARS = {
    "tau": "GLICKORANK_TAU",
    "rating": "GLICKORANK_DEFAULT_RATING",
    "deviation": "GLICKORANK_DEFAULT_DEVIATION",
    "volatility": "GLICKORANK_DEFAULT_VOLATILITY",
}


@dataclass(frozen=True)
class System:
    """Resolved parameters for a rating system."""

    tau: float = DEFAULT_TAU
    default_rating: Rating = Rating()

    def update(
        self,
        ratings: Mapping[str, Rating] | None,
        matches: Iterable[Match],
        executor=None,
    ) -> dict[str, Rating]:
        return update(self.tau, self.default_rating, ratings, matches, executor=executor)


@dataclass(frozen=True)
class SystemConfig:
    """User-supplied settings.  ``None`` means unset; ``0.0`` is a real value."""

    tau: float | None = None
    rating: float | None = None
    deviation: float | None = None
    volatility: float | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SystemConfig:
        """Read settings from ``GLICKORANK_*`` environment variables."""
        environ = os.environ if environ is None else environ
        values: dict[str, float] = {}
        for name, var in ENV_VARS.items():
            raw = environ.get(var, "").strip()
            if not raw:
                continue
            try:
                values[name] = float(raw)
            except ValueError:
                raise InvalidParameter(f"{var} is not a number: {raw!r}") from None
        return cls(**values)

    def merged(self, other: SystemConfig) -> SystemConfig:
        """Overlay the fields that are set in *other*."""
        overrides = {
            f.name: getattr(other, f.name)
            for f in fields(other)
            if getattr(other, f.name) is not None
        }
        return replace(self, **overrides)

    def resolve(self) -> System:
        default = Rating(
            rating=DEFAULT_RATING if self.rating is None else self.rating,
            deviation=DEFAULT_DEVIATION if self.deviation is None else self.deviation,
            volatility=DEFAULT_VOLATILITY if self.volatility is None else self.volatility,
        )
        check_rating("<default>", default)
        return System(
            tau=DEFAULT_TAU if self.tau is None else self.tau,
            default_rating=default,
        )
