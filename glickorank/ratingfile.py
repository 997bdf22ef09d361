"""Read and write the line-oriented rating/match text format.

Each record starts with ``<timestamp> <namespace>``::

    100 chess 1500.0000 alice rd=200.0000 v=0.0600   # rating
    101 chess alice bob 1-0                          # match, alice won
    102 chess bob carol 0.5-0.5                      # draw

Namespaces are independent rating universes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping, TextIO

from glickorank.glicko2 import Match, Rating

TOKEN_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
TIMESTAMP_RE = re.compile(r"^[0-9]+$")
NUMBER_RE = re.compile(r"^-?[0-9]+(\.[0-9]*)?$")
SCORE_RE = re.compile(r"^([0-9./]+)-([0-9./]+)$")
KEYVAL_RE = re.compile(r"^([A-Za-z]+)=(.*)$")

SCORES = {"0": 0.0, "0.5": 0.5, ".5": 0.5, "1/2": 0.5, "1": 1.0}

# Rating record keys → Rating field
RATING_KEYS = {"rd": "deviation", "v": "volatility"}


class RatingFileError(ValueError):
    def __init__(self, lineno: int, line: str, reason: str) -> None:
        super().__init__(f"line {lineno}: {reason}: {line.strip()!r}")
        self.lineno = lineno
        self.line = line
        self.reason = reason


@dataclass
class Universe:
    """Ratings and matches sharing one namespace."""

    name: str
    max_timestamp: int = 0
    ratings: dict[str, Rating] = field(default_factory=dict)
    matches: list[Match] = field(default_factory=list)


def _parse_score(token: str) -> float | None:
    if token in SCORES:
        return SCORES[token]
    if NUMBER_RE.match(token):
        return SCORES.get(str(float(token)).rstrip("0").rstrip("."))
    return None


def _parse_match(tokens: list[str], lineno: int, line: str) -> Match | None:
    m = SCORE_RE.match(tokens[-1])
    if m is None:
        return None
    left, right = tokens[0], tokens[1]
    left_score = _parse_score(m.group(1))
    right_score = _parse_score(m.group(2))
    if left_score is None or right_score is None:
        raise RatingFileError(lineno, line, f"bad score {tokens[-1]!r}")
    if left_score + right_score != 1.0:
        raise RatingFileError(lineno, line, "scores must sum to 1")
    for name in (left, right):
        if not TOKEN_RE.match(name):
            raise RatingFileError(lineno, line, f"bad player name {name!r}")
    if left == right:
        raise RatingFileError(lineno, line, "player cannot play against themselves")

    if left_score > right_score:
        winner: str | None = left
    elif right_score > left_score:
        winner = right
    else:
        winner = None
    return Match(left=left, right=right, winner=winner)


def _parse_rating(
    tokens: list[str], default: Rating, lineno: int, line: str,
) -> tuple[str, Rating]:
    value, name = tokens[0], tokens[1]
    if not TOKEN_RE.match(name):
        raise RatingFileError(lineno, line, f"bad player name {name!r}")
    fields_ = {
        "rating": float(value),
        "deviation": default.deviation,
        "volatility": default.volatility,
    }
    seen: set[str] = set()
    for tok in tokens[2:]:
        kv = KEYVAL_RE.match(tok)
        if kv is None or kv.group(1) not in RATING_KEYS:
            raise RatingFileError(lineno, line, f"unexpected field {tok!r}")
        key = kv.group(1)
        if key in seen:
            raise RatingFileError(lineno, line, f"duplicate field {key!r}")
        seen.add(key)
        if not NUMBER_RE.match(kv.group(2)):
            raise RatingFileError(lineno, line, f"bad number for {key!r}")
        fields_[RATING_KEYS[key]] = float(kv.group(2))
    return name, Rating(**fields_)


def read_universes(
    lines: Iterable[str], default: Rating = Rating(),
) -> dict[str, Universe]:
    """Parse rating file lines into universes keyed by namespace.

    *default* fills in ``rd``/``v`` when a rating record omits them.
    """
    universes: dict[str, Universe] = {}

    for lineno, raw in enumerate(lines, start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue

        tokens = line.split()
        if len(tokens) < 4:
            raise RatingFileError(lineno, raw, "too few fields")
        ts, ns, rest = tokens[0], tokens[1], tokens[2:]
        if not TIMESTAMP_RE.match(ts):
            raise RatingFileError(lineno, raw, f"bad timestamp {ts!r}")
        if not TOKEN_RE.match(ns):
            raise RatingFileError(lineno, raw, f"bad namespace {ns!r}")

        universe = universes.setdefault(ns, Universe(name=ns))
        universe.max_timestamp = max(universe.max_timestamp, int(ts))

        if len(rest) == 3:
            match = _parse_match(rest, lineno, raw)
            if match is not None:
                universe.matches.append(match)
                continue

        if NUMBER_RE.match(rest[0]) and len(rest) <= 4:
            name, rating = _parse_rating(rest, default, lineno, raw)
            if name in universe.ratings:
                raise RatingFileError(lineno, raw, f"duplicate rating for {name!r}")
            universe.ratings[name] = rating
            continue

        raise RatingFileError(lineno, raw, "unrecognised record")

    return universes


def format_ratings(ratings: Mapping[str, Rating], prefix: str = "") -> list[str]:
    """Format one line per player, highest rating first."""
    ordered = sorted(ratings.items(), key=lambda kv: (-kv[1].rating, kv[0]))
    return [
        f"{prefix}{r.rating:.4f} {name} rd={r.deviation:.4f} v={r.volatility:.4f}"
        for name, r in ordered
    ]


def write_ratings(out: TextIO, ratings: Mapping[str, Rating], prefix: str = "") -> None:
    for line in format_ratings(ratings, prefix):
        out.write(line + "\n")
