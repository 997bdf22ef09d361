"""CLI entry point: python -m glickorank {rate,chart}."""

from __future__ import annotations

import argparse
import logging
import sys
from concurrent.futures import ProcessPoolExecutor
from contextlib import nullcontext

from glickorank.chart import make_rating_chart
from glickorank.config import SystemConfig
from glickorank.driver import rate_universes
from glickorank.glicko2 import GlickoError, Rating
from glickorank.ratingfile import RatingFileError, Universe, read_universes, write_ratings

logger = logging.getLogger("glickorank")


def _fatal(err: Exception) -> None:
    print(f"fatal: {err}", file=sys.stderr)
    sys.exit(1)


def _rate(args: argparse.Namespace) -> list[tuple[Universe, dict[str, Rating]]]:
    """Read the input file and rate every namespace in it."""
    flags = SystemConfig(
        tau=args.tau,
        rating=args.default_rating,
        deviation=args.default_deviation,
        volatility=args.default_volatility,
    )
    system = SystemConfig.from_env().merged(flags).resolve()
    logger.debug("tau=%s default=%s", system.tau, system.default_rating)

    if args.input and args.input != "-":
        with open(args.input, encoding="utf-8") as f:
            universes = read_universes(f, default=system.default_rating)
    else:
        universes = read_universes(sys.stdin, default=system.default_rating)

    pool = ProcessPoolExecutor(max_workers=args.workers) if args.workers > 1 else nullcontext()
    with pool as executor:
        return rate_universes(
            system,
            universes,
            batch=args.batch,
            repetitions=args.repetitions,
            executor=executor,
        )


# ── rate ─────────────────────────────────────────────────────────────

def cmd_rate(args: argparse.Namespace) -> None:
    """Print updated ratings for every namespace."""
    try:
        results = _rate(args)
    except (GlickoError, RatingFileError, OSError) as err:
        _fatal(err)

    for universe, table in results:
        prefix = f"{universe.max_timestamp} {universe.name} "
        write_ratings(sys.stdout, table, prefix)


# ── chart ────────────────────────────────────────────────────────────

def cmd_chart(args: argparse.Namespace) -> None:
    """Rate one namespace and save its leaderboard chart."""
    try:
        results = _rate(args)
    except (GlickoError, RatingFileError, OSError) as err:
        _fatal(err)

    if args.namespace:
        results = [(u, t) for u, t in results if u.name == args.namespace]
        if not results:
            print(f"Namespace {args.namespace!r} not found.", file=sys.stderr)
            sys.exit(1)
    elif len(results) != 1:
        print(
            f"Input has {len(results)} namespaces; choose one with --namespace.",
            file=sys.stderr,
        )
        sys.exit(1)

    universe, table = results[0]
    if not table:
        print(f"No ratings in namespace {universe.name!r}.", file=sys.stderr)
        sys.exit(1)

    out = args.output or "ratings.png"
    make_rating_chart(table, output_path=out, title=f"{universe.name} Glicko-2 Leaderboard")
    print(f"Chart saved to {out}")


# ── main ─────────────────────────────────────────────────────────────

def _add_rating_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--input", "-i", help="Rating file (default: stdin)")
    p.add_argument("--tau", type=float, help="System constant tau (default 0.5)")
    p.add_argument("--batch", type=int, default=0, help="Split matches into rating periods of N")
    p.add_argument("--repetitions", type=int, default=0, help="Repeat the whole match list N more times")
    p.add_argument("--workers", type=int, default=1, help="Worker processes per update")
    p.add_argument("--default-rating", type=float, help="Rating for unrated players")
    p.add_argument("--default-deviation", type=float, help="Deviation for unrated players")
    p.add_argument("--default-volatility", type=float, help="Volatility for unrated players")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging verbosity (written to stderr)",
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="glickorank",
        description="Glicko-2 ratings from pairwise match results",
    )
    sub = parser.add_subparsers(dest="command")

    p_rate = sub.add_parser("rate", help="Compute updated ratings")
    _add_rating_options(p_rate)

    p_chart = sub.add_parser("chart", help="Generate leaderboard chart")
    _add_rating_options(p_chart)
    p_chart.add_argument("--namespace", "-n", help="Namespace to chart")
    p_chart.add_argument("--output", "-o", help="Output PNG path")

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        return

    logging.basicConfig(
        level=getattr(logging, args.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "rate":
        cmd_rate(args)
    elif args.command == "chart":
        cmd_chart(args)


if __name__ == "__main__":
    main()
