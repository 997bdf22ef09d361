"""Generate a leaderboard bar chart from Glicko-2 ratings."""

from __future__ import annotations

from typing import Mapping

import matplotlib
matplotlib.use("Agg")  # non-interactive backend

import matplotlib.pyplot as plt

from glickorank.glicko2 import Rating


def make_rating_chart(
    ratings: Mapping[str, Rating],
    output_path: str = "ratings.png",
    title: str = "Glicko-2 Leaderboard",
) -> str:
    """Create a horizontal bar chart of ratings, sorted descending.

    Error bars show one rating deviation either side.  Returns the path to
    the saved PNG.
    """
    if not ratings:
        raise ValueError("no ratings to chart")

    sorted_items = sorted(ratings.items(), key=lambda kv: (-kv[1].rating, kv[0]))
    names = [name for name, _ in sorted_items]
    scores = [r.rating for _, r in sorted_items]
    deviations = [r.deviation for _, r in sorted_items]

    fig, ax = plt.subplots(figsize=(10, max(3, len(names) * 0.7)))
    bars = ax.barh(
        names, scores, xerr=deviations,
        color="#4A90D9", edgecolor="white", ecolor="#555555", capsize=4,
    )

    for bar, score, rd in zip(bars, scores, deviations):
        ax.text(
            bar.get_width() + rd + 5, bar.get_y() + bar.get_height() / 2,
            f"{score:.0f} ± {rd:.0f}",
            va="center", fontsize=10, fontweight="bold",
        )

    ax.set_xlabel("Rating")
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.invert_yaxis()  # highest on top
    low = min(s - d for s, d in zip(scores, deviations))
    high = max(s + d for s, d in zip(scores, deviations))
    ax.set_xlim(left=low - 50, right=high + 150)

    plt.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path
