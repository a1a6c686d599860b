"""Server-side scoring and ranking of extracted keyword rows.

The model's own ``researchScore`` is a placeholder; every row is re-scored here
from ``mentions`` and ``recencyScore`` before it is persisted.
"""

import math
from collections import defaultdict
from collections.abc import Sequence

from models.research_output import ResearchRow

MENTIONS_WEIGHT = 0.7
RECENCY_WEIGHT = 0.3
# mentions at or above this count saturate the mentions component
MENTIONS_SATURATION = 20


def compute_research_score(mentions: int, recency_score: float) -> float:
    """
    Combine mention count and recency into a score in [0, 1].

    Mentions are log-scaled and saturate at ``MENTIONS_SATURATION``; both
    inputs are clamped, and the result is rounded to 4 places so equal inputs
    always compare equal.
    """
    mentions = max(0, int(mentions))
    recency = min(1.0, max(0.0, float(recency_score)))
    mentions_component = min(1.0, math.log1p(mentions) / math.log1p(MENTIONS_SATURATION))
    score = MENTIONS_WEIGHT * mentions_component + RECENCY_WEIGHT * recency
    return round(min(1.0, max(0.0, score)), 4)


def score_and_sort_rows(rows: Sequence[ResearchRow]) -> list[ResearchRow]:
    """Overwrite ``research_score`` and sort descending; ties keep input order."""
    scored = [
        row.model_copy(
            update={"research_score": compute_research_score(row.mentions, row.recency_score)}
        )
        for row in rows
    ]
    return sorted(scored, key=lambda row: -row.research_score)


def add_cluster_rank(rows: Sequence[ResearchRow]) -> list[ResearchRow]:
    """Assign the 1-based rank of each row within its cluster, following input order."""
    seen: dict[str, int] = defaultdict(int)
    ranked = []
    for row in rows:
        seen[row.cluster] += 1
        ranked.append(row.model_copy(update={"cluster_rank": seen[row.cluster]}))
    return ranked
