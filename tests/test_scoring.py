import pytest

from models.research_output import ResearchRow
from orchestrator.scoring import add_cluster_rank, compute_research_score, score_and_sort_rows


def _row(row_id: str, cluster: str, mentions: int, recency: float, score: float = 0.0):
    return ResearchRow(
        row_id=row_id,
        cluster=cluster,
        keyword=f"{cluster.lower()} keyword {row_id}",
        intent="buying",
        mentions=mentions,
        recency_score=recency,
        research_score=score,
    )


@pytest.mark.parametrize(
    "mentions, recency",
    [(0, 0.0), (0, 1.0), (3, 0.5), (20, 1.0), (500, 1.0), (-4, 2.0)],
)
@pytest.mark.unit
def test_score_is_bounded(mentions, recency):
    score = compute_research_score(mentions, recency)
    assert 0.0 <= score <= 1.0


@pytest.mark.unit
def test_score_is_deterministic_and_rounded():
    first = compute_research_score(7, 0.63)
    assert first == compute_research_score(7, 0.63)
    assert first == round(first, 4)


@pytest.mark.unit
def test_more_mentions_scores_higher():
    assert compute_research_score(10, 0.5) > compute_research_score(2, 0.5)


@pytest.mark.unit
def test_mentions_saturate():
    assert compute_research_score(20, 0.5) == compute_research_score(200, 0.5)


@pytest.mark.unit
def test_extremes():
    assert compute_research_score(0, 0.0) == 0.0
    assert compute_research_score(20, 1.0) == 1.0


@pytest.mark.unit
def test_model_score_is_overwritten():
    rows = score_and_sort_rows([_row("a", "Pastel", 5, 0.7, score=0.99)])
    assert rows[0].research_score == compute_research_score(5, 0.7)


@pytest.mark.unit
def test_rows_sorted_descending_with_stable_ties():
    rows = [
        _row("low", "Pastel", 1, 0.1),
        _row("tie-1", "Neon", 5, 0.5),
        _row("high", "Neon", 15, 0.9),
        _row("tie-2", "Pastel", 5, 0.5),
    ]

    ordered = [row.row_id for row in score_and_sort_rows(rows)]

    assert ordered == ["high", "tie-1", "tie-2", "low"]


@pytest.mark.unit
def test_rescoring_is_idempotent():
    once = score_and_sort_rows([_row("a", "P", 3, 0.2), _row("b", "P", 9, 0.8)])
    twice = score_and_sort_rows(once)
    assert [(r.row_id, r.research_score) for r in once] == [
        (r.row_id, r.research_score) for r in twice
    ]


@pytest.mark.unit
def test_inputs_are_not_mutated():
    row = _row("a", "Pastel", 5, 0.7, score=0.42)
    score_and_sort_rows([row])
    assert row.research_score == 0.42


@pytest.mark.unit
def test_cluster_rank_is_contiguous_per_cluster():
    rows = add_cluster_rank(
        score_and_sort_rows(
            [
                _row("p1", "Pastel", 12, 0.9),
                _row("n1", "Neon", 10, 0.9),
                _row("p2", "Pastel", 4, 0.4),
                _row("n2", "Neon", 2, 0.1),
                _row("p3", "Pastel", 1, 0.0),
            ]
        )
    )

    ranks: dict[str, list[int]] = {}
    for row in rows:
        ranks.setdefault(row.cluster, []).append(row.cluster_rank)

    assert ranks == {"Pastel": [1, 2, 3], "Neon": [1, 2]}


@pytest.mark.unit
def test_empty_rows():
    assert score_and_sort_rows([]) == []
    assert add_cluster_rank([]) == []
