from models.research_output import ClusterBundle, ResultBundle

TOP_CLUSTERS = 3
MAX_NEXT_STEPS = 5
MAX_SOURCES = 5


def build_result_bundle(prompt: str, cluster_bundles: list[ClusterBundle]) -> ResultBundle:
    """Summarize the first three cluster bundles into the run's headline result."""
    top = cluster_bundles[:TOP_CLUSTERS]

    summary = "\n".join(
        f"• {bundle.cluster}: {', '.join(bundle.top_keywords[:3])}" for bundle in top
    )
    next_steps = [action.title for bundle in top for action in bundle.recommended_actions]
    sources = [
        {"url": ref.url, "title": ref.title} for bundle in top for ref in bundle.top_evidence
    ]

    return ResultBundle(
        title=f"Web Research: {prompt}",
        summary=summary,
        next_steps=next_steps[:MAX_NEXT_STEPS],
        sources=sources[:MAX_SOURCES],
    )
