"""Deterministic instruction builder for the keyword/cluster extraction call."""

import json
from collections.abc import Sequence

from config.config import ResearchMode, mode_settings
from tools.web.contracts import Evidence

REPAIR_DIRECTIVE = (
    "IMPORTANT: Your previous output was invalid. Return ONLY valid JSON matching "
    "the exact schema. Do not include any extra text."
)

_OUTPUT_SHAPE = """{
  "rows": [
    {
      "rowId": "string",
      "cluster": "string",
      "keyword": "string",
      "intent": "buying|inspiration|diy|informational|supplier",
      "mentions": number,
      "recencyScore": number,
      "researchScore": number,
      "sourcesCount": number,
      "domainsCount": number,
      "topEvidence": [
        { "url": "string", "title": "string", "snippet": "string", "publishedAt": "YYYY-MM-DD|null" }
      ]
    }
  ],
  "clusterBundles": [
    {
      "cluster": "string",
      "topKeywords": ["string"],
      "recommendedActions": [
        { "title": "string", "priority": "P0|P1|P2" }
      ],
      "topEvidence": [
        { "url": "string", "title": "string" }
      ]
    }
  ]
}"""


def build_research_prompt(
    prompt: str,
    mode: ResearchMode | str,
    market: str,
    language: str,
    evidence: Sequence[Evidence],
    topic: str | None = None,
) -> str:
    """
    Render the full and only context given to the model.

    The evidence payload is embedded as compact JSON so the model can cite
    nothing but the provided sources. Output depends on the arguments alone.
    """
    mode = ResearchMode(mode)
    settings = mode_settings(mode)
    deep = mode is ResearchMode.DEEP

    evidence_json = json.dumps(
        [e.to_prompt_dict() for e in evidence], ensure_ascii=False, separators=(",", ":")
    )

    return f"""
You are an analytical research engine for party decorations.

Rules:
- Use ONLY the provided evidence.
- Do NOT invent search volume or external metrics.
- Output strictly valid JSON only. No markdown. No extra text.
- Keep clusters actionable for an e-commerce seller.
- Prefer long-tail (3-6 words) and product-adjacent phrases. Avoid single adjectives.
- Avoid single-word or overly generic terms (e.g., "textures", "blush pink" alone).
- Ensure each cluster has {"3-7" if deep else "2-5"} keywords.
- Order keywords within each cluster by strongest evidence/mentions.

Context:
- Prompt: {prompt}
- Topic: {topic or "general"}
- Market: {market}
- Language: {language}
- Mode: {mode.value}

Evidence (JSON):
{evidence_json}

Task:
1) Extract keyword candidates relevant to party decorations and the prompt.
2) Normalize keywords (lowercase, trimmed), deduplicate.
3) Cluster into semantic groups ({"3-7" if deep else "2-4"} clusters).
4) Intent per keyword: buying|inspiration|diy|informational|supplier.
5) mentions: count approximate occurrences across evidence titles/snippets.
6) recencyScore: 0..1 (recent higher; unknown=0.5).
7) For each cluster, propose 1-3 actions (P0/P1/P2).
8) Attach topEvidence per row and per cluster (max 2 each).
9) Set researchScore to 0 (placeholder). Backend will compute the final score.

Output JSON ONLY in this exact shape:
{_OUTPUT_SHAPE}

Constraints:
- rows length <= {settings.max_rows}
- clusterBundles length <= {settings.max_clusters}
- topKeywords per cluster <= 5
""".strip()


def build_repair_prompt(prompt: str) -> str:
    """Same instructions plus the corrective directive for the single repair attempt."""
    return f"{prompt}\n\n{REPAIR_DIRECTIVE}"
