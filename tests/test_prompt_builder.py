import json
from datetime import date

from config.config import ResearchMode
from orchestrator.prompt_builder import REPAIR_DIRECTIVE, build_repair_prompt, build_research_prompt
from tools.web.contracts import Evidence


def _evidence():
    return [
        Evidence(
            url="https://example.com/a",
            domain="example.com",
            title="Pastel ideas",
            snippet="Pastel balloon arches are trending",
            published_at=date(2026, 1, 10),
            captured_at="2026-01-15T00:00:00+00:00",
            query="birthday decor party decorations trends US",
        ),
        Evidence(
            url="https://example.org/b",
            domain="example.org",
            title="Neon kits",
            snippet="",
            published_at=None,
            captured_at="2026-01-15T00:00:00+00:00",
            query="birthday decor party decorations trends US",
        ),
    ]


def test_prompt_is_deterministic():
    first = build_research_prompt("birthday decor", "quick", "US", "en", _evidence())
    second = build_research_prompt("birthday decor", "quick", "US", "en", _evidence())
    assert first == second


def test_prompt_embeds_context_and_evidence():
    prompt = build_research_prompt(
        "birthday decor", ResearchMode.QUICK, "US", "en", _evidence(), topic="seasonal"
    )

    assert "- Prompt: birthday decor" in prompt
    assert "- Topic: seasonal" in prompt
    assert "- Market: US" in prompt
    assert "- Mode: quick" in prompt

    line = prompt.split("Evidence (JSON):\n", 1)[1].split("\n", 1)[0]
    embedded = json.loads(line)
    assert embedded[0]["publishedAt"] == "2026-01-10"
    assert embedded[1]["publishedAt"] is None
    assert embedded[1]["domain"] == "example.org"


def test_topic_defaults_to_general():
    prompt = build_research_prompt("q", "quick", "US", "en", [])
    assert "- Topic: general" in prompt
    assert "Evidence (JSON):\n[]" in prompt


def test_mode_caps_are_stated():
    quick = build_research_prompt("q", "quick", "US", "en", [])
    deep = build_research_prompt("q", "deep", "US", "en", [])

    assert "rows length <= 12" in quick
    assert "clusterBundles length <= 4" in quick
    assert "rows length <= 25" in deep
    assert "clusterBundles length <= 7" in deep
    assert "3-7 keywords" in deep


def test_repair_prompt_appends_directive():
    base = build_research_prompt("q", "quick", "US", "en", [])
    repaired = build_repair_prompt(base)
    assert repaired.startswith(base)
    assert repaired.endswith(REPAIR_DIRECTIVE)
