import json
from dataclasses import dataclass

from pydantic import ValidationError

from models.errors import SchemaValidationError
from models.research_output import ResearchOutput


@dataclass(frozen=True)
class ValidationOutcome:
    ok: bool
    output: ResearchOutput | None = None
    reason: str = "ok"
    error: SchemaValidationError | None = None


class OutputValidator:
    """Strict parse-then-validate boundary for raw model text."""

    def validate(self, raw: str) -> ValidationOutcome:
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as e:
            return ValidationOutcome(
                ok=False,
                reason="invalid_json",
                error=SchemaValidationError(f"Model output is not JSON: {e}", raw=raw or ""),
            )

        if not isinstance(payload, dict):
            return ValidationOutcome(
                ok=False,
                reason="schema_violation",
                error=SchemaValidationError("Model output is not a JSON object", raw=raw),
            )

        try:
            output = ResearchOutput.model_validate(payload)
        except ValidationError as e:
            return ValidationOutcome(
                ok=False,
                reason="schema_violation",
                error=SchemaValidationError(
                    f"Model output failed schema validation ({e.error_count()} errors)", raw=raw
                ),
            )

        return ValidationOutcome(ok=True, output=output)
