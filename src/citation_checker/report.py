"""Validation reporting utilities."""
from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from .models import ValidationResult
from .reference_types import label_for_type


def result_to_dict(result: ValidationResult) -> Dict[str, Any]:
    """JSON-ready view of one validation result."""
    citation = asdict(result.citation)
    citation["is_group_author"] = result.citation.is_group_author
    return {
        "id": result.id,
        "citation": citation,
        "violations": [asdict(violation) for violation in result.violations],
        "applied_fixes": [asdict(fix) for fix in result.applied_fixes],
        "hints": [asdict(hint) for hint in result.hints],
        "formatted": result.formatted,
        "score": result.score,
    }


def render_report(results: List[ValidationResult]) -> str:
    """Return a human-readable report summarizing validation findings."""

    lines = ["Citation Validation Report", f"Citations checked: {len(results)}"]
    if not results:
        lines.append("No citations found.")
        return "\n".join(lines)

    for number, result in enumerate(results, start=1):
        citation = result.citation
        lines.append("")
        lines.append(f"{number}. {label_for_type(citation.type)} (score {result.score}/100)")
        lines.append(f"   Original:  {citation.raw_text}")
        lines.append(f"   Corrected: {result.formatted}")
        if not result.violations:
            lines.append("   No APA issues detected.")
            continue
        for violation in result.violations:
            line = f"   [{violation.severity.upper()}] {violation.rule}: {violation.message}"
            if violation.auto_fixable:
                line += " (fixed)"
            lines.append(line)
        for hint in result.hints:
            lines.append(f"   Hint ({hint.rule}): {hint.hint}")
    return "\n".join(lines)
