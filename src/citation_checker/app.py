"""High-level orchestrator for citation validation workflows."""
from __future__ import annotations

import asyncio
import uuid
from typing import List, Optional

from .config import Settings, load_settings
from .crossref import CrossrefClient
from .enrichment import CitationEnricher, ConcurrencyGate, shared_gate, type_mismatch_violation
from .fixer import apply_fixes, calculate_score
from .models import AppliedFix, Citation, ValidationResult, Violation
from .reference_parser import CitationParser
from .rules import run_rules


class CitationCheckerApp:
    """Coordinates parsing, enrichment, rule checks, fixing and scoring."""

    def __init__(
        self,
        client: Optional[CrossrefClient] = None,
        settings: Optional[Settings] = None,
        gate: Optional[ConcurrencyGate] = None,
    ):
        self.settings = settings or load_settings()
        self.parser = CitationParser()
        self.client = client or CrossrefClient.from_settings(self.settings)
        self.enricher = CitationEnricher(
            self.client,
            gate=gate or shared_gate(self.settings.max_concurrent),
            timeout=self.settings.crossref_timeout,
        )

    def validate_offline(self, text: str) -> ValidationResult:
        """Validate a single citation without contacting Crossref."""
        return self._build_result(self.parser.parse(text))

    def validate_many_offline(self, text: str) -> List[ValidationResult]:
        return [self._build_result(citation) for citation in self.parser.parse_many(text)]

    async def validate(self, text: str, use_enrichment: bool = True) -> ValidationResult:
        citation = self.parser.parse(text)
        return await self._validate_citation(citation, use_enrichment)

    async def validate_many(self, text: str, use_enrichment: bool = True) -> List[ValidationResult]:
        """Validate blank-line separated citations, keeping input order.

        Lookups run one citation at a time with a pause between them to stay
        polite to Crossref.
        """
        citations = self.parser.parse_many(text)
        results: List[ValidationResult] = []
        for index, citation in enumerate(citations):
            if use_enrichment and index > 0 and self.settings.pacing_delay > 0:
                await asyncio.sleep(self.settings.pacing_delay)
            results.append(await self._validate_citation(citation, use_enrichment))
        return results

    async def _validate_citation(self, citation: Citation, use_enrichment: bool) -> ValidationResult:
        if not use_enrichment:
            return self._build_result(citation)

        outcome = await self.enricher.enrich(citation)
        if outcome is None:
            return self._build_result(citation)

        extra: List[Violation] = []
        if outcome.type_changed:
            extra.append(type_mismatch_violation(outcome.previous_type, outcome.citation.type))
        return self._build_result(outcome.citation, extra, original_pages=citation.pages)

    def _build_result(
        self,
        citation: Citation,
        extra_violations: Optional[List[Violation]] = None,
        original_pages: Optional[str] = None,
    ) -> ValidationResult:
        violations = run_rules(citation) + list(extra_violations or [])
        outcome = apply_fixes(citation, violations)
        applied = list(outcome.applied_fixes)

        if extra_violations is not None and citation.pages and citation.pages != original_pages:
            before = original_pages or "(missing)"
            applied.append(
                AppliedFix(
                    rule="page-completion",
                    field="pages",
                    original=before,
                    fixed=citation.pages,
                    description=f"Page range completed via Crossref: {before} → {citation.pages}",
                )
            )

        return ValidationResult(
            id=uuid.uuid4().hex,
            citation=citation,
            violations=violations,
            applied_fixes=applied,
            hints=outcome.hints,
            formatted=outcome.formatted,
            score=calculate_score(violations, applied),
        )


__all__ = ["CitationCheckerApp"]
