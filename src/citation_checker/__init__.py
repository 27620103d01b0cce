"""APA 7 citation checking, repair and Crossref enrichment toolkit."""

from .app import CitationCheckerApp
from .models import (
    AppliedFix,
    Author,
    Citation,
    ExternalWork,
    FixHint,
    ValidationResult,
    Violation,
)
from .reference_parser import CitationParser, parse_citation, parse_citations
from .rules import ALL_RULES, rules_for_type, run_rules
from .fixer import apply_fixes, calculate_score, format_citation
from .crossref import CrossrefClient
from .enrichment import CitationEnricher, ConcurrencyGate, ENRICHMENT_GATE

__all__ = [
    "CitationCheckerApp",
    "AppliedFix",
    "Author",
    "Citation",
    "ExternalWork",
    "FixHint",
    "ValidationResult",
    "Violation",
    "CitationParser",
    "parse_citation",
    "parse_citations",
    "ALL_RULES",
    "rules_for_type",
    "run_rules",
    "apply_fixes",
    "calculate_score",
    "format_citation",
    "CrossrefClient",
    "CitationEnricher",
    "ConcurrencyGate",
    "ENRICHMENT_GATE",
]
