"""
Scoring engines. Each takes an already parsed document and returns a frozen
result with a top-level `score` and a flattened `issues` list.
"""
from siteaudit.services.analyzers.content import ContentAnalysis, analyze_content
from siteaudit.services.analyzers.structural import StructuralAnalysis, analyze_structural
from siteaudit.services.analyzers.technical import (
    TechnicalAnalysis,
    TechnicalSignals,
    analyze_technical,
    collect_technical_signals,
)
