"""Consulting-technique selection and savings estimation."""

from __future__ import annotations

import logging

from intent_pipeline.core.models import (
    ConsultingAnalysis,
    ConsultingTechnique,
    Level,
    ParsedIntent,
)

log = logging.getLogger(__name__)

MAX_TECHNIQUES = 3
MAX_TOTAL_SAVINGS = 70

# Savings potential (percent) each technique contributes at full relevance
_TECHNIQUE_SAVINGS: dict[str, float] = {
    "MECE": 10,
    "ValueDriverTree": 15,
    "ZeroBased": 25,
    "ImpactEffort": 10,
    "ValueProp": 5,
    "OptionFraming": 12,
    "Pyramid": 5,
}

_PADDING = (
    ConsultingTechnique(
        "Pyramid", 0.5, ("structured communication", "recommendation clarity")
    ),
    ConsultingTechnique(
        "ValueDriverTree", 0.4, ("cost analysis", "optimization prioritization")
    ),
    ConsultingTechnique(
        "ImpactEffort", 0.3, ("optimization prioritization", "resource allocation")
    ),
)


class BusinessAnalyzer:
    """Selects the three most relevant techniques and estimates savings."""

    def analyze(self, intent: ParsedIntent) -> ConsultingAnalysis:
        techniques = self.select_techniques(intent)
        findings = tuple(self._finding(t, intent) for t in techniques)
        savings = min(
            MAX_TOTAL_SAVINGS,
            round(
                sum(_TECHNIQUE_SAVINGS.get(t.name, 0) * t.relevance_score for t in techniques)
            ),
        )
        zero_based = (
            _TECHNIQUE_SAVINGS["ZeroBased"]
            if any(t.name == "ZeroBased" for t in techniques)
            else None
        )
        log.debug(
            "Selected techniques %s, estimated savings %s%%",
            [t.name for t in techniques],
            savings,
        )
        return ConsultingAnalysis(
            techniques_used=techniques,
            key_findings=findings,
            total_quota_savings=savings,
            implementation_complexity=self._complexity(intent),
            zero_based_savings=zero_based,
        )

    def select_techniques(self, intent: ParsedIntent) -> tuple[ConsultingTechnique, ...]:
        ops = intent.operations_required
        high_risk = any(r.severity == "high" for r in intent.potential_risks)
        processing = any(r.type == "processing" for r in intent.technical_requirements)

        candidates = [
            ConsultingTechnique(
                "MECE", 0.9, ("quota optimization", "workflow analysis", "cost breakdown")
            ),
            ConsultingTechnique(
                "OptionFraming", 0.85, ("decision making", "risk assessment")
            ),
        ]
        if len(ops) > 5 or high_risk:
            candidates.append(
                ConsultingTechnique(
                    "ValueDriverTree", 0.88, ("cost analysis", "root cause analysis")
                )
            )
        if high_risk and len(intent.potential_risks) > 1:
            candidates.append(
                ConsultingTechnique(
                    "ZeroBased", 0.87, ("radical optimization", "workflow redesign")
                )
            )
        if len(ops) > 3:
            candidates.append(
                ConsultingTechnique(
                    "ImpactEffort", 0.75, ("optimization prioritization", "quick wins")
                )
            )
        if len(intent.data_sources_needed) > 2 or processing:
            candidates.append(
                ConsultingTechnique(
                    "ValueProp", 0.6, ("user value alignment", "feature prioritization")
                )
            )

        ranked = sorted(candidates, key=lambda t: t.relevance_score, reverse=True)
        for technique in _PADDING:
            if len(ranked) >= MAX_TECHNIQUES:
                break
            if all(t.name != technique.name for t in ranked):
                ranked.append(technique)
        return tuple(ranked[:MAX_TECHNIQUES])

    @staticmethod
    def _finding(technique: ConsultingTechnique, intent: ParsedIntent) -> str:
        ops = intent.operations_required
        types = sorted({op.type for op in ops})
        match technique.name:
            case "MECE":
                return (
                    f"MECE analysis identified {len(types)} quota driver "
                    f"categories across {len(ops)} operations"
                )
            case "ValueDriverTree":
                top = max(ops, key=lambda op: op.estimated_quota_cost, default=None)
                name = top.description if top else "workflow"
                return f"Value driver analysis reveals '{name}' as the primary cost driver"
            case "ZeroBased":
                return (
                    f"Zero-based design challenges {len(intent.potential_risks)} "
                    f"assumptions with {_TECHNIQUE_SAVINGS['ZeroBased']:.0f}% potential savings"
                )
            case "OptionFraming":
                return "Option framing provides Conservative, Balanced and Bold approaches"
            case "ImpactEffort":
                return f"Impact/effort matrix prioritizes {len(ops)} candidate optimizations"
            case _:
                return f"{technique.name} analysis applied"

    @staticmethod
    def _complexity(intent: ParsedIntent) -> Level:
        count = len(intent.operations_required)
        if count > 6:
            return "high"
        if count > 2:
            return "medium"
        return "low"
