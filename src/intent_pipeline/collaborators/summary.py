"""Pyramid-style consulting summary."""

from __future__ import annotations

from intent_pipeline.core.models import (
    ConsultingAnalysis,
    ConsultingSummary,
    ConsultingTechnique,
    Evidence,
    Recommendation,
)

_TECHNIQUE_ACTIONS: dict[str, str] = {
    "MECE": "Group quota drivers into non-overlapping categories and address the largest first",
    "ValueDriverTree": "Target the primary cost driver before secondary optimizations",
    "ZeroBased": "Redesign the workflow from first principles instead of patching it",
    "ImpactEffort": "Start with quick wins that combine high impact and low effort",
    "ValueProp": "Align each step with a concrete user pain point",
    "OptionFraming": "Choose between the Conservative, Balanced and Bold options explicitly",
    "Pyramid": "Lead with the recommendation and support it with grouped evidence",
}


class SummaryGenerator:
    """Turns an analysis into a ranked, evidence-backed summary.

    Recommendations follow technique relevance, highest first.
    """

    def summarize(
        self,
        analysis: ConsultingAnalysis,
        techniques: tuple[ConsultingTechnique, ...],
    ) -> ConsultingSummary:
        ranked = sorted(techniques, key=lambda t: t.relevance_score, reverse=True)
        evidence = tuple(
            Evidence(
                type="quantitative" if any(ch.isdigit() for ch in finding) else "qualitative",
                description=finding,
                source="consulting analysis",
                confidence="high" if analysis.implementation_complexity == "low" else "medium",
            )
            for finding in analysis.key_findings
        )
        recommendations = tuple(
            Recommendation(
                main_recommendation=_TECHNIQUE_ACTIONS.get(
                    t.name, f"Apply {t.name} to the workflow"
                ),
                supporting_reasons=tuple(t.applicable_scenarios),
                evidence=evidence[i : i + 1],
                expected_outcome=(
                    f"Contributes to the estimated {analysis.total_quota_savings:.0f}% "
                    "quota savings"
                ),
            )
            for i, t in enumerate(ranked)
        )
        names = ", ".join(t.name for t in ranked)
        executive_summary = (
            f"Analysis using {len(ranked)} consulting techniques ({names}) reveals "
            f"{analysis.total_quota_savings:.0f}% potential quota savings through "
            f"systematic optimization at {analysis.implementation_complexity} "
            "implementation complexity."
        ) if ranked else ""
        return ConsultingSummary(
            executive_summary=executive_summary,
            recommendations=recommendations,
            key_findings=analysis.key_findings,
            supporting_evidence=evidence,
        )
