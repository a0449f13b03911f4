"""Keyword-driven intent parsing."""

from __future__ import annotations

import logging
import math
import re
from typing import TYPE_CHECKING, NamedTuple

from intent_pipeline.core.models import (
    Operation,
    OperationType,
    ParsedIntent,
    Risk,
    TechnicalRequirement,
)

if TYPE_CHECKING:
    from intent_pipeline.core.options import PipelineOptions

log = logging.getLogger(__name__)

_OBJECTIVE_PATTERNS = (
    re.compile(
        r"(?:i want to|i need to|create|build|develop|implement)\s+(.+?)"
        r"(?:\s+(?:with|that|for|using)\b|\.|$)"
    ),
    re.compile(
        r"(?:help me|assist me|guide me)\s+(?:to\s+)?(.+?)"
        r"(?:\s+(?:with|that|for|using)\b|\.|$)"
    ),
    re.compile(
        r"(?:make|generate|produce)\s+(?:an?\s+)?(.+?)"
        r"(?:\s+(?:with|that|for|using)\b|\.|$)"
    ),
)
_FILLER_WORDS = frozenset({"want", "need", "create", "build", "with", "that", "have", "make"})
_ARTICLE = re.compile(r"^(?:a|an|the)\s+")
_PRODUCT_NOUN = re.compile(r"\s+(?:system|application|app|tool|platform|service)$")


class _OperationRule(NamedTuple):
    keywords: tuple[str, ...]
    type: OperationType
    description: str
    cost: int


_CRUD_RULES = (
    _OperationRule(("crud",), "processing", "Create new records", 2),
    _OperationRule(("crud",), "data_retrieval", "Read/Retrieve data", 1),
    _OperationRule(("crud",), "processing", "Update existing records", 2),
    _OperationRule(("crud",), "processing", "Delete records", 1),
)

_RULES = (
    _OperationRule(("login", "signin", "authenticat"), "processing", "User authentication", 3),
    _OperationRule(("register", "signup", "registration"), "processing", "User registration", 3),
    _OperationRule(("create", "add", "insert", "new"), "processing", "Create/Add new records", 2),
    _OperationRule(
        ("read", "view", "display", "show", "list", "get"),
        "data_retrieval",
        "Read/Display data",
        1,
    ),
    _OperationRule(("update", "edit", "modify", "change"), "processing", "Update existing records", 2),
    _OperationRule(("delete", "remove", "destroy"), "processing", "Delete records", 1),
)

_COMMON_RULES = (
    _OperationRule(("search", "find", "query"), "data_retrieval", "Search functionality", 2),
    _OperationRule(("filter", "sort"), "processing", "Filter and sort data", 1),
    _OperationRule(
        ("analytics", "report", "dashboard"), "analysis", "Generate analytics and reports", 4
    ),
    _OperationRule(("api", "endpoint", "restful"), "processing", "API endpoint handling", 2),
    _OperationRule(("upload", "file", "image"), "processing", "File upload and processing", 3),
)

_DATA_SOURCES = (
    (("user", "account", "profile", "auth"), "user_data"),
    (("database", "db", "store", "persist", "crud"), "database"),
    (("file", "upload", "document", "image"), "file_storage"),
    (("api", "external", "third-party", "integration", "restful"), "external_api"),
    (("config", "setting", "preference"), "configuration"),
    (("analytics", "report", "dashboard", "metrics"), "analytics_data"),
)

_RISKS = (
    (
        ("all", "every", "each", "batch"),
        Risk(
            type="excessive_loops",
            severity="high",
            description="Potential for excessive loops when processing multiple items",
            likelihood=0.7,
        ),
    ),
    (
        ("search", "find", "query", "filter"),
        Risk(
            type="redundant_query",
            severity="medium",
            description="Risk of redundant database queries without proper caching",
            likelihood=0.6,
        ),
    ),
    (
        ("generate", "create", "analyze", "intelligent"),
        Risk(
            type="unnecessary_vibes",
            severity="medium",
            description="Potential overuse of free-form calls for tasks that fit structured ones",
            likelihood=0.5,
        ),
    ),
    (
        ("frequent", "often", "regular", "repeated"),
        Risk(
            type="missing_cache",
            severity="medium",
            description="Missing caching opportunities for frequently accessed data",
            likelihood=0.6,
        ),
    ),
)


def _mentions(text: str, keywords: tuple[str, ...]) -> bool:
    """True when any keyword starts a word in `text`."""
    return any(re.search(rf"\b{re.escape(k)}", text) for k in keywords)


class IntentParser:
    """Extracts objective, operations, data sources and risks from free text.

    The parser is stateless and deterministic. Text with no recognizable
    operations yields an empty operation list.
    """

    def parse(self, text: str, options: PipelineOptions | None = None) -> ParsedIntent:
        lowered = text.lower().strip()
        operations = self._operations(lowered)
        if options is not None:
            operations = self._adjust_costs(operations, options)
        sources = self._data_sources(lowered)
        parsed = ParsedIntent(
            business_objective=self._objective(lowered),
            operations_required=operations,
            technical_requirements=self._requirements(operations, sources),
            data_sources_needed=sources,
            potential_risks=tuple(risk for kws, risk in _RISKS if _mentions(lowered, kws)),
            cost_ceiling=options.cost_ceiling if options is not None else None,
        )
        log.debug(
            "Parsed intent: objective=%r, %d operation(s)",
            parsed.business_objective,
            len(operations),
        )
        return parsed

    def _objective(self, text: str) -> str:
        for pattern in _OBJECTIVE_PATTERNS:
            match = pattern.search(text)
            if match and match.group(1).strip():
                objective = _ARTICLE.sub("", match.group(1).strip())
                return _PRODUCT_NOUN.sub(" system", objective).strip()
        words = [w for w in text.split() if len(w) > 3 and w not in _FILLER_WORDS]
        if words:
            return " ".join(words[:5])
        return "Build a custom application"

    def _operations(self, text: str) -> tuple[Operation, ...]:
        rules = list(_RULES[:2])
        if _mentions(text, ("crud",)):
            rules.extend(_CRUD_RULES)
        else:
            rules.extend(_RULES[2:])
        rules.extend(_COMMON_RULES)

        matched = [rule for rule in rules if _mentions(text, rule.keywords)]
        if "user" in text and _mentions(text, ("manage", "profile")):
            matched.append(
                _OperationRule((), "processing", "User profile management", 2)
            )
        return tuple(
            Operation(
                id=f"op_{i}",
                type=rule.type,
                description=rule.description,
                estimated_quota_cost=rule.cost,
            )
            for i, rule in enumerate(matched, start=1)
        )

    def _data_sources(self, text: str) -> tuple[str, ...]:
        sources = tuple(name for kws, name in _DATA_SOURCES if _mentions(text, kws))
        return sources or ("application_data",)

    def _requirements(
        self, operations: tuple[Operation, ...], sources: tuple[str, ...]
    ) -> tuple[TechnicalRequirement, ...]:
        requirements: list[TechnicalRequirement] = []
        if sources:
            requirements.append(
                TechnicalRequirement(
                    type="data_retrieval",
                    description=f"Retrieve data from {', '.join(sources)}",
                    complexity="high" if len(sources) > 2 else "medium",
                    quota_impact="moderate" if len(sources) > 1 else "minimal",
                )
            )
        processing = [op for op in operations if op.type == "processing"]
        if processing:
            requirements.append(
                TechnicalRequirement(
                    type="processing",
                    description="Process " + ", ".join(op.description.lower() for op in processing),
                    complexity="high" if len(processing) > 3 else "medium",
                    quota_impact="significant" if len(processing) > 3 else "moderate",
                )
            )
        if any(op.type == "analysis" for op in operations):
            requirements.append(
                TechnicalRequirement(
                    type="analysis",
                    description="Analyze data and generate insights",
                    complexity="high",
                    quota_impact="significant",
                )
            )
        return tuple(requirements)

    @staticmethod
    def _adjust_costs(
        operations: tuple[Operation, ...], options: PipelineOptions
    ) -> tuple[Operation, ...]:
        """Scale operation costs by expected load and performance sensitivity."""
        adjusted = []
        for op in operations:
            cost = op.estimated_quota_cost
            if options.expected_load is not None:
                if options.expected_load > 1000:
                    cost = math.ceil(cost * 1.2)
                elif options.expected_load < 10:
                    cost = max(1, math.floor(cost * 0.8))
            if options.performance_sensitivity == "high":
                cost = math.ceil(cost * 1.1)
            elif options.performance_sensitivity == "low":
                cost = max(1, math.floor(cost * 0.9))
            adjusted.append(
                Operation(
                    id=op.id,
                    type=op.type,
                    description=op.description,
                    estimated_quota_cost=cost,
                )
            )
        return tuple(adjusted)
