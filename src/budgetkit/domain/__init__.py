"""Domain layer for budgetkit."""

from importlib import import_module

# Services are resolved lazily; the database layer imports domain.entities
# while it is still initializing, so eager imports here would be circular.
_SERVICES = {
    "AnalyticService": "budgetkit.domain.analytic",
    "AutoAssignRuleService": "budgetkit.domain.rules",
    "BudgetLedger": "budgetkit.domain.budget",
    "BudgetService": "budgetkit.domain.budget",
    "ContactService": "budgetkit.domain.contact",
    "DocumentService": "budgetkit.domain.document",
    "HistoricalPatternRecommender": "budgetkit.domain.history",
    "PartnerTagService": "budgetkit.domain.category",
    "ProductCategoryService": "budgetkit.domain.category",
    "ProductService": "budgetkit.domain.product",
    "RecommendationBlender": "budgetkit.domain.recommendation",
    "RuleMatcher": "budgetkit.domain.rules",
}

__all__ = sorted(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
