"""Recommendation blender combining rule matches and historical patterns."""

from decimal import Decimal
from typing import Optional
from budgetkit.database.base import Database
from budgetkit.domain.entities import (
    DocumentKind,
    HistoryMatchStrategy,
    Recommendation,
    RecommendationSource,
)
from budgetkit.domain.errors import ValidationError
from budgetkit.domain.history import HistoricalPatternRecommender
from budgetkit.domain.rules import RuleMatcher
from budgetkit.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = Decimal("0.7")


class RecommendationBlender:
    """Chooses one analytic for a document line.

    A historical pattern wins when its confidence is strictly above the
    threshold. Otherwise the best rule applies with confidence 1. With
    neither, the line stays unassigned.
    """

    def __init__(
        self,
        db: Database,
        threshold: Decimal = DEFAULT_CONFIDENCE_THRESHOLD,
        strategy: HistoryMatchStrategy = HistoryMatchStrategy.ID_THEN_NAME,
        matcher: Optional[RuleMatcher] = None,
        recommender: Optional[HistoricalPatternRecommender] = None,
    ):
        """Initialize blender.

        Args:
            db: Database instance
            threshold: Pattern confidence that must be exceeded, in [0, 1]
            strategy: History matching strategy for the default recommender
            matcher: Rule matcher (built from db if omitted)
            recommender: Pattern recommender (built from db if omitted)
        """
        threshold = Decimal(str(threshold))
        if threshold < 0 or threshold > 1:
            raise ValidationError(f"Confidence threshold must be between 0 and 1, got {threshold}")
        self.db = db
        self.threshold = threshold
        self.matcher = matcher or RuleMatcher(db)
        self.recommender = recommender or HistoricalPatternRecommender(db, strategy)

    def get_recommendation(
        self,
        partner_id: Optional[int],
        product_id: Optional[int] = None,
        product_name: Optional[str] = None,
        kind: Optional[DocumentKind] = None,
    ) -> Recommendation:
        """Blend rule and pattern results for one line context.

        This is a pure query; nothing is persisted.

        Args:
            partner_id: Vendor or customer
            product_id: Line product
            product_name: Line product name (for fuzzy history matching)
            kind: Document kind, restricting history to the same side

        Returns:
            Recommendation; source None means the user must choose manually
        """
        pattern = None
        if partner_id is not None:
            pattern = self.recommender.recommend(
                partner_id, product_id=product_id, product_name=product_name, kind=kind
            )
        rule_match = self.matcher.match_for(partner_id, product_id)

        if pattern is not None and pattern.confidence > self.threshold:
            result = Recommendation(
                analytic_id=pattern.analytic_id,
                analytic_name=pattern.analytic_name,
                confidence=pattern.confidence,
                source=RecommendationSource.PATTERN,
                reason=pattern.reason,
            )
        elif rule_match is not None:
            analytic = self.db.get_analytic(rule_match.rule.analytic_id)
            result = Recommendation(
                analytic_id=rule_match.rule.analytic_id,
                analytic_name=analytic.name if analytic is not None else None,
                confidence=Decimal("1.0"),
                source=RecommendationSource.RULE,
                reason=rule_match.explanation,
            )
        else:
            reason = "No matching rule or history; choose an analytic manually"
            if pattern is not None:
                reason = f"History below confidence threshold ({pattern.reason}); choose an analytic manually"
            result = Recommendation(
                analytic_id=None,
                analytic_name=None,
                confidence=Decimal("0"),
                source=RecommendationSource.NONE,
                reason=reason,
            )

        logger.debug(
            "recommendation_blended",
            partner_id=partner_id,
            product_id=product_id,
            source=result.source.value,
            analytic_id=result.analytic_id,
        )
        return result
