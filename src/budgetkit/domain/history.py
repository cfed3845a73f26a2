"""Historical pattern recommender.

Mines the partner's confirmed document lines for the analytic most often
used with the same product, and scores how consistent that history is.
"""

import re
from collections import Counter
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence
from budgetkit.database.base import Database
from budgetkit.domain.entities import (
    DocumentKind,
    HistoricalLine,
    HistoryMatchStrategy,
    PatternRecommendation,
)
from budgetkit.logging_config import get_logger

logger = get_logger(__name__)

CONFIDENCE_PLACES = Decimal("0.0001")
TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


def _tokens(name: str) -> set[str]:
    return set(TOKEN_PATTERN.findall(name.lower()))


def names_match(candidate: str, target: str) -> bool:
    """Case-insensitive fuzzy product name comparison.

    Names match when one contains the other, or when at least half of the
    tokens of the longer name are shared.
    """
    a = candidate.strip().lower()
    b = target.strip().lower()
    if not a or not b:
        return False
    if a in b or b in a:
        return True
    tokens_a, tokens_b = _tokens(a), _tokens(b)
    if not tokens_a or not tokens_b:
        return False
    shared = len(tokens_a & tokens_b)
    return shared * 2 >= max(len(tokens_a), len(tokens_b))


class HistoricalPatternRecommender:
    """Recommends an analytic from a partner's past confirmed documents."""

    def __init__(self, db: Database, strategy: HistoryMatchStrategy = HistoryMatchStrategy.ID_THEN_NAME):
        """Initialize recommender.

        Args:
            db: Database instance
            strategy: How historical lines are matched to the product
        """
        self.db = db
        self.strategy = HistoryMatchStrategy(strategy)

    def _select_lines(
        self,
        lines: Sequence[HistoricalLine],
        product_id: Optional[int],
        product_name: Optional[str],
    ) -> list[HistoricalLine]:
        by_id = [line for line in lines if product_id is not None and line.product_id == product_id]
        if self.strategy == HistoryMatchStrategy.EXACT_ID:
            return by_id
        if self.strategy == HistoryMatchStrategy.ID_THEN_NAME and by_id:
            return by_id
        if not product_name:
            return []
        return [line for line in lines if names_match(line.product_name, product_name)]

    def recommend(
        self,
        partner_id: int,
        product_id: Optional[int] = None,
        product_name: Optional[str] = None,
        kind: Optional[DocumentKind] = None,
    ) -> Optional[PatternRecommendation]:
        """Recommend an analytic from history.

        Args:
            partner_id: Vendor or customer on the document
            product_id: Product on the line, preferred for matching
            product_name: Product name, used for fuzzy matching
            kind: Restrict history to the same side (purchases or sales)

        Returns:
            PatternRecommendation, or None when there is no matching history
        """
        if product_name is None and product_id is not None:
            product = self.db.get_product(product_id)
            if product is not None:
                product_name = product.name

        history = self.db.list_historical_lines(partner_id)
        if kind is not None:
            history = [line for line in history if line.kind.is_purchase == kind.is_purchase]

        matching = self._select_lines(history, product_id, product_name)

        archived: dict[int, bool] = {}
        names: dict[int, str] = {}
        usable = []
        for line in matching:
            if line.analytic_id not in archived:
                analytic = self.db.get_analytic(line.analytic_id)
                archived[line.analytic_id] = analytic is None or analytic.is_archived
                if analytic is not None:
                    names[line.analytic_id] = analytic.name
            if not archived[line.analytic_id]:
                usable.append(line)

        if not usable:
            logger.debug("pattern_no_history", partner_id=partner_id, product_id=product_id)
            return None

        counts = Counter(line.analytic_id for line in usable)
        last_used: dict[int, date] = {}
        for line in usable:
            if line.analytic_id not in last_used or line.document_date > last_used[line.analytic_id]:
                last_used[line.analytic_id] = line.document_date

        # Most frequent; ties go to the most recently used, then the lowest id
        winner = min(counts, key=lambda aid: (-counts[aid], -last_used[aid].toordinal(), aid))
        total = len(usable)
        count = counts[winner]
        confidence = min(Decimal(count) / Decimal(total), Decimal(1)).quantize(CONFIDENCE_PLACES)

        side = kind if kind is not None else usable[0].kind
        if side.is_purchase:
            reason = f"matched in {count} of {total} past purchases from this vendor"
        else:
            reason = f"matched in {count} of {total} past sales to this customer"

        logger.debug(
            "pattern_recommended",
            partner_id=partner_id,
            analytic_id=winner,
            confidence=str(confidence),
            records=total,
        )
        return PatternRecommendation(
            analytic_id=winner,
            analytic_name=names[winner],
            confidence=confidence,
            reason=reason,
            historical_record_count=total,
        )
