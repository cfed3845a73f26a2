"""Auto-assignment rule store and deterministic rule matcher."""

from typing import Optional, Sequence
from budgetkit.database.base import Database
from budgetkit.domain.analytic import AnalyticService
from budgetkit.domain.entities import AutoAssignRule, RuleMatch, RuleStatus
from budgetkit.domain.errors import (
    NotFoundError,
    ValidationError,
    invalid_transition,
    not_found,
)
from budgetkit.logging_config import get_logger

logger = get_logger(__name__)


class AutoAssignRuleService:
    """Service for managing auto-assignment rules."""

    def __init__(self, db: Database):
        """Initialize rule service.

        Args:
            db: Database instance
        """
        self.db = db
        self.analytics = AnalyticService(db)

    def _validate_references(
        self,
        analytic_id: int,
        partner_tag_id: Optional[int],
        partner_id: Optional[int],
        product_category_id: Optional[int],
        product_id: Optional[int],
    ) -> None:
        self.analytics.require_assignable(analytic_id)
        if partner_tag_id is not None and self.db.get_partner_tag(partner_tag_id) is None:
            raise NotFoundError(not_found("Partner tag", partner_tag_id))
        if partner_id is not None and self.db.get_contact(partner_id) is None:
            raise NotFoundError(not_found("Contact", partner_id))
        if product_category_id is not None and self.db.get_product_category(product_category_id) is None:
            raise NotFoundError(not_found("Product category", product_category_id))
        if product_id is not None and self.db.get_product(product_id) is None:
            raise NotFoundError(not_found("Product", product_id))

        if partner_tag_id is None and partner_id is None and product_category_id is None and product_id is None:
            raise ValidationError("Rule needs at least one condition (partner, partner tag, product or category)")

    def create_rule(
        self,
        name: str,
        analytic_id: int,
        description: Optional[str] = None,
        partner_tag_id: Optional[int] = None,
        partner_id: Optional[int] = None,
        product_category_id: Optional[int] = None,
        product_id: Optional[int] = None,
    ) -> int:
        """Create a draft auto-assignment rule.

        Args:
            name: Rule name
            analytic_id: Analytic applied when the rule matches
            description: Optional description
            partner_tag_id: Match partners carrying this tag
            partner_id: Match this exact partner
            product_category_id: Match products of this category
            product_id: Match this exact product

        Returns:
            Rule ID

        Raises:
            ValidationError: If name is empty, no condition is set or the analytic is archived
            NotFoundError: If a referenced record does not exist
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Rule name is required")
        self._validate_references(analytic_id, partner_tag_id, partner_id, product_category_id, product_id)

        rule_id = self.db.create_rule(
            name=name,
            analytic_id=analytic_id,
            description=description,
            partner_tag_id=partner_tag_id,
            partner_id=partner_id,
            product_category_id=product_category_id,
            product_id=product_id,
        )
        logger.info("rule_created", rule_id=rule_id, analytic_id=analytic_id)
        return rule_id

    def get_rule(self, rule_id: int) -> Optional[AutoAssignRule]:
        """Get rule by ID."""
        return self.db.get_rule(rule_id)

    def require_rule(self, rule_id: int) -> AutoAssignRule:
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise NotFoundError(not_found("Rule", rule_id))
        return rule

    def list_rules(self, status: Optional[str] = None, analytic_id: Optional[int] = None) -> list[AutoAssignRule]:
        """List rules, newest first.

        Args:
            status: Optional status filter (draft, confirmed, archived)
            analytic_id: Optional target analytic filter

        Returns:
            List of rules
        """
        if status is not None:
            status = RuleStatus(status).value
        return self.db.list_rules(status=status, analytic_id=analytic_id)

    def update_rule(
        self,
        rule_id: int,
        name: Optional[str] = None,
        analytic_id: Optional[int] = None,
        description: Optional[str] = None,
        partner_tag_id: Optional[int] = None,
        partner_id: Optional[int] = None,
        product_category_id: Optional[int] = None,
        product_id: Optional[int] = None,
        clear: Sequence[str] = (),
    ) -> None:
        """Update a draft rule.

        Args:
            rule_id: Rule ID
            clear: Condition names to unset ("partner", "partner_tag",
                "product", "product_category")

        Raises:
            NotFoundError: If the rule or a reference does not exist
            ValidationError: If the rule is not a draft or ends up invalid
        """
        rule = self.require_rule(rule_id)
        if rule.status != RuleStatus.DRAFT:
            raise ValidationError(invalid_transition("rule", rule_id, rule.status.value, "edit"))

        fields = {
            "partner_tag": ("partner_tag_id", partner_tag_id, rule.partner_tag_id),
            "partner": ("partner_id", partner_id, rule.partner_id),
            "product_category": ("product_category_id", product_category_id, rule.product_category_id),
            "product": ("product_id", product_id, rule.product_id),
        }
        unknown = set(clear) - set(fields)
        if unknown:
            raise ValidationError(f"Unknown rule condition(s): {', '.join(sorted(unknown))}")

        changes: dict = {}
        merged: dict = {}
        for condition, (column, new_value, current) in fields.items():
            if condition in clear:
                value = None
            elif new_value is not None:
                value = new_value
            else:
                value = current
            merged[column] = value
            if value != current:
                changes[column] = value

        target = analytic_id if analytic_id is not None else rule.analytic_id
        self._validate_references(target, **merged)
        if analytic_id is not None:
            changes["analytic_id"] = analytic_id
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Rule name is required")
            changes["name"] = name
        if description is not None:
            changes["description"] = description

        if changes:
            self.db.update_rule(rule_id, changes)

    def confirm_rule(self, rule_id: int) -> None:
        """Activate a draft rule for matching."""
        rule = self.require_rule(rule_id)
        if rule.status != RuleStatus.DRAFT:
            raise ValidationError(invalid_transition("rule", rule_id, rule.status.value, "confirm"))
        # One-sided rules are allowed
        if not rule.has_partner_clause:
            logger.warning("rule_without_partner_clause", rule_id=rule_id, analytic_id=rule.analytic_id)
        if not rule.has_product_clause:
            logger.warning("rule_without_product_clause", rule_id=rule_id, analytic_id=rule.analytic_id)
        self.db.update_rule(rule_id, {"status": RuleStatus.CONFIRMED.value})
        logger.info("rule_confirmed", rule_id=rule_id)

    def archive_rule(self, rule_id: int) -> None:
        """Withdraw a rule from matching."""
        rule = self.require_rule(rule_id)
        if rule.status == RuleStatus.ARCHIVED:
            raise ValidationError(invalid_transition("rule", rule_id, rule.status.value, "archive"))
        self.db.update_rule(rule_id, {"status": RuleStatus.ARCHIVED.value})
        logger.info("rule_archived", rule_id=rule_id)

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule."""
        self.require_rule(rule_id)
        self.db.delete_rule(rule_id)


def evaluate_rule(
    rule: AutoAssignRule,
    partner_id: Optional[int],
    partner_tag_ids: Sequence[int],
    product_id: Optional[int],
    product_category_id: Optional[int],
) -> Optional[RuleMatch]:
    """Check one rule against a line context.

    Every condition the rule sets must hold. Unset conditions are ignored.

    Returns:
        RuleMatch with the matched condition names, or None
    """
    checks = {
        "partner": lambda: partner_id is not None and rule.partner_id == partner_id,
        "partner_tag": lambda: rule.partner_tag_id in partner_tag_ids,
        "product": lambda: product_id is not None and rule.product_id == product_id,
        "product_category": lambda: (
            product_category_id is not None and rule.product_category_id == product_category_id
        ),
    }
    conditions = rule.conditions
    if not conditions:
        return None
    for condition in conditions:
        if not checks[condition]():
            return None
    return RuleMatch(rule=rule, matched_fields=conditions, score=rule.specificity)


def _rank_key(match: RuleMatch):
    return (-match.score, -len(match.matched_fields), -match.rule.created_at.timestamp(), -match.rule.id)


class RuleMatcher:
    """Finds the best confirmed rule for a partner/product context.

    Ranking is deterministic: higher specificity first (exact partner or
    product weigh 2, tag or category weigh 1), then more matched conditions,
    then the most recently created rule, then the highest id.
    """

    def __init__(self, db: Database):
        self.db = db

    def rank_matches(
        self,
        partner_id: Optional[int],
        partner_tag_ids: Sequence[int] = (),
        product_id: Optional[int] = None,
        product_category_id: Optional[int] = None,
    ) -> list[RuleMatch]:
        """All matching confirmed rules, best first.

        Rules whose analytic is archived are skipped.
        """
        matches = []
        archived: dict[int, bool] = {}
        for rule in self.db.list_rules(status=RuleStatus.CONFIRMED.value):
            match = evaluate_rule(rule, partner_id, partner_tag_ids, product_id, product_category_id)
            if match is None:
                continue
            if rule.analytic_id not in archived:
                analytic = self.db.get_analytic(rule.analytic_id)
                archived[rule.analytic_id] = analytic is None or analytic.is_archived
            if archived[rule.analytic_id]:
                logger.debug("rule_skipped_archived_analytic", rule_id=rule.id, analytic_id=rule.analytic_id)
                continue
            matches.append(match)
        matches.sort(key=_rank_key)
        return matches

    def match_rule(
        self,
        partner_id: Optional[int],
        partner_tag_ids: Sequence[int] = (),
        product_id: Optional[int] = None,
        product_category_id: Optional[int] = None,
    ) -> Optional[RuleMatch]:
        """Best matching rule, or None when no rule applies.

        Args:
            partner_id: Document partner
            partner_tag_ids: Tags carried by the partner
            product_id: Line product
            product_category_id: Category of the line product

        Returns:
            Winning RuleMatch or None
        """
        matches = self.rank_matches(partner_id, partner_tag_ids, product_id, product_category_id)
        if not matches:
            logger.debug("rule_no_match", partner_id=partner_id, product_id=product_id)
            return None
        best = matches[0]
        logger.debug("rule_matched", rule_id=best.rule.id, analytic_id=best.rule.analytic_id, score=best.score)
        return best

    def context_for(self, partner_id: Optional[int], product_id: Optional[int]) -> tuple[tuple[int, ...], Optional[int]]:
        """Resolve (partner tag ids, product category id) for a partner and product."""
        tag_ids: tuple[int, ...] = ()
        if partner_id is not None:
            contact = self.db.get_contact(partner_id)
            if contact is not None:
                tag_ids = contact.tag_ids
        category_id = None
        if product_id is not None:
            product = self.db.get_product(product_id)
            if product is not None:
                category_id = product.category_id
        return tag_ids, category_id

    def match_for(self, partner_id: Optional[int], product_id: Optional[int]) -> Optional[RuleMatch]:
        """Best rule for a partner and product, resolving tags and category from master data."""
        tag_ids, category_id = self.context_for(partner_id, product_id)
        return self.match_rule(partner_id, tag_ids, product_id, category_id)

    def test_match(self, partner_id: Optional[int], product_id: Optional[int]) -> list[RuleMatch]:
        """All rules that would match a partner and product, in ranking order."""
        tag_ids, category_id = self.context_for(partner_id, product_id)
        return self.rank_matches(partner_id, tag_ids, product_id, category_id)
