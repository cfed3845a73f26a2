"""Builds domain services from the CLI context and settings."""

import click

from budgetkit.config import Settings
from budgetkit.domain.budget import BudgetLedger, BudgetService
from budgetkit.domain.document import DocumentService
from budgetkit.domain.recommendation import RecommendationBlender


def get_settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


def build_blender(ctx: click.Context) -> RecommendationBlender:
    settings = get_settings(ctx)
    return RecommendationBlender(
        ctx.obj["db"],
        threshold=settings.confidence_threshold,
        strategy=settings.history_match,
    )


def build_ledger(ctx: click.Context) -> BudgetLedger:
    return BudgetLedger(ctx.obj["db"], retry_attempts=get_settings(ctx).retry_attempts)


def build_budget_service(ctx: click.Context) -> BudgetService:
    return BudgetService(ctx.obj["db"], ledger=build_ledger(ctx))


def build_document_service(ctx: click.Context) -> DocumentService:
    settings = get_settings(ctx)
    return DocumentService(
        ctx.obj["db"],
        blender=build_blender(ctx),
        ledger=build_ledger(ctx),
        retry_attempts=settings.retry_attempts,
    )
