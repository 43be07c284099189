"""ExportService: tier-gated, quota-counted meal plan exports."""

import re

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mealplanner.core.config import get_settings
from mealplanner.core.exceptions import AuthorizationError
from mealplanner.db.models.branding import TrainerBrandingSettings
from mealplanner.db.models.meal_plan import MealPlan
from mealplanner.db.models.recipe import Recipe
from mealplanner.domain.entitlements import (
    Entitlements,
    ExportFormat,
    Feature,
    UsageCounter,
    denial_reason,
    minimum_tier_for_export_format,
    resolve_for_subscription,
)
from mealplanner.domain.meal_types import MEAL_TYPES_BY_NAME
from mealplanner.exports.exporter import ExportDocument, MealPlanExporter, RenderedExport
from mealplanner.services.entitlement_service import get_subscription
from mealplanner.services.meal_plan_service import MealPlanService
from mealplanner.services.usage_tracker import UsageTracker

logger = structlog.get_logger(__name__)


def _recipe_ids(plan_data: dict) -> set[str]:
    return {
        meal["recipe_id"]
        for day in plan_data.get("days", [])
        for meal in day.get("meals", [])
        if meal.get("recipe_id")
    }


def build_rows(plan_data: dict, recipes: dict[str, Recipe]) -> list[tuple]:
    """Flatten plan_data into (day, meal, recipe, servings, calories, protein) rows."""
    rows: list[tuple] = []
    for day in plan_data.get("days", []):
        for meal in day.get("meals", []):
            recipe = recipes.get(meal.get("recipe_id"))
            servings = meal.get("servings", 1)
            rows.append((
                day.get("day"),
                meal.get("meal", ""),
                recipe.name if recipe else meal.get("name", "Unknown recipe"),
                servings,
                recipe.calories * servings if recipe and recipe.calories is not None else None,
                recipe.protein_grams * servings if recipe and recipe.protein_grams is not None else None,
            ))
    return rows


def footer_text(branding: TrainerBrandingSettings | None, entitlements: Entitlements) -> str:
    if branding is not None and branding.white_label_enabled and entitlements.has_feature(Feature.WHITE_LABEL):
        return ""
    return f"Powered by {get_settings().platform_name}"


def export_filename(plan_name: str, extension: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", plan_name.lower()).strip("-") or "meal-plan"
    return f"{slug}.{extension}"


class ExportService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], exporter: MealPlanExporter | None = None):
        self.session_factory = session_factory
        self.exporter = exporter or MealPlanExporter()

    async def export_meal_plan(
        self,
        trainer_id: str,
        meal_plan_id: str,
        export_format: ExportFormat,
    ) -> tuple[RenderedExport, str]:
        """Render a meal plan and count the export against the format's counter.

        The export is rendered before the counter is touched, and the increment
        commits in its own short transaction. A failed render consumes no quota
        and no usage row lock is held while WeasyPrint runs.

        Returns:
            (rendered export, download filename)

        Raises:
            HTTPException(404): meal plan not found for this trainer
            AuthorizationError: format not included in the trainer's tier
        """
        async with self.session_factory() as session:
            plan = await MealPlanService(self.session_factory).get_meal_plan(session, trainer_id, meal_plan_id)

            subscription = await get_subscription(session, trainer_id)
            entitlements = resolve_for_subscription(subscription)
            if not entitlements.can_export(export_format):
                stored_tier = str(subscription.tier) if subscription else None
                raise AuthorizationError(
                    resource=f"export:{export_format.value}",
                    required_tier=minimum_tier_for_export_format(export_format).value,
                    current_tier=stored_tier,
                    reason=denial_reason(stored_tier, entitlements),
                )

            document = await self._build_document(session, plan, entitlements)

        if export_format is ExportFormat.CSV:
            rendered = self.exporter.render_csv(document)
        elif export_format is ExportFormat.EXCEL:
            rendered = self.exporter.render_excel(document)
        else:
            rendered = await self.exporter.render_pdf(document)

        async with self.session_factory() as session:
            async with session.begin():
                await UsageTracker(session).enforce(trainer_id, UsageCounter.for_export(export_format))

        logger.info(
            "meal_plan_exported",
            trainer_id=trainer_id,
            meal_plan_id=meal_plan_id,
            export_format=export_format.value,
            size_bytes=len(rendered.content),
        )
        return rendered, export_filename(plan.name, rendered.extension)

    async def _build_document(self, session: AsyncSession, plan: MealPlan, entitlements: Entitlements) -> ExportDocument:
        plan_data = plan.plan_data or {}
        ids = _recipe_ids(plan_data)
        recipes: dict[str, Recipe] = {}
        if ids:
            result = await session.execute(select(Recipe).where(Recipe.id.in_(ids)))
            recipes = {r.id: r for r in result.scalars().all()}

        result = await session.execute(
            select(TrainerBrandingSettings).where(TrainerBrandingSettings.trainer_id == plan.trainer_id)
        )
        branding = result.scalar_one_or_none()
        customized = branding is not None and entitlements.has_feature(Feature.CUSTOM_BRANDING)

        meal_type = MEAL_TYPES_BY_NAME.get(plan.meal_type)
        return ExportDocument(
            plan_name=plan.name,
            meal_type_label=meal_type.display_name if meal_type else plan.meal_type,
            rows=build_rows(plan_data, recipes),
            branding=footer_text(branding, entitlements),
            primary_color=branding.primary_color if customized else None,
            logo_url=branding.logo_url if customized else None,
        )
