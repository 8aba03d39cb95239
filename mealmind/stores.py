"""SQLAlchemy implementations of the engine storage capabilities."""
from __future__ import annotations

import logging
from dataclasses import fields
from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy import func, not_, or_, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from .errors import ShoppingListConflict, ShoppingListNotFound, TransientReadFailure
from .models import (
    Ingredient,
    MealPlan as MealPlanRow,
    MealPlanItem as MealPlanItemRow,
    PantryItem as PantryItemRow,
    PriceBaseline as PriceBaselineRow,
    Recipe as RecipeRow,
    RecipeIngredient,
    ShoppingList as ShoppingListRow,
    ShoppingListItem as ShoppingListItemRow,
    UserAccount,
    UserPreferences as UserPreferencesRow,
)
from .services.domain import (
    MEAL_TYPES,
    MealPlan,
    PantryItem,
    PlanItem,
    PlanItemDraft,
    PlanningPreferences,
    PriceBaseline,
    Recipe,
    RecipeFilter,
    RecipeIngredientLine,
    ShoppingItem,
    ShoppingItemDraft,
    ShoppingListRecord,
)

logger = logging.getLogger(__name__)

_LIST_ITEMS = selectinload(ShoppingListRow.items).selectinload(ShoppingListItemRow.ingredient)
_RECIPE_LOAD = selectinload(RecipeRow.ingredients).selectinload(RecipeIngredient.ingredient)
_PLAN_ITEMS_WITH_RECIPES = (
    selectinload(MealPlanRow.items)
    .selectinload(MealPlanItemRow.recipe)
    .selectinload(RecipeRow.ingredients)
    .selectinload(RecipeIngredient.ingredient)
)


def _slot_order(meal_type: str) -> int:
    try:
        return MEAL_TYPES.index(meal_type)
    except ValueError:
        return len(MEAL_TYPES)


def recipe_from_row(row: RecipeRow) -> Recipe:
    return Recipe(
        id=row.id,
        title=row.title,
        meal_types=frozenset(row.meal_types or []),
        servings_default=row.servings_default,
        ingredients=tuple(
            RecipeIngredientLine(
                ingredient_id=line.ingredient_id,
                name=line.ingredient.name if line.ingredient else "",
                quantity=line.quantity,
                unit=line.unit,
                category=line.ingredient.category if line.ingredient else None,
            )
            for line in row.ingredients
        ),
        prep_time_minutes=row.prep_time_minutes,
        cook_time_minutes=row.cook_time_minutes,
        total_time_minutes=row.total_time_minutes,
        is_vegetarian=row.is_vegetarian,
        is_dairy_free=row.is_dairy_free,
    )


def plan_from_row(row: MealPlanRow, *, with_items: bool = True, with_recipes: bool = False) -> MealPlan:
    items: tuple[PlanItem, ...] = ()
    if with_items:
        ordered = sorted(row.items, key=lambda item: (item.day_index, _slot_order(item.meal_type)))
        items = tuple(
            PlanItem(
                id=item.id,
                day_index=item.day_index,
                meal_type=item.meal_type,
                recipe_id=item.recipe_id,
                servings=item.servings,
                recipe=recipe_from_row(item.recipe) if with_recipes else None,
            )
            for item in ordered
        )
    return MealPlan(
        id=row.id,
        user_id=row.user_id,
        start_date=row.start_date,
        days=row.days,
        items=items,
        created_at=row.created_at,
    )


def shopping_item_from_row(row: ShoppingListItemRow) -> ShoppingItem:
    return ShoppingItem(
        id=row.id,
        ingredient_id=row.ingredient_id,
        name=row.name,
        quantity=row.quantity,
        unit=row.unit,
        # Ingredient rows own the category; the stored copy covers ad-hoc items.
        category=row.ingredient.category if row.ingredient is not None else row.category,
        checked=row.checked,
    )


def shopping_list_from_row(row: ShoppingListRow) -> ShoppingListRecord:
    return ShoppingListRecord(
        id=row.id,
        plan_id=row.plan_id,
        items=tuple(shopping_item_from_row(item) for item in row.items),
        created_at=row.created_at,
    )


class _SessionBacked:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory


class SqlCatalogReader(_SessionBacked):
    async def query_recipes(self, recipe_filter: RecipeFilter) -> List[Recipe]:
        stmt = select(RecipeRow).options(_RECIPE_LOAD).order_by(RecipeRow.id)
        if recipe_filter.is_vegetarian:
            stmt = stmt.where(RecipeRow.is_vegetarian.is_(True))
        if recipe_filter.is_dairy_free:
            stmt = stmt.where(RecipeRow.is_dairy_free.is_(True))
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [recipe_from_row(row) for row in result.scalars().all()]


class SqlUserDirectory(_SessionBacked):
    async def get_tier(self, user_id: str) -> Optional[str]:
        async with self._session_factory() as session:
            account = await session.get(UserAccount, user_id)
            return account.tier if account else None


class SqlPlanStore(_SessionBacked):
    async def create_plan(
        self,
        *,
        user_id: str,
        start_date: date,
        days: int,
        items: Sequence[PlanItemDraft],
    ) -> MealPlan:
        async with self._session_factory() as session:
            plan = MealPlanRow(
                user_id=user_id,
                start_date=start_date,
                days=days,
                items=[
                    MealPlanItemRow(
                        day_index=item.day_index,
                        meal_type=item.meal_type,
                        recipe_id=item.recipe_id,
                        servings=item.servings,
                    )
                    for item in items
                ],
            )
            session.add(plan)
            try:
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            await session.refresh(plan, attribute_names=["created_at"])
            return plan_from_row(plan)

    async def get_plan_with_recipes(self, plan_id: str) -> Optional[MealPlan]:
        stmt = (
            select(MealPlanRow)
            .where(MealPlanRow.id == plan_id)
            .options(_PLAN_ITEMS_WITH_RECIPES)
        )
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
                return plan_from_row(row, with_recipes=True) if row else None
        except (OperationalError, PoolTimeoutError) as exc:
            logger.warning("Plan read failed plan=%s error=%s", plan_id, exc)
            raise TransientReadFailure(f"Reading plan {plan_id} failed: {exc}") from exc

    async def get_plan(self, plan_id: str) -> Optional[MealPlan]:
        async with self._session_factory() as session:
            row = await session.get(MealPlanRow, plan_id)
            return plan_from_row(row, with_items=False) if row else None

    async def get_latest_plan(self, user_id: str) -> Optional[MealPlan]:
        stmt = (
            select(MealPlanRow)
            .where(MealPlanRow.user_id == user_id)
            .order_by(MealPlanRow.created_at.desc())
            .limit(1)
            .options(_PLAN_ITEMS_WITH_RECIPES)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return plan_from_row(row, with_recipes=True) if row else None

    async def list_plans(self, user_id: str, limit: int) -> List[MealPlan]:
        stmt = (
            select(MealPlanRow)
            .where(MealPlanRow.user_id == user_id)
            .order_by(MealPlanRow.created_at.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [plan_from_row(row, with_items=False) for row in rows]

    async def delete_plan(self, plan_id: str) -> bool:
        async with self._session_factory() as session:
            row = await session.get(
                MealPlanRow,
                plan_id,
                options=[
                    selectinload(MealPlanRow.items),
                    selectinload(MealPlanRow.shopping_list).selectinload(ShoppingListRow.items),
                ],
            )
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True


class SqlShoppingListStore(_SessionBacked):
    async def find_by_plan(self, plan_id: str) -> Optional[ShoppingListRecord]:
        stmt = (
            select(ShoppingListRow)
            .where(ShoppingListRow.plan_id == plan_id)
            .options(_LIST_ITEMS)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return shopping_list_from_row(row) if row else None

    async def create_with_items(
        self, plan_id: str, items: Sequence[ShoppingItemDraft]
    ) -> ShoppingListRecord:
        async with self._session_factory() as session:
            shopping_list = ShoppingListRow(
                plan_id=plan_id,
                items=[
                    ShoppingListItemRow(
                        ingredient_id=item.ingredient_id,
                        name=item.name,
                        quantity=item.quantity,
                        unit=item.unit,
                        category=item.category,
                        checked=False,
                    )
                    for item in items
                ],
            )
            session.add(shopping_list)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ShoppingListConflict(plan_id) from exc
        created = await self.find_by_plan(plan_id)
        if created is None:
            raise ShoppingListNotFound(plan_id)
        return created

    async def get_item(self, item_id: str) -> Optional[ShoppingItem]:
        async with self._session_factory() as session:
            row = await session.get(
                ShoppingListItemRow, item_id, options=[selectinload(ShoppingListItemRow.ingredient)]
            )
            return shopping_item_from_row(row) if row else None

    async def get_item_owner(self, item_id: str) -> Optional[str]:
        stmt = (
            select(MealPlanRow.user_id)
            .join(ShoppingListRow, ShoppingListRow.plan_id == MealPlanRow.id)
            .join(ShoppingListItemRow, ShoppingListItemRow.shopping_list_id == ShoppingListRow.id)
            .where(ShoppingListItemRow.id == item_id)
        )
        async with self._session_factory() as session:
            return (await session.execute(stmt)).scalar_one_or_none()

    async def get_list_owner(self, list_id: str) -> Optional[str]:
        stmt = (
            select(MealPlanRow.user_id)
            .join(ShoppingListRow, ShoppingListRow.plan_id == MealPlanRow.id)
            .where(ShoppingListRow.id == list_id)
        )
        async with self._session_factory() as session:
            return (await session.execute(stmt)).scalar_one_or_none()

    async def toggle_item_checked(self, item_id: str) -> Optional[bool]:
        stmt = (
            update(ShoppingListItemRow)
            .where(ShoppingListItemRow.id == item_id)
            .values(checked=not_(ShoppingListItemRow.checked))
            .returning(ShoppingListItemRow.checked)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            checked = (await session.execute(stmt)).scalar_one_or_none()
            await session.commit()
            return checked

    async def set_category_checked(
        self, list_id: str, category: str, checked: bool, *, include_uncategorized: bool
    ) -> int:
        ingredient_category = (
            select(Ingredient.category)
            .where(Ingredient.id == ShoppingListItemRow.ingredient_id)
            .correlate(ShoppingListItemRow)
            .scalar_subquery()
        )
        resolved = func.coalesce(ingredient_category, ShoppingListItemRow.category)
        predicate = resolved == category
        if include_uncategorized:
            predicate = or_(predicate, resolved.is_(None))
        async with self._session_factory() as session:
            result = await session.execute(
                update(ShoppingListItemRow)
                .where(ShoppingListItemRow.shopping_list_id == list_id, predicate)
                .values(checked=checked)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return int(result.rowcount or 0)


class SqlPriceBaselineReader(_SessionBacked):
    async def list_baselines(self) -> List[PriceBaseline]:
        async with self._session_factory() as session:
            rows = (await session.execute(select(PriceBaselineRow))).scalars().all()
            return [
                PriceBaseline(
                    ingredient_category=row.ingredient_category,
                    store=row.store,
                    unit=row.unit,
                    price_per_unit=row.price_per_unit,
                )
                for row in rows
            ]


def preferences_from_row(row: UserPreferencesRow) -> PlanningPreferences:
    return PlanningPreferences(
        household_size=row.household_size,
        meals_per_day=row.meals_per_day,
        days=row.days,
        is_vegetarian=row.is_vegetarian,
        is_dairy_free=row.is_dairy_free,
        dislikes=row.dislikes or "",
        weeknight_max_minutes=row.weeknight_max_minutes,
        weekly_time_budget_minutes=row.weekly_time_budget_minutes,
        prioritize_weeknights=row.prioritize_weeknights,
    )


class SqlPreferencesStore(_SessionBacked):
    async def get_preferences(self, user_id: str) -> Optional[PlanningPreferences]:
        async with self._session_factory() as session:
            row = await session.get(UserPreferencesRow, user_id)
            return preferences_from_row(row) if row else None

    async def save_preferences(
        self, user_id: str, preferences: PlanningPreferences
    ) -> PlanningPreferences:
        async with self._session_factory() as session:
            row = await session.get(UserPreferencesRow, user_id)
            if row is None:
                row = UserPreferencesRow(user_id=user_id)
                session.add(row)
            for field in fields(PlanningPreferences):
                setattr(row, field.name, getattr(preferences, field.name))
            try:
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            return preferences_from_row(row)


class SqlPantryReader(_SessionBacked):
    async def list_pantry(self, user_id: str) -> List[PantryItem]:
        stmt = select(PantryItemRow).where(PantryItemRow.user_id == user_id)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [
                PantryItem(ingredient_id=row.ingredient_id, quantity=row.quantity, unit=row.unit)
                for row in rows
            ]
