from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .services.budget import ESTIMATE_DISCLAIMER, BudgetEstimate, StorePrice
from .services.domain import (
    CATEGORY_ORDER,
    Entitlements,
    MealPlan,
    PlanItem,
    PlanningPreferences,
    PlanRequest,
    ShoppingItem,
    ShoppingListRecord,
    TimePreferences,
)
from .services.units import format_quantity


class PlanGenerateRequest(BaseModel):
    startDate: Optional[date] = None
    days: Optional[int] = Field(default=None, ge=1, le=7)
    mealsPerDay: Optional[int] = Field(default=None, ge=1, le=3)
    householdSize: Optional[int] = Field(default=None, ge=1, le=20)
    isVegetarian: Optional[bool] = None
    isDairyFree: Optional[bool] = None
    dislikes: Optional[str] = Field(default=None, max_length=500)
    weeknightMaxMinutes: Optional[int] = Field(default=None, ge=1)
    weeklyTimeBudgetMinutes: Optional[int] = Field(default=None, ge=1)

    def to_plan_request(self, user_id: str) -> PlanRequest:
        return PlanRequest(
            user_id=user_id,
            start_date=self.startDate,
            days=self.days,
            meals_per_day=self.mealsPerDay,
            household_size=self.householdSize,
            is_vegetarian=self.isVegetarian,
            is_dairy_free=self.isDairyFree,
            dislikes=self.dislikes,
            time_preferences=TimePreferences(
                weeknight_max_minutes=self.weeknightMaxMinutes,
                weekly_time_budget_minutes=self.weeklyTimeBudgetMinutes,
            ),
        )


class PlanRecipeSummary(BaseModel):
    id: str
    title: str
    totalTimeMinutes: Optional[int] = None
    servingsDefault: int


class MealPlanItemResponse(BaseModel):
    id: str
    dayIndex: int
    mealType: str
    recipeId: str
    servings: int
    recipe: Optional[PlanRecipeSummary] = None

    @classmethod
    def from_domain(cls, item: PlanItem) -> "MealPlanItemResponse":
        recipe = None
        if item.recipe is not None:
            recipe = PlanRecipeSummary(
                id=item.recipe.id,
                title=item.recipe.title,
                totalTimeMinutes=item.recipe.effective_total_minutes,
                servingsDefault=item.recipe.servings_default,
            )
        return cls(
            id=item.id,
            dayIndex=item.day_index,
            mealType=item.meal_type,
            recipeId=item.recipe_id,
            servings=item.servings,
            recipe=recipe,
        )


class MealPlanResponse(BaseModel):
    id: str
    startDate: date
    days: int
    createdAt: Optional[datetime] = None
    items: List[MealPlanItemResponse] = []

    @classmethod
    def from_domain(cls, plan: MealPlan) -> "MealPlanResponse":
        return cls(
            id=plan.id,
            startDate=plan.start_date,
            days=plan.days,
            createdAt=plan.created_at,
            items=[MealPlanItemResponse.from_domain(item) for item in plan.items],
        )


class MealPlanListResponse(BaseModel):
    plans: List[MealPlanResponse]


class ShoppingListItemResponse(BaseModel):
    id: str
    ingredientId: Optional[str] = None
    name: str
    quantity: float
    unit: str
    formattedQuantity: str
    category: str
    checked: bool

    @classmethod
    def from_domain(cls, item: ShoppingItem) -> "ShoppingListItemResponse":
        return cls(
            id=item.id,
            ingredientId=item.ingredient_id,
            name=item.name,
            quantity=item.quantity,
            unit=item.unit,
            formattedQuantity=format_quantity(item.quantity, item.unit),
            category=item.resolved_category,
            checked=item.checked,
        )


class ShoppingListResponse(BaseModel):
    id: str
    planId: str
    createdAt: Optional[datetime] = None
    items: List[ShoppingListItemResponse]
    categories: Dict[str, List[ShoppingListItemResponse]]

    @classmethod
    def from_domain(cls, record: ShoppingListRecord) -> "ShoppingListResponse":
        items = [ShoppingListItemResponse.from_domain(item) for item in record.items]
        grouped: Dict[str, List[ShoppingListItemResponse]] = {}
        ordering = {category: index for index, category in enumerate(CATEGORY_ORDER)}
        for item in sorted(items, key=lambda i: (ordering.get(i.category, len(ordering)), i.category, i.name)):
            grouped.setdefault(item.category, []).append(item)
        return cls(
            id=record.id,
            planId=record.plan_id,
            createdAt=record.created_at,
            items=items,
            categories=grouped,
        )


class ShoppingListBuildResponse(BaseModel):
    shoppingListId: str


class ToggleItemResponse(BaseModel):
    itemId: str
    checked: bool


class CategoryCheckRequest(BaseModel):
    checked: bool


class CategoryCheckResponse(BaseModel):
    listId: str
    category: str
    checked: bool
    updated: int


class BudgetTotalsResponse(BaseModel):
    cheap: float
    standard: float
    premium: float


class StorePriceResponse(BaseModel):
    store: str
    totalPrice: float

    @classmethod
    def from_domain(cls, price: StorePrice) -> "StorePriceResponse":
        return cls(store=price.store, totalPrice=price.total)


class BudgetEstimateResponse(BaseModel):
    locked: bool
    totals: Optional[BudgetTotalsResponse] = None
    missingItemCount: Optional[int] = None
    confidence: Optional[str] = None
    storePrices: List[StorePriceResponse] = []
    cheapestStore: Optional[StorePriceResponse] = None
    disclaimer: Optional[str] = None

    @classmethod
    def from_domain(cls, estimate: BudgetEstimate) -> "BudgetEstimateResponse":
        if estimate.locked or estimate.totals is None:
            return cls(locked=True)
        cheapest = estimate.cheapest_store
        return cls(
            locked=False,
            totals=BudgetTotalsResponse(
                cheap=estimate.totals.cheap,
                standard=estimate.totals.standard,
                premium=estimate.totals.premium,
            ),
            missingItemCount=estimate.missing_item_count,
            confidence=estimate.confidence,
            storePrices=[StorePriceResponse.from_domain(price) for price in estimate.store_prices],
            cheapestStore=StorePriceResponse.from_domain(cheapest) if cheapest else None,
            disclaimer=ESTIMATE_DISCLAIMER,
        )


class PreferencesPayload(BaseModel):
    householdSize: int = Field(ge=1, le=10)
    mealsPerDay: int = Field(ge=1, le=3)
    days: int = Field(ge=1, le=7)
    isVegetarian: bool = False
    isDairyFree: bool = False
    dislikes: str = Field(default="", max_length=500)
    weeknightMaxMinutes: Optional[int] = Field(default=None, ge=1, le=600)
    weeklyTimeBudgetMinutes: Optional[int] = Field(default=None, ge=1, le=600)
    prioritizeWeeknights: bool = True

    def to_domain(self) -> PlanningPreferences:
        return PlanningPreferences(
            household_size=self.householdSize,
            meals_per_day=self.mealsPerDay,
            days=self.days,
            is_vegetarian=self.isVegetarian,
            is_dairy_free=self.isDairyFree,
            dislikes=self.dislikes,
            weeknight_max_minutes=self.weeknightMaxMinutes,
            weekly_time_budget_minutes=self.weeklyTimeBudgetMinutes,
            prioritize_weeknights=self.prioritizeWeeknights,
        )

    @classmethod
    def from_domain(cls, preferences: PlanningPreferences) -> "PreferencesPayload":
        return cls(
            householdSize=preferences.household_size,
            mealsPerDay=preferences.meals_per_day,
            days=preferences.days,
            isVegetarian=preferences.is_vegetarian,
            isDairyFree=preferences.is_dairy_free,
            dislikes=preferences.dislikes,
            weeknightMaxMinutes=preferences.weeknight_max_minutes,
            weeklyTimeBudgetMinutes=preferences.weekly_time_budget_minutes,
            prioritizeWeeknights=preferences.prioritize_weeknights,
        )


class EntitlementsResponse(BaseModel):
    tier: str
    maxPlanDays: int
    timePreferences: bool
    budgetEstimates: bool

    @classmethod
    def from_domain(cls, entitlements: Entitlements) -> "EntitlementsResponse":
        return cls(
            tier=entitlements.tier,
            maxPlanDays=entitlements.max_plan_days,
            timePreferences=entitlements.time_preferences,
            budgetEstimates=entitlements.budget_estimates,
        )


class MeResponse(BaseModel):
    sub: str
    email: Optional[str] = None
    entitlements: EntitlementsResponse
