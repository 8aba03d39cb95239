from __future__ import annotations


class MealPlannerError(Exception):
    """Base class for failures reported by the planning and shopping engines."""

    code = "MEAL_PLANNER_ERROR"
    status_code = 500

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message())
        self.message = str(self)

    def default_message(self) -> str:
        return "Meal planner request failed"


class NotFound(MealPlannerError):
    code = "NOT_FOUND"
    status_code = 404


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    status_code = 401

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User '{user_id}' not found")


class PlanNotFound(NotFound):
    code = "PLAN_NOT_FOUND"

    def __init__(self, plan_id: str) -> None:
        self.plan_id = plan_id
        super().__init__(f"Meal plan '{plan_id}' not found")


class ShoppingListNotFound(NotFound):
    code = "SHOPPING_LIST_NOT_FOUND"

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"Shopping list for '{reference}' not found")


class ShoppingListItemNotFound(NotFound):
    code = "SHOPPING_LIST_ITEM_NOT_FOUND"

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Shopping list item '{item_id}' not found")


class PlanLimitExceeded(MealPlannerError):
    code = "PLAN_LIMIT_EXCEEDED"
    status_code = 403

    def __init__(self, requested_days: int, max_days: int, tier: str) -> None:
        self.requested_days = requested_days
        self.max_days = max_days
        self.tier = tier
        super().__init__(
            f"Your {tier} plan allows up to {max_days} days; {requested_days} were requested"
        )


class PreferenceConflict(MealPlannerError):
    code = "PREFERENCE_CONFLICT"
    status_code = 400


class NoRecipesAvailable(PreferenceConflict):
    code = "NO_RECIPES_AVAILABLE"

    def default_message(self) -> str:
        return "No recipes available for the selected dietary preferences"


class NoRecipesMatchPreferences(PreferenceConflict):
    code = "NO_RECIPES_MATCH_PREFERENCES"

    def default_message(self) -> str:
        return "No recipes match your preferences. Please adjust your dislikes."


class NoRecipesForSlot(PreferenceConflict):
    code = "NO_RECIPES_FOR_MEAL_TYPE"

    def __init__(self, meal_type: str) -> None:
        self.meal_type = meal_type
        super().__init__(f"No recipes available for {meal_type}")


class Unauthorized(MealPlannerError):
    code = "UNAUTHORIZED"
    status_code = 403

    def default_message(self) -> str:
        return "Forbidden"


class TransientReadFailure(MealPlannerError):
    code = "TRANSIENT_READ_FAILURE"
    status_code = 503


class PlanValidationFailed(MealPlannerError):
    code = "PLAN_VALIDATION_FAILED"
    status_code = 500


class ShoppingListConflict(MealPlannerError):
    code = "SHOPPING_LIST_CONFLICT"
    status_code = 409

    def __init__(self, plan_id: str) -> None:
        self.plan_id = plan_id
        super().__init__(f"Shopping list for plan '{plan_id}' already exists")


class UnknownUnitError(ValueError):
    def __init__(self, unit: str, valid_units: list[str]) -> None:
        self.unit = unit
        super().__init__(f"Unknown unit: {unit}. Valid units are: {', '.join(valid_units)}")
