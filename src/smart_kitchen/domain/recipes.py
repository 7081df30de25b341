"""Domain models for recipe records."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from uuid import uuid4

from smart_kitchen.domain.errors import ValidationError

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MICROSECOND = timedelta(microseconds=1)


class Category(StrEnum):
    """Meal category a recipe belongs to."""

    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"


@dataclass(frozen=True)
class RecipeDraft:
    """User input for a recipe that has not been created yet."""

    name: str
    ingredients: tuple[str, ...]
    steps: tuple[str, ...]
    category: Category | None = None

    def cleaned(self) -> "RecipeDraft":
        """Return a copy with a trimmed name and blank entries discarded."""
        return replace(
            self,
            name=self.name.strip(),
            ingredients=_non_blank(self.ingredients),
            steps=_non_blank(self.steps),
        )

    def is_valid_for_persistence(self) -> bool:
        """Return True when name, ingredients and steps all carry content."""
        return _is_valid(self.name, self.ingredients, self.steps)


@dataclass(frozen=True)
class Recipe:
    """A persisted recipe owned by a single user."""

    id: str
    owner_id: str
    name: str
    category: Category
    ingredients: tuple[str, ...]
    steps: tuple[str, ...]
    created_at: datetime

    def __post_init__(self) -> None:
        if not self.owner_id:
            raise ValidationError("Recipe requires an owner id")
        if not self.id:
            raise ValidationError("Recipe requires an id")

    @classmethod
    def from_draft(  # noqa: PLR0913
        cls,
        draft: RecipeDraft,
        owner_id: str | None,
        *,
        default_category: Category = Category.DINNER,
        recipe_id: str | None = None,
        created_at: datetime | None = None,
    ) -> "Recipe":
        """Build a new record from a draft for the given owner."""
        if not owner_id:
            raise ValidationError("Cannot create a recipe without an owner")
        cleaned = draft.cleaned()
        if not cleaned.is_valid_for_persistence():
            raise ValidationError(
                "Recipe needs a name, at least one ingredient and one step"
            )
        return cls(
            id=recipe_id or str(uuid4()),
            owner_id=owner_id,
            name=cleaned.name,
            category=cleaned.category or default_category,
            ingredients=cleaned.ingredients,
            steps=cleaned.steps,
            created_at=created_at or datetime.now(tz=UTC),
        )

    def is_valid_for_persistence(self) -> bool:
        """Return True when name, ingredients and steps all carry content."""
        return _is_valid(self.name, self.ingredients, self.steps)


@dataclass(frozen=True)
class ErrorInfo:
    """Last failure recorded by the recipe book."""

    operation: str
    kind: str
    message: str


@dataclass(frozen=True)
class RecipeBookState:
    """Immutable snapshot of a recipe book."""

    records: tuple[Recipe, ...] = field(default_factory=tuple)
    is_loading: bool = False
    last_error: ErrorInfo | None = None


def order_key(recipe: Recipe) -> tuple[int, str]:
    """Sort key placing newest recipes first, ties broken by id."""
    micros = (recipe.created_at - _EPOCH) // _ONE_MICROSECOND
    return (-micros, recipe.id)


def _non_blank(entries: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(entry.strip() for entry in entries if entry.strip())


def _is_valid(name: str, ingredients: tuple[str, ...], steps: tuple[str, ...]) -> bool:
    return bool(name.strip() and _non_blank(ingredients) and _non_blank(steps))
