"""Pydantic models for the recipe HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from smart_kitchen.domain.recipes import (
    Category,
    ErrorInfo,
    Recipe,
    RecipeBookState,
    RecipeDraft,
)


class RecipeDraftIn(BaseModel):
    """Request body for creating a recipe."""

    name: str
    category: Category | None = None
    ingredients: list[str] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)

    def to_draft(self) -> RecipeDraft:
        """Convert the payload into a domain draft."""
        return RecipeDraft(
            name=self.name,
            category=self.category,
            ingredients=tuple(self.ingredients),
            steps=tuple(self.steps),
        )


class RecipeOut(BaseModel):
    """Recipe as returned by the API."""

    id: str
    user_id: str
    name: str
    category: Category
    ingredients: list[str]
    steps: list[str]
    created_at: datetime

    @classmethod
    def from_domain(cls, recipe: Recipe) -> "RecipeOut":
        return cls(
            id=recipe.id,
            user_id=recipe.owner_id,
            name=recipe.name,
            category=recipe.category,
            ingredients=list(recipe.ingredients),
            steps=list(recipe.steps),
            created_at=recipe.created_at,
        )


class ErrorInfoOut(BaseModel):
    """Last recorded remote failure."""

    operation: str
    kind: str
    message: str

    @classmethod
    def from_domain(cls, info: ErrorInfo) -> "ErrorInfoOut":
        return cls(operation=info.operation, kind=info.kind, message=info.message)


class RecipeBookOut(BaseModel):
    """Snapshot of a user's recipe book."""

    records: list[RecipeOut]
    is_loading: bool
    last_error: ErrorInfoOut | None = None

    @classmethod
    def from_domain(cls, state: RecipeBookState) -> "RecipeBookOut":
        return cls(
            records=[RecipeOut.from_domain(recipe) for recipe in state.records],
            is_loading=state.is_loading,
            last_error=(
                ErrorInfoOut.from_domain(state.last_error)
                if state.last_error
                else None
            ),
        )
