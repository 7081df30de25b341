"""Supabase implementation of the remote recipe store."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TypeVar

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from smart_kitchen.domain.errors import RemoteError, RemoteErrorKind, ValidationError
from smart_kitchen.domain.recipes import Category, Recipe
from smart_kitchen.services.recipes import RecipeStore

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_PERMISSION_CODES = {"42501", "PGRST301", "PGRST302", "401", "403"}


@dataclass
class SupabaseRecipeStore(RecipeStore):
    """Supabase-backed recipe documents keyed by id and filtered by userId.

    The supabase client is synchronous, so each request runs in a worker thread.
    Request timeouts are enforced by the client's HTTP transport
    (``ClientOptions.postgrest_client_timeout``), which aborts the request.
    """

    client: Client
    table: str = "recipes"

    async def put(self, recipe: Recipe) -> None:
        """Upsert a recipe document."""
        payload = _to_row(recipe)
        await self._call(
            "put",
            lambda: self.client.table(self.table)
            .upsert(payload, on_conflict="id")
            .execute(),
        )

    async def list_by_owner(self, owner_id: str) -> list[Recipe]:
        """Return all recipe documents for an owner."""
        response = await self._call(
            "list_by_owner",
            lambda: self.client.table(self.table)
            .select("*")
            .eq("userId", owner_id)
            .execute(),
        )
        recipes = []
        for row in response.data or []:
            recipe = _parse_recipe(row)
            if recipe is not None:
                recipes.append(recipe)
        return recipes

    async def delete(self, recipe_id: str) -> None:
        """Delete a recipe document; a missing id is a no-op."""
        await self._call(
            "delete",
            lambda: self.client.table(self.table).delete().eq("id", recipe_id).execute(),
        )

    async def _call(self, operation: str, request: Callable[[], _T]) -> _T:
        try:
            return await asyncio.to_thread(request)
        except APIError as exc:
            kind = (
                RemoteErrorKind.PERMISSION_DENIED
                if str(exc.code) in _PERMISSION_CODES
                else RemoteErrorKind.UNKNOWN
            )
            raise RemoteError(kind, exc.message or f"{operation} rejected") from exc
        except httpx.TimeoutException as exc:
            raise RemoteError(
                RemoteErrorKind.TIMEOUT, f"{operation} timed out"
            ) from exc
        except httpx.TransportError as exc:
            raise RemoteError(RemoteErrorKind.NETWORK, str(exc) or operation) from exc
        except Exception as exc:
            logger.exception("Unexpected Supabase failure during %s", operation)
            raise RemoteError(RemoteErrorKind.UNKNOWN, str(exc) or operation) from exc


def _to_row(recipe: Recipe) -> dict[str, object]:
    return {
        "id": recipe.id,
        "name": recipe.name,
        "category": str(recipe.category),
        "ingredients": list(recipe.ingredients),
        "steps": list(recipe.steps),
        "userId": recipe.owner_id,
        "createdAt": recipe.created_at.isoformat(),
    }


def _parse_recipe(row: dict[str, object]) -> Recipe | None:
    """Parse a recipe row, returning None for documents that are not usable."""
    try:
        created_raw = row["createdAt"]
        if not isinstance(created_raw, str):
            raise ValueError("createdAt must be an ISO timestamp")
        created_at = datetime.fromisoformat(created_raw)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return Recipe(
            id=str(row["id"]),
            owner_id=str(row.get("userId") or ""),
            name=str(row.get("name", "")),
            category=Category(row.get("category")),
            ingredients=tuple(str(item) for item in row.get("ingredients") or []),
            steps=tuple(str(item) for item in row.get("steps") or []),
            created_at=created_at,
        )
    except (KeyError, TypeError, ValueError, ValidationError) as exc:
        logger.warning("Skipping malformed recipe row %s: %s", row.get("id"), exc)
        return None
