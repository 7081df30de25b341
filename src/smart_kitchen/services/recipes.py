"""Recipe book synchronization between local state and the remote store."""

import asyncio
import bisect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from smart_kitchen.domain.errors import (
    NotFoundError,
    RemoteError,
    UnauthenticatedError,
    ValidationError,
)
from smart_kitchen.domain.recipes import (
    Category,
    ErrorInfo,
    Recipe,
    RecipeBookState,
    RecipeDraft,
    order_key,
)

logger = logging.getLogger(__name__)

StateListener = Callable[[RecipeBookState], None]


class RecipeStore(Protocol):
    """Remote persistence interface for recipes, scoped by owner."""

    async def put(self, recipe: Recipe) -> None:
        """Insert or replace a recipe by id."""

    async def list_by_owner(self, owner_id: str) -> list[Recipe]:
        """Return every recipe owned by the given user, in any order."""

    async def delete(self, recipe_id: str) -> None:
        """Remove a recipe by id; missing ids are ignored."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _new_id() -> str:
    return str(uuid4())


@dataclass
class RecipeSyncService:
    """Owns one user's ordered recipe collection and mediates every mutation.

    Local changes are applied before the remote call is awaited and rolled back
    unless the store confirms them. All state changes happen between suspension
    points on the event loop, so each optimistic step and each confirm/rollback
    step is atomic with respect to other commands.

    A listing can be older than a create or delete that settled while it was in
    flight. Such mutations are stamped with the refresh sequence current when
    they settled and reapplied on top of any listing issued no later than that.
    """

    store: RecipeStore
    owner_id: str | None
    default_category: Category = Category.DINNER
    clock: Callable[[], datetime] = _utcnow
    id_factory: Callable[[], str] = _new_id
    _records: list[Recipe] = field(default_factory=list, init=False, repr=False)
    _last_error: ErrorInfo | None = field(default=None, init=False, repr=False)
    _listeners: list[StateListener] = field(
        default_factory=list, init=False, repr=False
    )
    _issued_refresh: int = field(default=0, init=False, repr=False)
    _settled_refresh: int = field(default=0, init=False, repr=False)
    _refreshes_in_flight: int = field(default=0, init=False, repr=False)
    _pending_writes: dict[str, asyncio.Future[bool]] = field(
        default_factory=dict, init=False, repr=False
    )
    _pending_deletes: set[str] = field(default_factory=set, init=False, repr=False)
    # recipe id -> (refresh sequence when settled, stored recipe or None if deleted)
    _settled_mutations: dict[str, tuple[int, Recipe | None]] = field(
        default_factory=dict, init=False, repr=False
    )

    @property
    def records(self) -> tuple[Recipe, ...]:
        """Recipes ordered newest first."""
        return tuple(self._records)

    @property
    def is_loading(self) -> bool:
        """True while any refresh is in flight."""
        return self._refreshes_in_flight > 0

    @property
    def last_error(self) -> ErrorInfo | None:
        """The most recent remote failure, if not cleared."""
        return self._last_error

    @property
    def state(self) -> RecipeBookState:
        """Immutable snapshot of the current state."""
        return RecipeBookState(
            records=self.records,
            is_loading=self.is_loading,
            last_error=self._last_error,
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for state changes and return an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get(self, recipe_id: str) -> Recipe:
        """Return a recipe from the local collection."""
        _, recipe = self._find(recipe_id)
        return recipe

    def clear_error(self) -> None:
        """Dismiss the last recorded error."""
        if self._last_error is not None:
            self._last_error = None
            self._notify()

    async def refresh(self) -> tuple[Recipe, ...]:
        """Reload the collection from the remote store.

        Once a refresh has completed, successfully or not, responses from
        refreshes issued before it are discarded.
        """
        owner_id = self._require_owner()
        self._issued_refresh += 1
        sequence = self._issued_refresh
        self._refreshes_in_flight += 1
        self._notify()
        try:
            fetched = await self.store.list_by_owner(owner_id)
        except RemoteError as exc:
            if sequence > self._settled_refresh:
                self._settled_refresh = sequence
                self._record_error("refresh", "Failed to load recipes", exc)
            else:
                logger.info("Ignoring failure of stale refresh #%s", sequence)
            raise
        else:
            if sequence > self._settled_refresh:
                self._settled_refresh = sequence
                self._records = self._reconcile(owner_id, sequence, fetched)
                self._last_error = None
            else:
                logger.info(
                    "Discarding stale refresh #%s (already settled #%s)",
                    sequence,
                    self._settled_refresh,
                )
        finally:
            self._refreshes_in_flight -= 1
            self._notify()
        return self.records

    async def create(self, draft: RecipeDraft) -> Recipe:
        """Create a recipe, showing it locally before the store confirms it."""
        owner_id = self._require_owner()
        recipe = Recipe.from_draft(
            draft,
            owner_id,
            default_category=self.default_category,
            recipe_id=self.id_factory(),
            created_at=self.clock(),
        )
        if any(existing.id == recipe.id for existing in self._records):
            raise ValidationError(f"Recipe id {recipe.id} already exists")

        self._insert(recipe)
        written: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._pending_writes[recipe.id] = written
        self._notify()
        confirmed = False
        try:
            await self.store.put(recipe)
            confirmed = True
        except RemoteError as exc:
            self._record_error("create", "Failed to save recipe", exc)
            raise
        finally:
            self._pending_writes.pop(recipe.id, None)
            written.set_result(confirmed)
            if confirmed:
                self._remember(recipe.id, recipe)
            else:
                self._remove(recipe.id)
                self._notify()
        logger.info("Saved recipe %s for owner %s", recipe.id, owner_id)
        return recipe

    async def delete(self, recipe_id: str) -> None:
        """Delete a recipe, hiding it locally before the store confirms it."""
        self._require_owner()
        index, recipe = self._find(recipe_id)
        del self._records[index]
        self._pending_deletes.add(recipe_id)
        self._notify()
        confirmed = False
        try:
            pending = self._pending_writes.get(recipe_id)
            if pending is not None and not await asyncio.shield(pending):
                confirmed = True
                logger.info("Recipe %s was never stored; nothing to delete", recipe_id)
                return
            await self.store.delete(recipe_id)
            confirmed = True
        except RemoteError as exc:
            self._record_error("delete", "Failed to delete recipe", exc)
            raise
        finally:
            self._pending_deletes.discard(recipe_id)
            if confirmed:
                self._remember(recipe_id, None)
            else:
                if all(item.id != recipe_id for item in self._records):
                    self._insert(recipe)
                self._notify()
        logger.info("Deleted recipe %s", recipe_id)

    def _require_owner(self) -> str:
        if not self.owner_id:
            raise UnauthenticatedError()
        return self.owner_id

    def _find(self, recipe_id: str) -> tuple[int, Recipe]:
        for index, recipe in enumerate(self._records):
            if recipe.id == recipe_id:
                return index, recipe
        raise NotFoundError(recipe_id)

    def _insert(self, recipe: Recipe) -> None:
        bisect.insort(self._records, recipe, key=order_key)

    def _remove(self, recipe_id: str) -> None:
        self._records = [item for item in self._records if item.id != recipe_id]

    def _remember(self, recipe_id: str, recipe: Recipe | None) -> None:
        # Without a refresh in flight every later listing already sees this.
        if self._refreshes_in_flight:
            self._settled_mutations[recipe_id] = (self._issued_refresh, recipe)

    def _reconcile(
        self, owner_id: str, sequence: int, fetched: list[Recipe]
    ) -> list[Recipe]:
        visible: dict[str, Recipe] = {}
        for recipe in fetched:
            if recipe.owner_id != owner_id:
                logger.warning(
                    "Dropping recipe %s owned by another user from listing", recipe.id
                )
                continue
            if recipe.id in self._pending_deletes:
                continue
            visible[recipe.id] = recipe
        for recipe_id, (settled_at, recipe) in list(self._settled_mutations.items()):
            if settled_at < sequence:
                del self._settled_mutations[recipe_id]
            elif recipe is None:
                visible.pop(recipe_id, None)
            else:
                visible[recipe_id] = recipe
        for recipe in self._records:
            if recipe.id in self._pending_writes and recipe.id not in visible:
                visible[recipe.id] = recipe
        return sorted(visible.values(), key=order_key)

    def _record_error(self, operation: str, prefix: str, exc: RemoteError) -> None:
        logger.warning("%s for owner %s: %s", prefix, self.owner_id, exc)
        self._last_error = ErrorInfo(
            operation=operation,
            kind=str(exc.kind),
            message=f"{prefix}: {exc.message}",
        )

    def _notify(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Recipe book listener failed")
