"""Per-owner recipe books for long-lived processes."""

from collections import OrderedDict
from dataclasses import dataclass, field

from smart_kitchen.domain.recipes import Category
from smart_kitchen.services.recipes import RecipeStore, RecipeSyncService


@dataclass
class RecipeBookRegistry:
    """Creates and caches one synchronization service per owner.

    At most ``max_books`` books are kept; the least recently used one is
    dropped first. A dropped book finishes its in-flight commands on its own and
    the owner's next request starts from an empty book that needs a refresh.
    """

    store: RecipeStore
    default_category: Category = Category.DINNER
    max_books: int = 1024
    _books: OrderedDict[str, RecipeSyncService] = field(
        default_factory=OrderedDict, init=False, repr=False
    )

    def book_for(self, owner_id: str | None) -> RecipeSyncService:
        """Return the recipe book for an owner; anonymous callers get a fresh one."""
        if not owner_id:
            return self._new_book(None)
        book = self._books.get(owner_id)
        if book is not None:
            self._books.move_to_end(owner_id)
            return book
        book = self._new_book(owner_id)
        self._books[owner_id] = book
        while len(self._books) > self.max_books:
            self._books.popitem(last=False)
        return book

    def _new_book(self, owner_id: str | None) -> RecipeSyncService:
        return RecipeSyncService(
            store=self.store,
            owner_id=owner_id,
            default_category=self.default_category,
        )
