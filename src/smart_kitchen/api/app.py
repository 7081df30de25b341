"""FastAPI application factory."""

import logging

from fastapi import Depends, FastAPI, Header, Request, Response, status
from fastapi.responses import JSONResponse

from smart_kitchen.api.models import RecipeBookOut, RecipeDraftIn, RecipeOut
from smart_kitchen.app_logging import configure_logging
from smart_kitchen.containers import AppContainer
from smart_kitchen.domain.errors import (
    NotFoundError,
    RecipeError,
    RemoteError,
    RemoteErrorKind,
    UnauthenticatedError,
    ValidationError,
)
from smart_kitchen.services.recipes import RecipeSyncService

_REMOTE_STATUS = {
    RemoteErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    RemoteErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
}


def _recipe_book(
    request: Request, x_user_id: str | None = Header(default=None)
) -> RecipeSyncService:
    """Resolve the caller's recipe book from the upstream identity header."""
    container: AppContainer = request.app.state.container
    return container.recipe_books.book_for(x_user_id)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container

    @app.exception_handler(RecipeError)
    async def recipe_error_handler(request: Request, exc: RecipeError) -> JSONResponse:
        """Translate recipe book failures into HTTP errors."""
        if isinstance(exc, ValidationError):
            status_code = 422
        elif isinstance(exc, UnauthenticatedError):
            status_code = status.HTTP_401_UNAUTHORIZED
        elif isinstance(exc, NotFoundError):
            status_code = status.HTTP_404_NOT_FOUND
        elif isinstance(exc, RemoteError):
            status_code = _REMOTE_STATUS.get(exc.kind, status.HTTP_502_BAD_GATEWAY)
        else:
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return JSONResponse(
            status_code=status_code,
            content={"error": str(exc.kind), "detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/recipes")
    async def get_recipe_book(
        book: RecipeSyncService = Depends(_recipe_book),
    ) -> RecipeBookOut:
        """Return the caller's recipe book without contacting the store."""
        return RecipeBookOut.from_domain(book.state)

    @app.post("/recipes/refresh")
    async def refresh_recipes(
        book: RecipeSyncService = Depends(_recipe_book),
    ) -> RecipeBookOut:
        """Reload the caller's recipes from the store."""
        await book.refresh()
        return RecipeBookOut.from_domain(book.state)

    @app.delete("/recipes/error")
    async def dismiss_error(
        book: RecipeSyncService = Depends(_recipe_book),
    ) -> RecipeBookOut:
        """Clear the last recorded error."""
        book.clear_error()
        return RecipeBookOut.from_domain(book.state)

    @app.get("/recipes/{recipe_id}")
    async def get_recipe(
        recipe_id: str, book: RecipeSyncService = Depends(_recipe_book)
    ) -> RecipeOut:
        """Return a single recipe for the detail view."""
        return RecipeOut.from_domain(book.get(recipe_id))

    @app.post("/recipes", status_code=status.HTTP_201_CREATED)
    async def create_recipe(
        payload: RecipeDraftIn, book: RecipeSyncService = Depends(_recipe_book)
    ) -> RecipeOut:
        """Create a recipe for the caller."""
        recipe = await book.create(payload.to_draft())
        logger.info("Created recipe %s via API", recipe.id)
        return RecipeOut.from_domain(recipe)

    @app.delete("/recipes/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_recipe(
        recipe_id: str, book: RecipeSyncService = Depends(_recipe_book)
    ) -> Response:
        """Delete one of the caller's recipes."""
        await book.delete(recipe_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app
