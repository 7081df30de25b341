"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import ClientOptions, create_client

from smart_kitchen.adapters.supabase_recipe_store import SupabaseRecipeStore
from smart_kitchen.config import Settings
from smart_kitchen.services.recipes import RecipeStore
from smart_kitchen.services.registry import RecipeBookRegistry


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    recipe_store: RecipeStore
    recipe_books: RecipeBookRegistry


def client_options(settings: Settings) -> ClientOptions:
    """Supabase client options with the request timeout applied at the transport."""
    return ClientOptions(postgrest_client_timeout=settings.remote_timeout_seconds)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url,
        resolved_settings.supabase_service_key,
        options=client_options(resolved_settings),
    )
    recipe_store = SupabaseRecipeStore(
        client=supabase_client,
        table=resolved_settings.recipes_table,
    )
    recipe_books = RecipeBookRegistry(
        store=recipe_store,
        default_category=resolved_settings.default_category,
        max_books=resolved_settings.max_cached_books,
    )
    return AppContainer(
        settings=resolved_settings,
        recipe_store=recipe_store,
        recipe_books=recipe_books,
    )
