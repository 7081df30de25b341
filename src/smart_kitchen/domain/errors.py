"""Error taxonomy for recipe synchronization."""

from enum import StrEnum


class RecipeError(Exception):
    """Base class for recipe book failures."""

    kind = "error"


class ValidationError(RecipeError):
    """Raised when a draft or record is malformed."""

    kind = "validation"


class UnauthenticatedError(RecipeError):
    """Raised when a command needs an owner but no identity is available."""

    kind = "unauthenticated"

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


class NotFoundError(RecipeError):
    """Raised when a recipe id is not present in the local collection."""

    kind = "not_found"

    def __init__(self, recipe_id: str) -> None:
        super().__init__(f"Recipe {recipe_id} not found")
        self.recipe_id = recipe_id


class RemoteErrorKind(StrEnum):
    """Classification of remote store failures."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    PERMISSION_DENIED = "permission_denied"
    UNKNOWN = "unknown"


class RemoteError(RecipeError):
    """Raised by a remote store adapter when a call fails."""

    kind = "remote"

    def __init__(
        self, kind: RemoteErrorKind, message: str = "Remote store request failed"
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.message} ({self.kind})"
