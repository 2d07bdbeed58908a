from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "CardDrop"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/carddrop"

    # Collapses every cooldown to zero
    test_mode: bool = False

    # Warm the artwork cache for the whole catalog at startup
    preload_images: bool = False

    draw_cooldown_seconds: int = 15 * 60
    pack_cooldown_seconds: int = 10 * 60
    pick_cooldown_seconds: int = 30 * 60

    pack_size: int = 5

    catalog_path: str = "data/catalog.json"

    image_timeout_seconds: float = 30.0

    @property
    def draw_cooldown(self) -> timedelta:
        return self._cooldown(self.draw_cooldown_seconds)

    @property
    def pack_cooldown(self) -> timedelta:
        return self._cooldown(self.pack_cooldown_seconds)

    @property
    def pick_cooldown(self) -> timedelta:
        return self._cooldown(self.pick_cooldown_seconds)

    def _cooldown(self, seconds: int) -> timedelta:
        if self.test_mode:
            return timedelta(0)
        return timedelta(seconds=seconds)


settings = Settings()


# =============================================================================
# FIXED GAME CONSTANTS
# =============================================================================

# Owned-instance identifiers look like "po1a2b"
INSTANCE_ID_PREFIX = "po"
INSTANCE_ID_LENGTH = 4
INSTANCE_ID_MAX_ATTEMPTS = 20

PICK_CHOICES = 3

BINDER_ROWS_PER_PAGE = 10
SEARCH_RESULTS_PER_PAGE = 5

# Composite pick image layout (pixels)
CARD_IMAGE_WIDTH = 500
CARD_IMAGE_HEIGHT = 700
CARD_IMAGE_SPACING = 50

IMAGE_PRELOAD_BATCH_SIZE = 10
