"""Configuration read from the environment."""

from typing import Annotated

from pydantic import AliasChoices, Field, PositiveFloat
from pydantic_settings import BaseSettings, SettingsConfigDict

from .repository import DEFAULT_REPOSITORY_URL


class Settings(BaseSettings):
    """Frontline settings, taken from ``FRONTLINE_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="FRONTLINE_",
        case_sensitive=False,
        extra="ignore",
    )

    composer_file: Annotated[
        str,
        Field(
            default="composer.json",
            validation_alias=AliasChoices("COMPOSER", "FRONTLINE_COMPOSER_FILE"),
            description="Manifest to update, Composer's COMPOSER variable is honoured.",
        ),
    ]

    repository_url: Annotated[
        str,
        Field(
            default=DEFAULT_REPOSITORY_URL,
            description="Composer repository queried for new releases.",
        ),
    ]

    timeout: Annotated[
        PositiveFloat,
        Field(default=30.0, description="HTTP timeout in seconds."),
    ]

    php_version: Annotated[
        str | None,
        Field(
            default=None,
            description="Target PHP version; overrides config.platform.php and the local php.",
        ),
    ]

    log_level: Annotated[
        str,
        Field(default="WARNING", description="Level of the frontline logger."),
    ]
