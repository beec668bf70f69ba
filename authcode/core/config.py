"""Configuration loaded from environment variables.

Settings for the database, logging, auth code generation and validation
policy. Uses pydantic-settings for validation and .env file support.
"""

from typing import TYPE_CHECKING

from pydantic import BaseModel, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

from authcode.core.clock import utc_now
from authcode.core.errors import InvalidExpiryError
from authcode.core.relative_time import parse_relative_time

if TYPE_CHECKING:
    from authcode.services.auth_code_validator import ValidatorOptions

# Known insecure default password that must not be used in production
_INSECURE_DEFAULT_PASSWORD = "authcode_dev_password"  # nosec B105

DEFAULT_EXPIRY_TIME = "+1 day"


class TableControl(BaseModel):
    """Control columns of a table that record auth codes can act on.

    Attributes:
        disabled: Column that marks a row as hidden (1) or visible (0).
        deleted: Soft-delete column. Rows are hard deleted when empty.
        timestamp: Column holding the last-modified epoch seconds. Not
            touched when empty.
    """

    disabled: str = "hidden"
    deleted: str = ""
    timestamp: str = ""


def validate_expiry_time(expression: str) -> str:
    """Check that an expiry expression resolves to a future instant.

    Args:
        expression: Relative time expression, e.g. ``"+1 day"``.

    Returns:
        The unchanged expression.

    Raises:
        InvalidExpiryError: If it does not parse or is not in the future.
    """
    now = utc_now()
    if parse_relative_time(expression, now) <= now:
        raise InvalidExpiryError(
            expression, "The auth code expiry time must be in the future"
        )
    return expression


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "authcode"
    database_user: str = "authcode_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD
    # Used verbatim when set (e.g. sqlite+aiosqlite:///./authcode.db)
    database_url_override: str = ""

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Generation
    auth_code_expiry_time: str = DEFAULT_EXPIRY_TIME
    auth_code_auto_delete_expired: bool = True

    # Validation policy
    auth_code_is_optional: bool = False
    auth_code_force_record_deletion: bool = False
    auth_code_invalidate_after_access: bool = True
    auth_code_update_timestamp_on_activation: bool = True
    auth_code_request_param: str = "authCode"
    auth_code_form_prefix: str = ""
    auth_code_session_key: str = "authcode"

    # Tables record auth codes may reference, keyed by table name.
    # Env format: RECORD_TABLES='{"pages": {"disabled": "hidden"}}'
    record_tables: dict[str, TableControl] = {}

    @field_validator("auth_code_expiry_time")
    @classmethod
    def check_expiry_time(cls, value: str) -> str:
        """Fail fast on an expiry expression that can never produce a valid code.

        InvalidExpiryError is not a ValueError, so it surfaces as is instead
        of being folded into a pydantic ValidationError.
        """
        return validate_expiry_time(value)

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic.

        An override keeps its database and loses only its async driver.
        """
        if self.database_url_override:
            url = make_url(self.database_url_override)
            return url.set(drivername=url.get_backend_name()).render_as_string(
                hide_password=False
            )
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    def validator_options(self) -> "ValidatorOptions":
        """Build validator policy toggles from these settings.

        Returns:
            ValidatorOptions mirroring the ``auth_code_*`` policy fields.
        """
        from authcode.services.auth_code_validator import ValidatorOptions

        return ValidatorOptions(
            token_is_optional=self.auth_code_is_optional,
            force_record_deletion=self.auth_code_force_record_deletion,
            invalidate_after_access=self.auth_code_invalidate_after_access,
            update_timestamp_on_activation=self.auth_code_update_timestamp_on_activation,
            request_param_name=self.auth_code_request_param,
            form_values_prefix=self.auth_code_form_prefix,
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate production security requirements.

        Checks:
        - Database password must not be the default in production
        - Request parameter name must not be blank
        """
        if not self.auth_code_request_param.strip():
            msg = "AUTH_CODE_REQUEST_PARAM must not be blank."
            raise ValueError(msg)

        if (
            self.environment == "production"
            and not self.database_url_override
            and self.database_password == _INSECURE_DEFAULT_PASSWORD
        ):
            msg = (
                "Cannot use default database password in production. "
                "Set DATABASE_PASSWORD environment variable to a secure value."
            )
            raise ValueError(msg)

        return self


settings = Settings()
