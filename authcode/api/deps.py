"""FastAPI dependencies wiring auth code components to the current request.

Usage in a host application:

    @router.get("/records/confirm")
    async def confirm(validator: AuthCodeValidatorDep) -> dict:
        auth_code = await validator.validate_and_execute()
        return {"uid": auth_code.reference_table_uid}

Session storage requires Starlette's SessionMiddleware on the application.
All components of one request share one database session, so the record
mutation and the code invalidation commit or roll back together.
"""

from typing import Annotated

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from authcode.core.config import settings
from authcode.core.database import get_db
from authcode.core.errors import ConfigurationError
from authcode.repositories.auth_code_repository import AuthCodeRepository
from authcode.services.auth_code_factory import AuthCodeFactory
from authcode.services.auth_code_validator import AuthCodeValidator
from authcode.services.collaborators import MappingRequestParams, MappingSessionBridge
from authcode.services.record_actions import (
    ConfiguredSchemaLookup,
    SqlRecordActionExecutor,
)

logger = structlog.get_logger()

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_request_params(request: Request) -> MappingRequestParams:
    """Expose query parameters, then form fields, as a RequestParamSource."""
    sources = [request.query_params]
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_CONTENT_TYPES):
        sources.append(await request.form())
    return MappingRequestParams(*sources)


def get_session_bridge(request: Request) -> MappingSessionBridge:
    """Expose the request session as a SessionBridge.

    Raises:
        ConfigurationError: If SessionMiddleware is not installed.
    """
    if "session" not in request.scope:
        logger.error("session_middleware_missing", path=request.url.path)
        raise ConfigurationError(
            "Auth code session storage requires SessionMiddleware to be installed."
        )
    return MappingSessionBridge(request.session, settings.auth_code_session_key)


def get_auth_code_store(db: DbSession) -> AuthCodeRepository:
    """Auth code repository bound to the request's database session."""
    return AuthCodeRepository(
        db, auto_delete_expired=settings.auth_code_auto_delete_expired
    )


def get_schema_lookup() -> ConfiguredSchemaLookup:
    """Schema lookup built from the ``record_tables`` setting."""
    return ConfiguredSchemaLookup(settings.record_tables)


AuthCodeStoreDep = Annotated[AuthCodeRepository, Depends(get_auth_code_store)]
SchemaLookupDep = Annotated[ConfiguredSchemaLookup, Depends(get_schema_lookup)]


def get_action_executor(
    db: DbSession, schema: SchemaLookupDep
) -> SqlRecordActionExecutor:
    """Record action executor sharing the request's database session."""
    return SqlRecordActionExecutor(db, schema)


def get_auth_code_validator(
    store: AuthCodeStoreDep,
    executor: Annotated[SqlRecordActionExecutor, Depends(get_action_executor)],
    session: Annotated[MappingSessionBridge, Depends(get_session_bridge)],
    request_params: Annotated[MappingRequestParams, Depends(get_request_params)],
) -> AuthCodeValidator:
    """Validator configured from settings for the current request."""
    return AuthCodeValidator(
        store,
        executor,
        session,
        request_params,
        options=settings.validator_options(),
    )


def get_auth_code_factory(
    store: AuthCodeStoreDep, schema: SchemaLookupDep
) -> AuthCodeFactory:
    """Factory configured from settings for the current request."""
    return AuthCodeFactory(
        store,
        schema,
        expiry_time=settings.auth_code_expiry_time,
    )


AuthCodeValidatorDep = Annotated[AuthCodeValidator, Depends(get_auth_code_validator)]
AuthCodeFactoryDep = Annotated[AuthCodeFactory, Depends(get_auth_code_factory)]
