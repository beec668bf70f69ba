"""Auth code validation and action dispatch.

Resolves a submitted auth code, performs the action it stands for and then
either invalidates it (default) or keeps it in the user's session so later
requests can use it without passing it again.

Stages:
    UNRESOLVED -> RESOLVED -> DISPATCHED -> INVALIDATED | SESSION_STORED
    UNRESOLVED -> REJECTED (no code and code not optional)
"""

import logging
from enum import Enum
from typing import assert_never

from pydantic import BaseModel, ConfigDict

from authcode.core.errors import InvalidTokenError
from authcode.models.auth_code import AuthCode, AuthCodeAction, AuthCodeType
from authcode.repositories.base import AuthCodeStore
from authcode.services.collaborators import (
    ActionExecutor,
    RequestParamSource,
    SessionBridge,
)

logger = logging.getLogger(__name__)


class ValidationStage(str, Enum):
    """Where the last validate_and_execute() call got to."""

    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    DISPATCHED = "dispatched"
    INVALIDATED = "invalidated"
    SESSION_STORED = "session_stored"
    REJECTED = "rejected"


class ValidatorOptions(BaseModel):
    """Policy toggles for AuthCodeValidator.

    Attributes:
        token_is_optional: A missing code yields None instead of an error.
        force_record_deletion: Hard delete rows for delete-record codes.
        invalidate_after_access: Delete the code (and associated codes)
            after use. When off, the code is kept in the session instead.
        update_timestamp_on_activation: Touch the row's timestamp column
            when enabling it.
        request_param_name: Request parameter carrying the code.
        form_values_prefix: Optional key the parameter is nested under.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    token_is_optional: bool = False
    force_record_deletion: bool = False
    invalidate_after_access: bool = True
    update_timestamp_on_activation: bool = True
    request_param_name: str = "authCode"
    form_values_prefix: str = ""


class AuthCodeValidator:
    """Validates auth codes and executes their actions."""

    def __init__(
        self,
        store: AuthCodeStore,
        executor: ActionExecutor,
        session: SessionBridge,
        request_params: RequestParamSource,
        *,
        options: ValidatorOptions | None = None,
    ) -> None:
        """Initialize the validator.

        Args:
            store: Auth code persistence.
            executor: Performs record enable/delete actions.
            session: Session storage for codes kept across requests.
            request_params: Source of the submitted code.
            options: Policy toggles. Defaults apply when omitted.
        """
        self._store = store
        self._executor = executor
        self._session = session
        self._request_params = request_params
        self.options = options or ValidatorOptions()
        self.stage = ValidationStage.UNRESOLVED

    def set_token_is_optional(self, value: bool) -> None:
        self.options.token_is_optional = bool(value)

    def set_force_record_deletion(self, value: bool) -> None:
        self.options.force_record_deletion = bool(value)

    def set_invalidate_after_access(self, value: bool) -> None:
        self.options.invalidate_after_access = bool(value)

    def set_update_timestamp_on_activation(self, value: bool) -> None:
        self.options.update_timestamp_on_activation = bool(value)

    async def get_submitted_code(self) -> AuthCode | None:
        """Resolve the code submitted with the current request.

        The request parameter wins; the session is consulted only when the
        parameter is blank or missing.

        Returns:
            The matching non-expired AuthCode, or None.
        """
        code = (
            self._request_params.get(
                self.options.request_param_name,
                self.options.form_values_prefix,
            )
            or ""
        ).strip()
        if not code:
            code = (self._session.get() or "").strip()
        if not code:
            return None
        return await self._store.find_by_code(
            code, for_update=self.options.invalidate_after_access
        )

    async def invalidate(self, auth_code: AuthCode) -> None:
        """Forget the session code and delete all codes associated with this one."""
        self._session.clear()
        deleted = await self._store.clear_associated(auth_code)
        logger.debug("Invalidated %d auth code(s) for %s", deleted, auth_code.identity()[1:])

    async def validate_and_execute(
        self, auth_code: AuthCode | str | None = None
    ) -> AuthCode | None:
        """Check an auth code, run its action and invalidate or keep it.

        Args:
            auth_code: A code string, an already loaded AuthCode, or None to
                read the code from the request or the session.

        Returns:
            The resolved AuthCode, or None if no code was found and codes
            are optional.

        Raises:
            InvalidTokenError: No valid code was found and codes are required.
        """
        self.stage = ValidationStage.UNRESOLVED

        resolved = await self._resolve(auth_code)
        if resolved is None:
            if self.options.token_is_optional:
                logger.debug("No auth code submitted; code is optional")
                return None
            self.stage = ValidationStage.REJECTED
            logger.info("Rejected request without a valid auth code")
            raise InvalidTokenError()
        self.stage = ValidationStage.RESOLVED

        await self._dispatch(resolved)
        self.stage = ValidationStage.DISPATCHED

        if self.options.invalidate_after_access:
            await self.invalidate(resolved)
            self.stage = ValidationStage.INVALIDATED
        else:
            self._session.set(resolved.auth_code)
            self.stage = ValidationStage.SESSION_STORED

        return resolved

    async def _resolve(self, auth_code: AuthCode | str | None) -> AuthCode | None:
        if auth_code is None:
            return await self.get_submitted_code()
        if isinstance(auth_code, str):
            return await self._store.find_by_code(
                auth_code, for_update=self.options.invalidate_after_access
            )
        return auth_code

    async def _dispatch(self, auth_code: AuthCode) -> None:
        code_type = AuthCodeType(auth_code.type)
        if code_type is AuthCodeType.INDEPENDENT:
            return
        if code_type is AuthCodeType.RECORD:
            await self._dispatch_record_action(auth_code)
            return
        assert_never(code_type)

    async def _dispatch_record_action(self, auth_code: AuthCode) -> None:
        action = AuthCodeAction(auth_code.action)
        if action is AuthCodeAction.ENABLE_RECORD:
            await self._executor.enable(
                auth_code, self.options.update_timestamp_on_activation
            )
        elif action is AuthCodeAction.DELETE_RECORD:
            await self._executor.delete(auth_code, self.options.force_record_deletion)
        elif action is AuthCodeAction.ACCESS_PAGE:
            pass
        else:
            assert_never(action)
