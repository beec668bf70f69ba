"""Tests for the FastAPI wiring: dependencies and the error envelope.

A small host application issues record codes and consumes them through
the dependencies, with ``get_db`` overridden to the test session.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.sessions import SessionMiddleware

from authcode.api.deps import AuthCodeFactoryDep, AuthCodeValidatorDep
from authcode.api.errors import register_exception_handlers
from authcode.core.config import TableControl, settings
from authcode.core.database import get_db


def _create_app(with_sessions: bool = True) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    if with_sessions:
        app.add_middleware(SessionMiddleware, secret_key="test-session-secret")

    @app.post("/pages/{uid}/codes")
    async def issue(uid: int, factory: AuthCodeFactoryDep) -> dict:
        auth_code = await factory.new_record("pages", uid, "enable_record")
        return {"auth_code": auth_code.auth_code}

    @app.api_route("/confirm", methods=["GET", "POST"])
    async def confirm(validator: AuthCodeValidatorDep) -> dict:
        auth_code = await validator.validate_and_execute()
        return {
            "uid": auth_code.reference_table_uid if auth_code else None,
            "stage": validator.stage.value,
        }

    return app


@pytest.fixture
def record_tables(monkeypatch):
    monkeypatch.setattr(
        settings, "record_tables", {"pages": TableControl(disabled="hidden")}
    )


async def _client(app: FastAPI, db_session: AsyncSession) -> AsyncClient:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, record_tables) -> AsyncGenerator[AsyncClient, None]:
    async with await _client(_create_app(), db_session) as ac:
        yield ac


async def _insert_hidden_page(db: AsyncSession, uid: int) -> None:
    await db.execute(
        text("INSERT INTO pages (uid, title) VALUES (:uid, 'Draft')"), {"uid": uid}
    )


async def _hidden(db: AsyncSession, uid: int) -> int:
    result = await db.execute(
        text("SELECT hidden FROM pages WHERE uid = :uid"), {"uid": uid}
    )
    return result.scalar_one()


# =============================================================================
# Happy path
# =============================================================================


class TestIssueAndConfirm:
    """Codes issued through the factory dependency are consumed by the validator."""

    @pytest.mark.asyncio
    async def test_query_param_enables_record(
        self, client: AsyncClient, db_session: AsyncSession
    ):
        """The code in the query string unhides the row and is consumed."""
        await _insert_hidden_page(db_session, 7)
        issued = await client.post("/pages/7/codes")
        code = issued.json()["auth_code"]

        response = await client.get("/confirm", params={"authCode": code})

        assert response.status_code == 200
        assert response.json() == {"uid": 7, "stage": "invalidated"}
        assert await _hidden(db_session, 7) == 0

        again = await client.get("/confirm", params={"authCode": code})
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_form_field_is_read(
        self, client: AsyncClient, db_session: AsyncSession
    ):
        """Form-encoded submissions carry the code too."""
        await _insert_hidden_page(db_session, 8)
        code = (await client.post("/pages/8/codes")).json()["auth_code"]

        response = await client.post("/confirm", data={"authCode": code})

        assert response.status_code == 200
        assert response.json()["uid"] == 8

    @pytest.mark.asyncio
    async def test_session_keeps_code_between_requests(
        self, client: AsyncClient, db_session: AsyncSession, monkeypatch
    ):
        """With invalidation off, later requests resolve the code from the session."""
        monkeypatch.setattr(settings, "auth_code_invalidate_after_access", False)
        await _insert_hidden_page(db_session, 9)
        code = (await client.post("/pages/9/codes")).json()["auth_code"]

        first = await client.get("/confirm", params={"authCode": code})
        second = await client.get("/confirm")

        assert first.json() == {"uid": 9, "stage": "session_stored"}
        assert second.json() == {"uid": 9, "stage": "session_stored"}


# =============================================================================
# Errors
# =============================================================================


class TestErrorEnvelope:
    """Auth code errors render as the standard error envelope."""

    @pytest.mark.asyncio
    async def test_missing_code_is_404(self, client: AsyncClient):
        """No code and codes required gives INVALID_AUTH_CODE."""
        response = await client.get("/confirm")

        assert response.status_code == 404
        assert response.json() == {
            "error": {
                "code": "INVALID_AUTH_CODE",
                "message": "Invalid or expired auth code",
                "details": None,
            }
        }

    @pytest.mark.asyncio
    async def test_optional_code(self, client: AsyncClient, monkeypatch):
        """Optional codes let the request through without one."""
        monkeypatch.setattr(settings, "auth_code_is_optional", True)

        response = await client.get("/confirm")

        assert response.status_code == 200
        assert response.json() == {"uid": None, "stage": "unresolved"}

    @pytest.mark.asyncio
    async def test_unconfigured_table_is_500(self, client: AsyncClient, monkeypatch):
        """Issuing a record code without a hidden column is a configuration error."""
        monkeypatch.setattr(settings, "record_tables", {})

        response = await client.post("/pages/1/codes")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "CONFIGURATION_ERROR"

    @pytest.mark.asyncio
    async def test_missing_session_middleware_is_500(
        self, db_session: AsyncSession, record_tables
    ):
        """The validator dependency requires SessionMiddleware."""
        async with await _client(
            _create_app(with_sessions=False), db_session
        ) as ac:
            response = await ac.get("/confirm")

        assert response.status_code == 500
        body = response.json()
        assert body["error"]["code"] == "CONFIGURATION_ERROR"
        assert "SessionMiddleware" in body["error"]["message"]
