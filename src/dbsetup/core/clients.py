"""Supabase client factory.

Pages talk to the hosted backend through a DatabaseClient: an ``auth``
group and ``table(name)`` access. ``create_client`` and
``create_server_client`` return either a SupabaseClient bound to the
configured project or, in example mode or without credentials, a
MockClient that answers every call immediately without network access.

Every operation returns a ClientResponse with ``data`` and ``error``
so callers handle the live and mock clients the same way.
"""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import BaseModel
from supabase import (
    AuthError,
    Client,
    ClientOptions,
    PostgrestAPIError,
)
from supabase import create_client as create_supabase_client

from dbsetup.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from dbsetup.core.config import ClientSettings

EXAMPLE_AUTH_ERROR = "Example mode - no real authentication"
EXAMPLE_DB_ERROR = "Example mode - no real database"

# Cookie defaults used by Supabase's SSR helpers.
DEFAULT_COOKIE_OPTIONS: dict[str, Any] = {
    "path": "/",
    "samesite": "lax",
    "httponly": False,
    "max_age": 400 * 24 * 60 * 60,
}
_BASE64_PREFIX = "base64-"


class ClientError(BaseModel):
    message: str


class ClientResponse(BaseModel):
    data: Any = None
    error: ClientError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, message: str) -> ClientResponse:
        return cls(data=None, error=ClientError(message=message))


# ---------------------------------------------------------------------------
# Capability surface
# ---------------------------------------------------------------------------


@runtime_checkable
class AuthApi(Protocol):
    def sign_in_with_password(self, email: str, password: str) -> ClientResponse: ...

    def sign_up(
        self, email: str, password: str, redirect_to: str | None = None
    ) -> ClientResponse: ...

    def sign_out(self) -> ClientResponse: ...

    def reset_password_for_email(
        self, email: str, redirect_to: str | None = None
    ) -> ClientResponse: ...

    def update_user(self, attributes: dict[str, Any]) -> ClientResponse: ...

    def get_user(self) -> ClientResponse: ...

    def get_claims(self) -> ClientResponse: ...


@runtime_checkable
class TableApi(Protocol):
    def select(self, columns: str = "*") -> ClientResponse: ...

    def insert(self, values: dict[str, Any] | list[dict[str, Any]]) -> ClientResponse: ...

    def update(self, values: dict[str, Any], match: dict[str, Any]) -> ClientResponse: ...

    def delete(self, match: dict[str, Any]) -> ClientResponse: ...


@runtime_checkable
class DatabaseClient(Protocol):
    auth: AuthApi

    @property
    def is_example_mode(self) -> bool: ...

    def table(self, name: str) -> TableApi: ...


# ---------------------------------------------------------------------------
# Example-mode mock
# ---------------------------------------------------------------------------


class MockAuth:
    def sign_in_with_password(self, email: str, password: str) -> ClientResponse:
        return ClientResponse.failure(EXAMPLE_AUTH_ERROR)

    def sign_up(
        self, email: str, password: str, redirect_to: str | None = None
    ) -> ClientResponse:
        return ClientResponse.failure(EXAMPLE_AUTH_ERROR)

    def sign_out(self) -> ClientResponse:
        return ClientResponse()

    def reset_password_for_email(
        self, email: str, redirect_to: str | None = None
    ) -> ClientResponse:
        return ClientResponse()

    def update_user(self, attributes: dict[str, Any]) -> ClientResponse:
        return ClientResponse.failure(EXAMPLE_AUTH_ERROR)

    def get_user(self) -> ClientResponse:
        return ClientResponse(data={"user": None})

    def get_claims(self) -> ClientResponse:
        return ClientResponse(data={"claims": None})


class MockTable:
    def __init__(self, name: str) -> None:
        self.name = name

    def select(self, columns: str = "*") -> ClientResponse:
        return ClientResponse(data=[])

    def insert(self, values: dict[str, Any] | list[dict[str, Any]]) -> ClientResponse:
        return ClientResponse.failure(EXAMPLE_DB_ERROR)

    def update(self, values: dict[str, Any], match: dict[str, Any]) -> ClientResponse:
        return ClientResponse.failure(EXAMPLE_DB_ERROR)

    def delete(self, match: dict[str, Any]) -> ClientResponse:
        return ClientResponse.failure(EXAMPLE_DB_ERROR)


class MockClient:
    """Stateless stand-in used in example mode."""

    def __init__(self) -> None:
        self.auth = MockAuth()

    @property
    def is_example_mode(self) -> bool:
        return True

    def table(self, name: str) -> MockTable:
        return MockTable(name)


# ---------------------------------------------------------------------------
# Live client
# ---------------------------------------------------------------------------


def _dump(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value


def _guarded(call: Callable[[], Any]) -> ClientResponse:
    try:
        return ClientResponse(data=_dump(call()))
    except AuthError as e:
        return ClientResponse.failure(e.message)
    except PostgrestAPIError as e:
        return ClientResponse.failure(e.message or str(e))


class SupabaseAuth:
    def __init__(self, client: Client) -> None:
        self._auth = client.auth

    def sign_in_with_password(self, email: str, password: str) -> ClientResponse:
        return _guarded(
            lambda: self._auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        )

    def sign_up(
        self, email: str, password: str, redirect_to: str | None = None
    ) -> ClientResponse:
        credentials: dict[str, Any] = {"email": email, "password": password}
        if redirect_to:
            credentials["options"] = {"email_redirect_to": redirect_to}
        return _guarded(lambda: self._auth.sign_up(credentials))

    def sign_out(self) -> ClientResponse:
        return _guarded(self._auth.sign_out)

    def reset_password_for_email(
        self, email: str, redirect_to: str | None = None
    ) -> ClientResponse:
        options = {"redirect_to": redirect_to} if redirect_to else {}
        return _guarded(lambda: self._auth.reset_password_for_email(email, options))

    def update_user(self, attributes: dict[str, Any]) -> ClientResponse:
        return _guarded(lambda: self._auth.update_user(attributes))

    def get_user(self) -> ClientResponse:
        def call() -> dict[str, Any]:
            response = self._auth.get_user()
            return {"user": _dump(response.user) if response else None}

        return _guarded(call)

    def get_claims(self) -> ClientResponse:
        def call() -> dict[str, Any]:
            response = self._auth.get_claims()
            return {"claims": _dump(response["claims"]) if response else None}

        return _guarded(call)


class SupabaseTable:
    def __init__(self, client: Client, name: str) -> None:
        self._client = client
        self.name = name

    def select(self, columns: str = "*") -> ClientResponse:
        return _guarded(
            lambda: self._client.table(self.name).select(columns).execute().data
        )

    def insert(self, values: dict[str, Any] | list[dict[str, Any]]) -> ClientResponse:
        return _guarded(
            lambda: self._client.table(self.name).insert(values).execute().data
        )

    def update(self, values: dict[str, Any], match: dict[str, Any]) -> ClientResponse:
        return _guarded(
            lambda: self._client.table(self.name)
            .update(values)
            .match(match)
            .execute()
            .data
        )

    def delete(self, match: dict[str, Any]) -> ClientResponse:
        return _guarded(
            lambda: self._client.table(self.name).delete().match(match).execute().data
        )


class SupabaseClient:
    """DatabaseClient backed by supabase-py."""

    def __init__(self, client: Client) -> None:
        self._client = client
        self.auth = SupabaseAuth(client)

    @property
    def is_example_mode(self) -> bool:
        return False

    def table(self, name: str) -> SupabaseTable:
        return SupabaseTable(self._client, name)


# ---------------------------------------------------------------------------
# Request-scoped cookie storage
# ---------------------------------------------------------------------------


class CookieJar(Protocol):
    """The ambient request's cookies, as exposed by the web framework."""

    def get_all(self) -> list[dict[str, str]]: ...

    def set(self, name: str, value: str, options: dict[str, Any]) -> None: ...


class MemoryCookieJar:
    """CookieJar for callers without an HTTP request, such as the CLI."""

    def __init__(self, cookies: dict[str, str] | None = None) -> None:
        self.cookies: dict[str, str] = dict(cookies or {})

    def get_all(self) -> list[dict[str, str]]:
        return [{"name": name, "value": value} for name, value in self.cookies.items()]

    def set(self, name: str, value: str, options: dict[str, Any]) -> None:
        if options.get("max_age") == 0:
            self.cookies.pop(name, None)
        else:
            self.cookies[name] = value


def _encode(value: str) -> str:
    encoded = base64.urlsafe_b64encode(value.encode()).decode().rstrip("=")
    return _BASE64_PREFIX + encoded


def _decode(value: str) -> str:
    if not value.startswith(_BASE64_PREFIX):
        return value
    encoded = value[len(_BASE64_PREFIX) :]
    return base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4)).decode()


class CookieStorage:
    """Session storage for supabase-py that lives in the request's cookies.

    supabase-py calls get_item/set_item/remove_item; these go through
    get_all/set_all against the jar. Setting cookies is not allowed in
    every request phase; such failures are logged and dropped so the
    auth call itself still succeeds.
    """

    def __init__(self, jar: CookieJar) -> None:
        self._jar = jar

    def get_all(self) -> list[dict[str, str]]:
        return self._jar.get_all()

    def set_all(self, cookies: list[dict[str, Any]]) -> None:
        log = get_logger("cookies")
        try:
            for cookie in cookies:
                self._jar.set(
                    cookie["name"],
                    cookie["value"],
                    {**DEFAULT_COOKIE_OPTIONS, **cookie.get("options", {})},
                )
        except Exception as e:  # noqa: BLE001
            log.debug("cookie write ignored", error=str(e))

    def get_item(self, key: str) -> str | None:
        for cookie in self.get_all():
            if cookie.get("name") == key:
                return _decode(cookie.get("value", ""))
        return None

    def set_item(self, key: str, value: str) -> None:
        self.set_all([{"name": key, "value": _encode(value)}])

    def remove_item(self, key: str) -> None:
        self.set_all([{"name": key, "value": "", "options": {"max_age": 0}}])


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def create_client(settings: ClientSettings) -> DatabaseClient:
    """Return a live client, or the mock in example mode or without credentials."""
    if settings.use_mock:
        return MockClient()
    return SupabaseClient(
        create_supabase_client(
            settings.supabase_url,  # type: ignore[arg-type]
            settings.supabase_anon_key,  # type: ignore[arg-type]
        )
    )


def create_server_client(settings: ClientSettings, cookies: CookieJar) -> DatabaseClient:
    """Like create_client, persisting the session in the request's cookies."""
    if settings.use_mock:
        return MockClient()
    options = ClientOptions(
        storage=CookieStorage(cookies),
        flow_type="pkce",
        auto_refresh_token=False,
    )
    return SupabaseClient(
        create_supabase_client(
            settings.supabase_url,  # type: ignore[arg-type]
            settings.supabase_anon_key,  # type: ignore[arg-type]
            options=options,
        )
    )
