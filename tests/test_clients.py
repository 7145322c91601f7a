"""Tests for the Supabase client factory."""

from unittest.mock import MagicMock, patch

import pytest
from postgrest.exceptions import APIError

from dbsetup.core.clients import (
    EXAMPLE_AUTH_ERROR,
    EXAMPLE_DB_ERROR,
    AuthApi,
    ClientResponse,
    CookieStorage,
    DatabaseClient,
    MemoryCookieJar,
    MockClient,
    SupabaseClient,
    TableApi,
    create_client,
    create_server_client,
)
from dbsetup.core.config import ClientSettings, load_settings

LIVE = ClientSettings(
    supabase_url="https://abc.supabase.co", supabase_anon_key="anon-key"
)


class FakeJar:
    def __init__(self, cookies=None, fail_on_set=False):
        self.cookies = {c["name"]: c["value"] for c in cookies or []}
        self.options = {}
        self.fail_on_set = fail_on_set

    def get_all(self):
        return [{"name": k, "value": v} for k, v in self.cookies.items()]

    def set(self, name, value, options):
        if self.fail_on_set:
            raise RuntimeError("Cookies can only be modified in a route handler")
        self.cookies[name] = value
        self.options[name] = options


@pytest.fixture
def no_network():
    with patch(
        "dbsetup.core.clients.create_supabase_client",
        side_effect=AssertionError("network client created"),
    ) as factory:
        yield factory


# -- Factory selection --


@pytest.mark.unit
class TestFactory:
    def test_example_mode_returns_mock(self, no_network):
        settings = load_settings(
            {
                "NEXT_PUBLIC_EXAMPLE_MODE": "true",
                "NEXT_PUBLIC_SUPABASE_URL": "https://abc.supabase.co",
                "NEXT_PUBLIC_SUPABASE_ANON_KEY": "anon-key",
            }
        )
        client = create_client(settings.client)
        assert isinstance(client, MockClient)
        assert client.is_example_mode
        no_network.assert_not_called()

    def test_missing_credentials_return_mock(self, no_network):
        assert isinstance(create_client(ClientSettings()), MockClient)
        assert isinstance(
            create_client(ClientSettings(supabase_url="https://abc.supabase.co")),
            MockClient,
        )

    def test_server_variant_example_mode(self, no_network):
        jar = FakeJar()
        client = create_server_client(ClientSettings(example_mode=True), jar)
        assert isinstance(client, MockClient)
        assert jar.cookies == {}

    def test_live_client(self):
        with patch("dbsetup.core.clients.create_supabase_client") as factory:
            client = create_client(LIVE)
        factory.assert_called_once_with("https://abc.supabase.co", "anon-key")
        assert isinstance(client, SupabaseClient)
        assert not client.is_example_mode

    def test_live_server_client_uses_cookie_storage(self):
        jar = FakeJar()
        with patch("dbsetup.core.clients.create_supabase_client") as factory:
            client = create_server_client(LIVE, jar)
        assert isinstance(client, SupabaseClient)
        options = factory.call_args.kwargs["options"]
        assert isinstance(options.storage, CookieStorage)
        assert options.flow_type == "pkce"

    def test_both_satisfy_protocol(self):
        with patch("dbsetup.core.clients.create_supabase_client"):
            live = create_client(LIVE)
        for client in (MockClient(), live):
            assert isinstance(client, DatabaseClient)
            assert isinstance(client.auth, AuthApi)
            assert isinstance(client.table("profiles"), TableApi)


# -- Example-mode behaviour --


@pytest.mark.unit
class TestMockAuth:
    @pytest.fixture
    def auth(self, no_network):
        return create_client(ClientSettings(example_mode=True)).auth

    def test_sign_up(self, auth):
        response = auth.sign_up("a@example.com", "pw")
        assert response.data is None
        assert response.error.message == EXAMPLE_AUTH_ERROR

    def test_sign_in(self, auth):
        response = auth.sign_in_with_password("a@example.com", "pw")
        assert response.data is None
        assert response.error.message == EXAMPLE_AUTH_ERROR

    def test_update_user(self, auth):
        response = auth.update_user({"password": "new"})
        assert response.data is None
        assert response.error.message == EXAMPLE_AUTH_ERROR

    def test_sign_out(self, auth):
        assert auth.sign_out() == ClientResponse(data=None, error=None)

    def test_reset_password(self, auth):
        response = auth.reset_password_for_email("a@example.com", "https://app/reset")
        assert response.ok
        assert response.data is None

    def test_get_user(self, auth):
        response = auth.get_user()
        assert response.ok
        assert response.data == {"user": None}

    def test_get_claims(self, auth):
        assert auth.get_claims().data == {"claims": None}


@pytest.mark.unit
class TestMockTable:
    @pytest.fixture
    def table(self):
        return MockClient().table("notes")

    def test_select_empty(self, table):
        response = table.select()
        assert response.data == []
        assert response.error is None

    def test_insert(self, table):
        response = table.insert({"title": "x"})
        assert response.data is None
        assert response.error.message == EXAMPLE_DB_ERROR

    def test_update(self, table):
        assert table.update({"title": "y"}, {"id": 1}).error.message == EXAMPLE_DB_ERROR

    def test_delete(self, table):
        assert table.delete({"id": 1}).error.message == EXAMPLE_DB_ERROR


# -- Live adapter --


@pytest.mark.unit
class TestSupabaseAdapter:
    @pytest.fixture
    def sb(self):
        return MagicMock()

    def test_sign_in_passes_credentials(self, sb):
        sb.auth.sign_in_with_password.return_value.model_dump.return_value = {
            "user": {"id": "u1"},
            "session": None,
        }
        response = SupabaseClient(sb).auth.sign_in_with_password("a@example.com", "pw")
        sb.auth.sign_in_with_password.assert_called_once_with(
            {"email": "a@example.com", "password": "pw"}
        )
        assert response.data == {"user": {"id": "u1"}, "session": None}

    def test_sign_up_with_redirect(self, sb):
        SupabaseClient(sb).auth.sign_up("a@example.com", "pw", "https://app/confirm")
        sb.auth.sign_up.assert_called_once_with(
            {
                "email": "a@example.com",
                "password": "pw",
                "options": {"email_redirect_to": "https://app/confirm"},
            }
        )

    def test_reset_password(self, sb):
        SupabaseClient(sb).auth.reset_password_for_email("a@example.com", "https://r")
        sb.auth.reset_password_for_email.assert_called_once_with(
            "a@example.com", {"redirect_to": "https://r"}
        )

    def test_sign_out(self, sb):
        sb.auth.sign_out.return_value = None
        assert SupabaseClient(sb).auth.sign_out() == ClientResponse()

    def test_get_user_signed_out(self, sb):
        sb.auth.get_user.return_value = None
        assert SupabaseClient(sb).auth.get_user().data == {"user": None}

    def test_get_user(self, sb):
        sb.auth.get_user.return_value.user.model_dump.return_value = {"id": "u1"}
        assert SupabaseClient(sb).auth.get_user().data == {"user": {"id": "u1"}}

    def test_auth_error_becomes_response_error(self, sb, monkeypatch):
        class FakeAuthError(Exception):
            def __init__(self, message):
                super().__init__(message)
                self.message = message

        monkeypatch.setattr("dbsetup.core.clients.AuthError", FakeAuthError)
        sb.auth.sign_in_with_password.side_effect = FakeAuthError(
            "Invalid login credentials"
        )
        response = SupabaseClient(sb).auth.sign_in_with_password("a@example.com", "x")
        assert response.data is None
        assert response.error.message == "Invalid login credentials"

    def test_select(self, sb):
        sb.table.return_value.select.return_value.execute.return_value.data = [
            {"id": 1}
        ]
        response = SupabaseClient(sb).table("notes").select("id")
        sb.table.assert_called_with("notes")
        sb.table.return_value.select.assert_called_once_with("id")
        assert response.data == [{"id": 1}]

    def test_update_matches_rows(self, sb):
        SupabaseClient(sb).table("notes").update({"title": "y"}, {"id": 1})
        sb.table.return_value.update.assert_called_once_with({"title": "y"})
        sb.table.return_value.update.return_value.match.assert_called_once_with(
            {"id": 1}
        )

    def test_delete_matches_rows(self, sb):
        SupabaseClient(sb).table("notes").delete({"id": 1})
        sb.table.return_value.delete.return_value.match.assert_called_once_with(
            {"id": 1}
        )

    def test_postgrest_error_becomes_response_error(self, sb):
        sb.table.return_value.insert.return_value.execute.side_effect = APIError(
            {"message": "new row violates row-level security policy"}
        )
        response = SupabaseClient(sb).table("notes").insert({"title": "x"})
        assert response.data is None
        assert response.error.message == "new row violates row-level security policy"


# -- Cookie storage --


@pytest.mark.unit
class TestCookieStorage:
    def test_get_all_reads_jar(self):
        jar = FakeJar([{"name": "a", "value": "1"}])
        assert CookieStorage(jar).get_all() == [{"name": "a", "value": "1"}]

    def test_set_all_writes_with_defaults(self):
        jar = FakeJar()
        CookieStorage(jar).set_all(
            [{"name": "sb-token", "value": "v", "options": {"httponly": True}}]
        )
        assert jar.cookies == {"sb-token": "v"}
        assert jar.options["sb-token"]["path"] == "/"
        assert jar.options["sb-token"]["samesite"] == "lax"
        assert jar.options["sb-token"]["httponly"] is True

    def test_set_all_failure_is_swallowed(self):
        jar = FakeJar(fail_on_set=True)
        CookieStorage(jar).set_all([{"name": "sb-token", "value": "v"}])
        assert jar.cookies == {}

    def test_session_round_trip(self):
        jar = FakeJar()
        storage = CookieStorage(jar)
        storage.set_item("sb-abc-auth-token", '{"access_token": "t"}')
        assert jar.cookies["sb-abc-auth-token"].startswith("base64-")
        assert storage.get_item("sb-abc-auth-token") == '{"access_token": "t"}'

    def test_get_missing_item(self):
        assert CookieStorage(FakeJar()).get_item("missing") is None

    def test_plain_cookie_value_returned_as_is(self):
        jar = FakeJar([{"name": "k", "value": "plain"}])
        assert CookieStorage(jar).get_item("k") == "plain"

    def test_remove_item_expires_cookie(self):
        jar = FakeJar([{"name": "k", "value": "v"}])
        CookieStorage(jar).remove_item("k")
        assert jar.cookies["k"] == ""
        assert jar.options["k"]["max_age"] == 0

    def test_set_item_in_read_only_context(self):
        storage = CookieStorage(FakeJar(fail_on_set=True))
        storage.set_item("k", "v")
        storage.remove_item("k")

    def test_memory_jar_holds_session_without_request(self):
        jar = MemoryCookieJar()
        storage = CookieStorage(jar)
        storage.set_item("sb-abc-auth-token", "session")
        assert storage.get_item("sb-abc-auth-token") == "session"
        storage.remove_item("sb-abc-auth-token")
        assert jar.get_all() == []
