import json

import httpx
import pytest

from app.errors import InvalidRequest, Misconfigured, UpstreamError
from app.security import get_auth_client
from app.services import auth_service
from app.services.auth_service import SupabaseAuthClient, create_profile


def make_auth(handler, service_role_key="service-key"):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SupabaseAuthClient("https://project.supabase.test", "anon-key", service_role_key, client=client)


def test_sign_in_posts_password_grant():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["apikey"] = request.headers["apikey"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"access_token": "a", "refresh_token": "r", "user": {"id": "u1"}})

    session = make_auth(handler).sign_in("buyer@example.com", "hunter22")

    assert session["access_token"] == "a"
    assert seen["url"] == "https://project.supabase.test/auth/v1/token?grant_type=password"
    assert seen["apikey"] == "anon-key"
    assert seen["body"] == {"email": "buyer@example.com", "password": "hunter22"}


def test_bad_credentials_are_invalid_request():
    def handler(request):
        return httpx.Response(400, json={"error_description": "Invalid login credentials"})

    with pytest.raises(InvalidRequest) as exc:
        make_auth(handler).sign_in("buyer@example.com", "wrong")
    assert exc.value.detail == "Invalid login credentials"


def test_provider_outage_is_upstream_error():
    def handler(request):
        return httpx.Response(503, text="unavailable")

    with pytest.raises(UpstreamError):
        make_auth(handler).sign_in("buyer@example.com", "hunter22")


def test_transport_error_is_upstream_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamError):
        make_auth(handler).get_user("token")


def test_get_user_sends_bearer():
    def handler(request):
        assert request.headers["Authorization"] == "Bearer user-token"
        return httpx.Response(200, json={"id": "u1", "email": "buyer@example.com"})

    assert make_auth(handler).get_user("user-token")["id"] == "u1"


def test_admin_list_users_pages(monkeypatch):
    monkeypatch.setattr(auth_service, "ADMIN_PAGE_SIZE", 2)
    pages = {
        "1": [{"id": "u1", "email": "a@x.com"}, {"id": "u2", "email": "b@x.com"}],
        "2": [{"id": "u3", "email": "c@x.com"}],
    }

    def handler(request):
        assert request.headers["apikey"] == "service-key"
        return httpx.Response(200, json={"users": pages[request.url.params["page"]]})

    users = make_auth(handler).admin_list_users()

    assert [u["id"] for u in users] == ["u1", "u2", "u3"]


def test_admin_list_users_needs_service_key():
    auth = make_auth(lambda request: httpx.Response(200, json={"users": []}), service_role_key=None)
    with pytest.raises(Misconfigured):
        auth.admin_list_users()


def test_close_leaves_injected_client_open():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
    SupabaseAuthClient("https://project.supabase.test", "anon-key", client=client).close()

    assert not client.is_closed


def test_request_scoped_auth_client_is_closed():
    dependency = get_auth_client()
    auth = next(dependency)
    assert not auth.client.is_closed

    with pytest.raises(StopIteration):
        next(dependency)

    assert auth.client.is_closed


# -------------------------------------------------
# PROFILE BOOTSTRAP
# -------------------------------------------------
def test_create_profile_resolves_referral(conn):
    conn.on("SELECT referral_code FROM profiles", [{"referral_code": "FRIEND01"}])
    conn.on("INSERT INTO profiles", [{"user_id": "u1", "referred_by": "FRIEND01"}])

    profile = create_profile(conn, "u1", "Buyer", " friend01 ")

    _, params = conn.statements("INSERT INTO profiles")[0]
    assert params[0] == "u1"
    assert len(params[2]) == 8
    assert params[3] == "FRIEND01"
    assert profile["referred_by"] == "FRIEND01"


def test_unknown_referral_code_is_ignored(conn):
    create_profile(conn, "u1", "Buyer", "NOPE")

    _, params = conn.statements("INSERT INTO profiles")[0]
    assert params[3] is None
    assert conn.commits == 1


# -------------------------------------------------
# ROUTES
# -------------------------------------------------
class StubAuth:
    def __init__(self, user=None):
        self.user = user or {"id": "u1", "email": "buyer@example.com"}

    def sign_up(self, email, password, display_name=None):
        return {"id": self.user["id"], "email": email}

    def get_user(self, token):
        if token != "good":
            raise InvalidRequest("invalid JWT")
        return self.user


def test_signup_creates_profile(make_client, conn):
    conn.on("INSERT INTO profiles", [{"user_id": "u1", "role": "user"}])
    client = make_client(auth=StubAuth())

    response = client.post("/auth/signup", json={"email": "buyer@example.com", "password": "hunter222"})

    assert response.status_code == 201
    assert response.json()["user"] == {"id": "u1", "email": "buyer@example.com"}
    assert response.json()["session"] is None
    assert conn.ran("INSERT INTO profiles")


def test_signup_validates_password_length(make_client):
    client = make_client(auth=StubAuth())
    assert client.post("/auth/signup", json={"email": "buyer@example.com", "password": "short"}).status_code == 422


def test_me_requires_valid_token(make_client, conn):
    conn.on("FROM profiles WHERE user_id", [{"user_id": "u1", "role": "admin", "is_creator": False, "display_name": "Boss"}])
    client = make_client(auth=StubAuth())

    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer bad"}).status_code == 401

    response = client.get("/auth/me", headers={"Authorization": "Bearer good"})
    assert response.status_code == 200
    assert response.json()["role"] == "admin"


def test_admin_routes_reject_regular_users(make_client, conn):
    conn.on("FROM profiles WHERE user_id", [{"role": "user", "is_creator": False}])
    client = make_client(auth=StubAuth())

    response = client.get("/admin/dashboard", headers={"Authorization": "Bearer good"})

    assert response.status_code == 403
