import pytest
from starlette.requests import Request

from conftest import FailingIdentityProvider
from opportunity_explorer.adapters.identity.header_adapter import HeaderIdentityProvider
from opportunity_explorer.api.middleware.identity import IdentityAdapter
from opportunity_explorer.domain.models import IdentitySession, Principal, PublicMetadata


def make_request(headers: dict) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("testserver", 80),
        "path": "/api/test",
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    }
    return Request(scope)


@pytest.fixture
def identity():
    return IdentityAdapter(HeaderIdentityProvider())


async def test_anonymous_request_has_no_principal(identity):
    assert await identity.current_principal(make_request({})) is None


async def test_principal_from_headers(identity):
    request = make_request(
        {
            "X-User-ID": "user_1",
            "X-Session-ID": "sess_abc",
            "X-User-Roles": "editor, viewer",
            "X-User-Permissions": "read,write",
        }
    )

    principal = await identity.current_principal(request)

    assert principal.id == "user_1"
    assert principal.session_id == "sess_abc"
    assert principal.roles == {"editor", "viewer"}
    assert principal.permissions == {"read", "write"}


async def test_invalid_session_is_treated_as_anonymous():
    identity = IdentityAdapter(FailingIdentityProvider())

    assert await identity.current_principal(make_request({"X-User-ID": "user_1"})) is None


def test_unauthenticated_session_maps_to_none():
    assert Principal.from_session(IdentitySession(is_authenticated=False, user_id="u1")) is None
    assert Principal.from_session(IdentitySession(is_authenticated=True, user_id=None)) is None


def test_is_admin(identity):
    assert identity.is_admin(Principal(id="u1", roles={"admin"}))
    assert not identity.is_admin(Principal(id="u1", roles={"editor"}))
    assert not identity.is_admin(None)


def test_roles_need_any_match(identity):
    editor = Principal(id="u1", roles={"editor"})

    assert identity.has_any_role(editor, {"admin", "editor"})
    assert not identity.has_any_role(editor, {"admin", "owner"})
    assert not identity.has_any_role(None, {"editor"})


def test_permissions_need_all(identity):
    reader = Principal(id="u1", permissions={"read"})

    assert not identity.has_all_permissions(reader, {"read", "write"})
    assert identity.has_all_permissions(reader, {"read"})
    assert identity.has_all_permissions(
        Principal(id="u2", permissions={"read", "write", "delete"}),
        {"read", "write"},
    )


async def test_header_provider_refresh_issues_new_session():
    provider = HeaderIdentityProvider()
    session = IdentitySession(
        is_authenticated=True,
        user_id="u1",
        session_id="sess_old",
        public_metadata=PublicMetadata(roles=["editor"]),
    )

    refreshed = await provider.refresh_session(session)

    assert refreshed.user_id == "u1"
    assert refreshed.session_id != "sess_old"
    assert refreshed.public_metadata.roles == ["editor"]


def test_header_provider_sign_in_redirect():
    provider = HeaderIdentityProvider(sign_in_url="https://accounts.test/sign-in")

    response = provider.redirect_to_sign_in(make_request({}))

    assert response.status_code == 307
    assert response.headers["location"].startswith("https://accounts.test/sign-in?redirect_url=")
