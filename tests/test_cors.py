from starlette.responses import JSONResponse

from opportunity_explorer.api.middleware.cors import CorsPolicy
from opportunity_explorer.domain.policies import SecurityConfig


cors = CorsPolicy()


def test_missing_origin_is_always_allowed():
    assert cors.is_origin_allowed(None, ["https://a.test"])
    assert cors.is_origin_allowed("", [])


def test_listed_origin_is_allowed():
    assert cors.is_origin_allowed("https://a.test", ["https://a.test"])
    assert not cors.is_origin_allowed("https://b.test", ["https://a.test"])


def test_wildcard_allows_any_origin():
    assert cors.is_origin_allowed("https://anything.test", ["*"])


def test_headers_untouched_without_allow_list():
    response = cors.apply_headers(JSONResponse({}), SecurityConfig(), "https://a.test")

    assert "access-control-allow-origin" not in response.headers
    assert "access-control-allow-methods" not in response.headers


def test_specific_origin_echo_beats_wildcard():
    config = SecurityConfig(allowed_origins=["https://a.test", "*"])

    response = cors.apply_headers(JSONResponse({}), config, "https://a.test")

    assert response.headers["access-control-allow-origin"] == "https://a.test"


def test_wildcard_without_origin_header():
    config = SecurityConfig(allowed_origins=["*"])

    response = cors.apply_headers(JSONResponse({}), config, None)

    assert response.headers["access-control-allow-origin"] == "*"


def test_disallowed_origin_gets_no_allow_origin_but_fixed_headers():
    config = SecurityConfig(allowed_origins=["https://a.test"])

    response = cors.apply_headers(JSONResponse({}), config, "https://evil.test")

    assert "access-control-allow-origin" not in response.headers
    assert response.headers["access-control-allow-methods"] == "GET, POST, PUT, DELETE, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type, Authorization"
    assert response.headers["access-control-max-age"] == "86400"
