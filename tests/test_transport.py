"""Tests for the MELCloud Home HTTP transport."""

from unittest.mock import patch

import httpx
import pytest
from pytest_httpx import HTTPXMock

from custom_components.melcloud_home.const import USER_AGENT
from custom_components.melcloud_home.exceptions import TooManyRedirectsError
from custom_components.melcloud_home.models import HttpResponse
from custom_components.melcloud_home.pacer import RequestPacer
from custom_components.melcloud_home.transport import (
    CookieJar,
    PacedHttpClient,
    is_redirect,
    split_set_cookie_header,
)

BASE = "https://example.test"
REDIRECT_LIMIT = 3


class TestSplitSetCookieHeader:
    """Tests for split_set_cookie_header."""

    def test_splits_on_commas_but_keeps_expires_date(self) -> None:
        """Test that the comma inside an Expires date is preserved."""
        header = "a=1, b=2; Expires=Wed, 21 Oct 2026 07:28:00 GMT, c=3"
        assert split_set_cookie_header(header) == [
            "a=1",
            "b=2; Expires=Wed, 21 Oct 2026 07:28:00 GMT",
            "c=3",
        ]

    def test_expires_attribute_is_case_insensitive(self) -> None:
        """Test that lower-case expires attributes are recognized."""
        header = "a=1; expires=Thu, 01 Jan 2026 00:00:00 GMT; Path=/, b=2"
        assert split_set_cookie_header(header) == [
            "a=1; expires=Thu, 01 Jan 2026 00:00:00 GMT; Path=/",
            "b=2",
        ]

    def test_expires_inside_cookie_name_is_not_an_attribute(self) -> None:
        """Test that a cookie named like the attribute still splits."""
        assert split_set_cookie_header("token_expires=never, b=2") == [
            "token_expires=never",
            "b=2",
        ]

    def test_expires_named_cookie_with_attributes_splits(self) -> None:
        """Test that only the attribute after a semicolon holds a date."""
        header = "expires=soon; Expires=Fri, 23 Oct 2026 10:00:00 GMT, c=3"
        assert split_set_cookie_header(header) == [
            "expires=soon; Expires=Fri, 23 Oct 2026 10:00:00 GMT",
            "c=3",
        ]

    def test_single_cookie_is_returned_unchanged(self) -> None:
        """Test that a header with one cookie yields one entry."""
        assert split_set_cookie_header("session=abc; Path=/; HttpOnly") == [
            "session=abc; Path=/; HttpOnly",
        ]

    def test_empty_segments_are_dropped(self) -> None:
        """Test that stray commas do not create empty cookies."""
        assert split_set_cookie_header("a=1,, b=2,") == ["a=1", "b=2"]


class TestCookieJar:
    """Tests for CookieJar."""

    def test_set_cookie_values_keeps_only_name_and_value(self) -> None:
        """Test that cookie attributes are discarded."""
        jar = CookieJar()
        jar.set_cookie_values(["session=abc; Path=/; HttpOnly", "csrf=x=y"])
        assert jar.as_dict() == {"session": "abc", "csrf": "x=y"}

    def test_set_cookie_values_skips_malformed_entries(self) -> None:
        """Test that entries without a name or without '=' are ignored."""
        jar = CookieJar()
        jar.set_cookie_values(["novalue", "=orphan", "ok=1"])
        assert jar.as_dict() == {"ok": "1"}

    def test_later_cookie_overwrites_earlier_one(self) -> None:
        """Test that a cookie received again replaces its value."""
        jar = CookieJar({"session": "old"})
        jar.set_cookie_values(["session=new"])
        assert jar["session"] == "new"
        assert len(jar) == 1

    def test_as_header_joins_pairs(self) -> None:
        """Test that the Cookie header joins pairs with '; '."""
        jar = CookieJar({"a": "1", "b": "2"})
        assert jar.as_header() == "a=1; b=2"

    def test_clear_removes_every_cookie(self) -> None:
        """Test that clear empties the jar."""
        jar = CookieJar({"a": "1"})
        jar.clear()
        assert "a" not in jar
        assert jar.as_header() == ""


class TestIsRedirect:
    """Tests for is_redirect."""

    def test_3xx_with_location_is_redirect(self) -> None:
        """Test that a 302 with a Location header is a redirect."""
        response = HttpResponse(status=302, headers={"location": "/next"}, text="")
        assert is_redirect(response)

    def test_3xx_without_location_is_not_redirect(self) -> None:
        """Test that a 304 without Location is not followed."""
        response = HttpResponse(status=304, headers={}, text="")
        assert not is_redirect(response)

    def test_2xx_is_not_redirect(self) -> None:
        """Test that success responses are not redirects."""
        response = HttpResponse(status=200, headers={"location": "/x"}, text="")
        assert not is_redirect(response)


class TestPacedHttpClientRequest:
    """Tests for PacedHttpClient.async_request."""

    @pytest.mark.asyncio
    async def test_request_sends_user_agent_and_cookies(
        self,
        httpx_mock: HTTPXMock,
        http_client: PacedHttpClient,
    ) -> None:
        """Test that default headers and stored cookies are sent."""
        httpx_mock.add_response(url=f"{BASE}/page", text="hello")
        http_client.cookie_jar.set_cookie_values(["session=abc"])

        response = await http_client.async_request("GET", f"{BASE}/page")

        request = httpx_mock.get_request()
        assert request.headers["User-Agent"] == USER_AGENT
        assert request.headers["Cookie"] == "session=abc"
        assert response.status == 200
        assert response.text == "hello"

    @pytest.mark.asyncio
    async def test_caller_headers_override_defaults(
        self,
        httpx_mock: HTTPXMock,
        http_client: PacedHttpClient,
    ) -> None:
        """Test that caller headers are merged over the defaults."""
        httpx_mock.add_response(url=f"{BASE}/page")

        await http_client.async_request(
            "GET",
            f"{BASE}/page",
            headers={"User-Agent": "custom", "Accept": "text/html"},
        )

        request = httpx_mock.get_request()
        assert request.headers["User-Agent"] == "custom"
        assert request.headers["Accept"] == "text/html"

    @pytest.mark.asyncio
    async def test_response_cookies_are_captured(
        self,
        httpx_mock: HTTPXMock,
        http_client: PacedHttpClient,
    ) -> None:
        """Test that every Set-Cookie header lands in the jar."""
        httpx_mock.add_response(
            url=f"{BASE}/page",
            headers=[
                ("Set-Cookie", "a=1; Path=/"),
                ("Set-Cookie", "b=2; Expires=Wed, 21 Oct 2026 07:28:00 GMT"),
            ],
        )

        await http_client.async_request("GET", f"{BASE}/page")

        assert http_client.cookie_jar.as_dict() == {"a": "1", "b": "2"}

    @pytest.mark.asyncio
    async def test_response_headers_are_lower_cased(
        self,
        httpx_mock: HTTPXMock,
        http_client: PacedHttpClient,
    ) -> None:
        """Test that header names are normalized to lower case."""
        httpx_mock.add_response(url=f"{BASE}/page", headers={"X-Custom": "yes"})

        response = await http_client.async_request("GET", f"{BASE}/page")

        assert response.headers["x-custom"] == "yes"

    @pytest.mark.asyncio
    async def test_redirect_is_not_followed(
        self,
        httpx_mock: HTTPXMock,
        http_client: PacedHttpClient,
    ) -> None:
        """Test that async_request returns the 3xx response itself."""
        httpx_mock.add_response(
            url=f"{BASE}/start",
            status_code=302,
            headers={"Location": "/next"},
        )

        response = await http_client.async_request("GET", f"{BASE}/start")

        assert response.status == 302
        assert response.headers["location"] == "/next"


class TestPacedHttpClientFollowRedirects:
    """Tests for PacedHttpClient.async_follow_redirects."""

    @pytest.mark.asyncio
    async def test_follows_relative_location_and_switches_to_get(
        self,
        httpx_mock: HTTPXMock,
        http_client: PacedHttpClient,
    ) -> None:
        """Test that redirects are resolved and followed with GET."""
        httpx_mock.add_response(
            url=f"{BASE}/submit",
            method="POST",
            status_code=303,
            headers={"Location": "/callback"},
        )
        httpx_mock.add_response(url=f"{BASE}/callback", method="GET", text="done")

        response = await http_client.async_follow_redirects(
            "POST", f"{BASE}/submit", content="x=1"
        )

        assert response.status == 200
        assert response.text == "done"
        assert response.resolved_url == f"{BASE}/callback"
        methods = [request.method for request in httpx_mock.get_requests()]
        assert methods == ["POST", "GET"]

    @pytest.mark.asyncio
    async def test_non_redirect_reports_request_url(
        self,
        httpx_mock: HTTPXMock,
        http_client: PacedHttpClient,
    ) -> None:
        """Test that a direct answer resolves to the requested URL."""
        httpx_mock.add_response(url=f"{BASE}/page", text="ok")

        response = await http_client.async_follow_redirects("GET", f"{BASE}/page")

        assert response.resolved_url == f"{BASE}/page"

    @pytest.mark.asyncio
    async def test_redirect_loop_raises_after_limit(
        self,
        httpx_mock: HTTPXMock,
        http_client: PacedHttpClient,
    ) -> None:
        """Test that a chain longer than the limit is aborted."""
        for _ in range(REDIRECT_LIMIT):
            httpx_mock.add_response(
                url=f"{BASE}/loop",
                status_code=302,
                headers={"Location": "/loop"},
            )

        with pytest.raises(TooManyRedirectsError, match="max 3"):
            await http_client.async_follow_redirects(
                "GET", f"{BASE}/loop", max_redirects=REDIRECT_LIMIT
            )

        assert len(httpx_mock.get_requests()) == REDIRECT_LIMIT

    @pytest.mark.asyncio
    async def test_requests_share_the_pacer(
        self,
        httpx_mock: HTTPXMock,
    ) -> None:
        """Test that every hop is admitted through the pacer."""
        httpx_mock.add_response(
            url=f"{BASE}/a", status_code=302, headers={"Location": "/b"}
        )
        httpx_mock.add_response(url=f"{BASE}/b")
        pacer = RequestPacer(0)
        try:
            with patch.object(pacer, "run", wraps=pacer.run) as mock_run:
                async with httpx.AsyncClient() as session:
                    client = PacedHttpClient(session, pacer)
                    await client.async_follow_redirects("GET", f"{BASE}/a")
        finally:
            await pacer.async_close()

        assert mock_run.await_count == 2
