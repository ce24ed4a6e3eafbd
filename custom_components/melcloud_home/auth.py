"""Web session login for the MELCloud Home cloud.

The cloud has no token API. Logging in means scraping a CSRF token and the
form action out of the server-rendered login page, posting the credentials
and following the callback redirects back into the application.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlencode, urljoin, urlsplit

from .const import (
    API_HEADERS,
    HTML_HEADERS,
    LOGIN_SNIPPET_LENGTH,
    LOGIN_URL,
    USER_CONTEXT_URL,
)
from .exceptions import (
    HTTP_UNAUTHORIZED,
    LoginFormParseError,
    LoginPageError,
    UnauthorizedError,
)
from .transport import is_redirect

if TYPE_CHECKING:
    from .transport import PacedHttpClient

_LOGGER = logging.getLogger(__name__)

HTTP_OK = 200

CSRF_PATTERN = re.compile(r'name="_csrf"\s+value="([^"]+)"', re.IGNORECASE)
FORM_ACTION_PATTERN = re.compile(r'<form[^>]+action="([^"]+)"', re.IGNORECASE)


@dataclass(frozen=True)
class LoginForm:
    """Values scraped from the login page.

    Attributes:
        csrf_token: Value of the hidden ``_csrf`` field.
        action: Form action, HTML entities decoded, possibly relative.

    """

    csrf_token: str
    action: str


@dataclass(frozen=True)
class LoginPage:
    """Resolved login page."""

    url: str
    html: str


def parse_login_form(page: str) -> LoginForm:
    """Extract the CSRF token and the form action from the login page.

    Args:
        page: HTML of the login page.

    Returns:
        LoginForm with the token and the decoded action.

    Raises:
        LoginFormParseError: If either value is missing.

    """
    csrf_match = CSRF_PATTERN.search(page)
    action_match = FORM_ACTION_PATTERN.search(page)

    if not csrf_match or not action_match:
        snippet = page[:LOGIN_SNIPPET_LENGTH]
        _LOGGER.warning("Unable to extract login form. Page snippet: %s", snippet)
        raise LoginFormParseError(snippet)

    return LoginForm(
        csrf_token=csrf_match.group(1),
        action=html.unescape(action_match.group(1)),
    )


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


class MelCloudAuth:
    """Run the three-stage login against the MELCloud Home web session."""

    def __init__(self, http: PacedHttpClient) -> None:
        self._http = http

    async def async_login(self, email: str, password: str) -> None:
        """Log in and validate the resulting session.

        Stages run in order and the first failure aborts the login.

        Raises:
            LoginPageError: If the login page cannot be loaded.
            LoginFormParseError: If the login form cannot be scraped.
            UnauthorizedError: If the session is not accepted afterwards.
            TooManyRedirectsError: If a redirect chain does not resolve.

        """
        self._http.clear_cookies()
        login_page = await self._async_fetch_login_page()
        await self._async_submit_credentials(login_page, email, password)
        await self._async_validate_session()

    async def _async_fetch_login_page(self) -> LoginPage:
        response = await self._http.async_follow_redirects(
            "GET", LOGIN_URL, headers=HTML_HEADERS
        )
        _LOGGER.debug(
            "Login page resolved to status %s (%d chars)",
            response.status,
            len(response.text),
        )

        if response.status != HTTP_OK or not response.text:
            raise LoginPageError(response.status)

        return LoginPage(url=response.resolved_url or LOGIN_URL, html=response.text)

    async def _async_submit_credentials(
        self, login_page: LoginPage, email: str, password: str
    ) -> None:
        form = parse_login_form(login_page.html)
        action_url = urljoin(login_page.url, form.action)

        _LOGGER.debug("Submitting credentials to %s", action_url)
        response = await self._http.async_request(
            "POST",
            action_url,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "text/html",
                "Origin": _origin(login_page.url),
                "Referer": login_page.url,
            },
            content=urlencode(
                {"_csrf": form.csrf_token, "username": email, "password": password}
            ),
        )

        if is_redirect(response):
            callback_url = urljoin(action_url, response.headers["location"])
            await self._http.async_follow_redirects(
                "GET", callback_url, headers=HTML_HEADERS
            )
        elif response.status != HTTP_OK:
            # Not fatal on its own, session validation decides.
            _LOGGER.warning("Login POST returned status %s", response.status)

    async def _async_validate_session(self) -> None:
        response = await self._http.async_request(
            "GET", USER_CONTEXT_URL, headers=API_HEADERS
        )
        if response.status == HTTP_UNAUTHORIZED:
            raise UnauthorizedError("MELCloud Home login failed (unauthorized)")

        _LOGGER.info("MELCloud Home session validated successfully")
