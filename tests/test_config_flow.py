"""Tests for the MELCloud Home Config Flow."""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest
import voluptuous as vol
from homeassistant.const import CONF_EMAIL, CONF_PASSWORD
from homeassistant.data_entry_flow import FlowResultType

from custom_components.melcloud_home.config_flow import (
    MelCloudHomeConfigFlow,
    MelCloudHomeOptionsFlow,
    async_validate_credentials,
    build_options_schema,
)
from custom_components.melcloud_home.const import (
    CONF_ENABLE_DHW,
    CONF_ENABLE_FAN,
    CONF_ENABLE_STANDBY,
    CONF_ENABLE_SWING,
    CONF_MIN_REQUEST_INTERVAL,
    CONF_POLL_INTERVAL,
    ERROR_API_ERROR,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_TIMEOUT,
    ERROR_UNKNOWN,
)
from custom_components.melcloud_home.exceptions import (
    LoginFormParseError,
    UnauthorizedError,
)

VALIDATE_PATH = "custom_components.melcloud_home.config_flow.async_validate_credentials"
USER_INPUT = {
    CONF_EMAIL: "test@example.com",
    CONF_PASSWORD: "password123",
}


@pytest.fixture
def mock_hass() -> Mock:
    """Create a mock Home Assistant instance."""
    return Mock()


@pytest.fixture
def flow(mock_hass: Mock) -> MelCloudHomeConfigFlow:
    """Create a MelCloudHomeConfigFlow instance for testing."""
    flow_instance = MelCloudHomeConfigFlow()
    flow_instance.hass = mock_hass
    flow_instance.async_set_unique_id = AsyncMock()
    flow_instance._abort_if_unique_id_configured = Mock()
    flow_instance.async_create_entry = Mock(
        return_value={"type": FlowResultType.CREATE_ENTRY},
    )
    flow_instance.async_show_form = Mock(return_value={"type": FlowResultType.FORM})
    return flow_instance


class TestAsyncValidateCredentials:
    """Tests for async_validate_credentials."""

    @pytest.mark.asyncio
    async def test_logs_in_and_closes_session(self, mock_hass: Mock) -> None:
        """Test that a throwaway session is used and closed."""
        session = Mock()
        session.aclose = AsyncMock()
        client = Mock()
        client.async_login = AsyncMock()
        with (
            patch(
                "custom_components.melcloud_home.config_flow.create_session_client",
                return_value=session,
            ),
            patch(
                "custom_components.melcloud_home.config_flow.MelCloudClient",
                return_value=client,
            ),
        ):
            await async_validate_credentials(mock_hass, "a@b.c", "pw")

        client.async_login.assert_awaited_once_with("a@b.c", "pw")
        session.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_closes_session_on_failure(self, mock_hass: Mock) -> None:
        """Test that the session is closed when the login fails."""
        session = Mock()
        session.aclose = AsyncMock()
        client = Mock()
        client.async_login = AsyncMock(side_effect=UnauthorizedError())
        with (
            patch(
                "custom_components.melcloud_home.config_flow.create_session_client",
                return_value=session,
            ),
            patch(
                "custom_components.melcloud_home.config_flow.MelCloudClient",
                return_value=client,
            ),
            pytest.raises(UnauthorizedError),
        ):
            await async_validate_credentials(mock_hass, "a@b.c", "pw")

        session.aclose.assert_awaited_once()


class TestMelCloudHomeConfigFlowAsyncStepUser:
    """Tests for async_step_user method."""

    @pytest.mark.asyncio
    async def test_async_step_user_shows_form_when_no_input(
        self,
        flow: MelCloudHomeConfigFlow,
    ) -> None:
        """Test that async_step_user shows form when no input provided."""
        result = await flow.async_step_user()
        flow.async_show_form.assert_called_once()
        call_args = flow.async_show_form.call_args
        assert call_args[1]["step_id"] == "user"
        assert call_args[1]["errors"] == {}
        assert result["type"] == FlowResultType.FORM

    @pytest.mark.asyncio
    async def test_async_step_user_creates_entry_on_successful_login(
        self,
        flow: MelCloudHomeConfigFlow,
    ) -> None:
        """Test that async_step_user creates entry on successful login."""
        with patch(VALIDATE_PATH, new=AsyncMock()) as mock_validate:
            result = await flow.async_step_user(dict(USER_INPUT))

        mock_validate.assert_awaited_once_with(
            flow.hass, "test@example.com", "password123"
        )
        flow.async_set_unique_id.assert_called_once_with("test@example.com")
        flow._abort_if_unique_id_configured.assert_called_once()
        call_args = flow.async_create_entry.call_args
        assert call_args[1]["title"] == "MELCloud Home (test@example.com)"
        assert call_args[1]["data"] == USER_INPUT
        assert result["type"] == FlowResultType.CREATE_ENTRY

    @pytest.mark.asyncio
    async def test_async_step_user_lowercases_email_for_unique_id(
        self,
        flow: MelCloudHomeConfigFlow,
    ) -> None:
        """Test that async_step_user lowercases email for unique ID."""
        user_input = {CONF_EMAIL: "Test@Example.COM", CONF_PASSWORD: "pw"}
        with patch(VALIDATE_PATH, new=AsyncMock()):
            await flow.async_step_user(user_input)
        flow.async_set_unique_id.assert_called_once_with("test@example.com")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (UnauthorizedError(), ERROR_INVALID_AUTH),
            (httpx.ConnectError("Connection failed"), ERROR_CANNOT_CONNECT),
            (httpx.TimeoutException("Request timeout"), ERROR_TIMEOUT),
            (LoginFormParseError("<html>"), ERROR_API_ERROR),
            (ValueError("Unexpected error"), ERROR_UNKNOWN),
        ],
    )
    async def test_async_step_user_maps_errors(
        self,
        flow: MelCloudHomeConfigFlow,
        error: Exception,
        expected: str,
    ) -> None:
        """Test that login failures are shown as form errors."""
        with patch(VALIDATE_PATH, new=AsyncMock(side_effect=error)):
            result = await flow.async_step_user(dict(USER_INPUT))

        flow.async_create_entry.assert_not_called()
        call_args = flow.async_show_form.call_args
        assert call_args[1]["errors"]["base"] == expected
        assert result["type"] == FlowResultType.FORM


class TestMelCloudHomeConfigFlowReauth:
    """Tests for the re-authentication steps."""

    @pytest.fixture
    def reauth_flow(self, flow: MelCloudHomeConfigFlow) -> MelCloudHomeConfigFlow:
        """Attach a stored entry and stub the update helper."""
        reauth_entry = Mock()
        reauth_entry.data = dict(USER_INPUT)
        flow._get_reauth_entry = Mock(return_value=reauth_entry)
        flow.async_update_reload_and_abort = Mock(
            return_value={"type": FlowResultType.ABORT},
        )
        return flow

    @pytest.mark.asyncio
    async def test_reauth_shows_password_form(
        self,
        reauth_flow: MelCloudHomeConfigFlow,
    ) -> None:
        """Test that re-authentication asks for the password."""
        result = await reauth_flow.async_step_reauth(dict(USER_INPUT))

        call_args = reauth_flow.async_show_form.call_args
        assert call_args[1]["step_id"] == "reauth_confirm"
        assert call_args[1]["description_placeholders"] == {
            "email": "test@example.com"
        }
        assert result["type"] == FlowResultType.FORM

    @pytest.mark.asyncio
    async def test_reauth_updates_password_and_reloads(
        self,
        reauth_flow: MelCloudHomeConfigFlow,
    ) -> None:
        """Test that a valid new password is stored in the entry."""
        with patch(VALIDATE_PATH, new=AsyncMock()) as mock_validate:
            result = await reauth_flow.async_step_reauth_confirm(
                {CONF_PASSWORD: "new-password"}
            )

        mock_validate.assert_awaited_once_with(
            reauth_flow.hass, "test@example.com", "new-password"
        )
        reauth_flow.async_update_reload_and_abort.assert_called_once_with(
            reauth_flow._get_reauth_entry.return_value,
            data_updates={CONF_PASSWORD: "new-password"},
        )
        assert result["type"] == FlowResultType.ABORT

    @pytest.mark.asyncio
    async def test_reauth_rejected_password_shows_error(
        self,
        reauth_flow: MelCloudHomeConfigFlow,
    ) -> None:
        """Test that a rejected password keeps the form open."""
        with patch(VALIDATE_PATH, new=AsyncMock(side_effect=UnauthorizedError())):
            result = await reauth_flow.async_step_reauth_confirm(
                {CONF_PASSWORD: "wrong"}
            )

        reauth_flow.async_update_reload_and_abort.assert_not_called()
        call_args = reauth_flow.async_show_form.call_args
        assert call_args[1]["errors"]["base"] == ERROR_INVALID_AUTH
        assert result["type"] == FlowResultType.FORM


class TestOptions:
    """Tests for the options schema and flow."""

    def test_schema_defaults_follow_settings_defaults(self) -> None:
        """Test that empty options produce the default values."""
        schema = build_options_schema({})
        assert schema({}) == {
            CONF_POLL_INTERVAL: 60,
            CONF_MIN_REQUEST_INTERVAL: 0.5,
            CONF_ENABLE_FAN: True,
            CONF_ENABLE_SWING: True,
            CONF_ENABLE_STANDBY: False,
            CONF_ENABLE_DHW: True,
        }

    def test_schema_defaults_follow_current_options(self) -> None:
        """Test that existing options are offered as defaults."""
        schema = build_options_schema(
            {CONF_POLL_INTERVAL: 120, CONF_ENABLE_STANDBY: True}
        )
        result = schema({})
        assert result[CONF_POLL_INTERVAL] == 120
        assert result[CONF_ENABLE_STANDBY] is True

    def test_schema_rejects_poll_interval_below_floor(self) -> None:
        """Test that poll intervals under 30 seconds are rejected."""
        schema = build_options_schema({})
        with pytest.raises(vol.Invalid):
            schema({CONF_POLL_INTERVAL: 10})

    def test_schema_rejects_negative_request_interval(self) -> None:
        """Test that negative pacing intervals are rejected."""
        schema = build_options_schema({})
        with pytest.raises(vol.Invalid):
            schema({CONF_MIN_REQUEST_INTERVAL: -1})

    @pytest.mark.asyncio
    async def test_options_flow_stores_user_input(self) -> None:
        """Test that submitted options become the entry options."""
        options_flow = MelCloudHomeOptionsFlow()
        options_flow.async_create_entry = Mock(
            return_value={"type": FlowResultType.CREATE_ENTRY},
        )
        user_input = {CONF_POLL_INTERVAL: 90, CONF_ENABLE_FAN: False}

        result = await options_flow.async_step_init(user_input)

        options_flow.async_create_entry.assert_called_once_with(data=user_input)
        assert result["type"] == FlowResultType.CREATE_ENTRY
