"""Tests for data models."""

from __future__ import annotations

import logging

import pytest

from pyvesynccloud.models import AuthFailure, AuthFlow, DeviceInfo, ExclusionConfig, LoginResult, Session


def _device(**overrides: object) -> DeviceInfo:
    fields: dict[str, object] = {
        "cid": "cid-1",
        "uuid": "uuid-1",
        "name": "Kitchen Plug",
        "device_type": "ESW15-USA",
        "type": "wifi-switch",
    }
    fields.update(overrides)
    return DeviceInfo(**fields)  # type: ignore[arg-type]


class TestSession:
    """Tests for the Session model."""

    def test_is_valid(self) -> None:
        assert Session(token="t", account_id="a", region="US", api_base_url="u").is_valid is True
        assert Session(token="", account_id="a", region="US", api_base_url="u").is_valid is False
        assert Session(token="t", account_id="", region="US", api_base_url="u").is_valid is False

    def test_to_dict_uses_camel_case(self) -> None:
        session = Session(
            token="t",
            account_id="a",
            region="EU",
            api_base_url="https://smartapi.vesync.eu",
            country_code="DE",
            auth_flow_used=AuthFlow.NEW,
            issued_at=1,
            expires_at=2,
            last_validated_at=3,
            library_version="0.1.0",
        )

        assert session.to_dict() == {
            "token": "t",
            "accountId": "a",
            "countryCode": "DE",
            "region": "EU",
            "apiBaseUrl": "https://smartapi.vesync.eu",
            "authFlowUsed": "new",
            "issuedAt": 1,
            "expiresAt": 2,
            "lastValidatedAt": 3,
            "libraryVersion": "0.1.0",
        }

    def test_from_dict_restores_fields(self) -> None:
        session = Session.from_dict(
            {
                "token": "t",
                "accountId": "a",
                "region": "US",
                "apiBaseUrl": "https://smartapi.vesync.com",
                "authFlowUsed": "legacy",
                "expiresAt": 99,
            }
        )

        assert session.token == "t"
        assert session.account_id == "a"
        assert session.auth_flow_used is AuthFlow.LEGACY
        assert session.expires_at == 99
        assert session.country_code is None

    def test_from_dict_tolerates_bad_values(self) -> None:
        session = Session.from_dict({"authFlowUsed": "quantum"})

        assert session.auth_flow_used is None
        assert session.is_valid is False
        assert session.region == ""


class TestLoginResult:
    """Tests for the LoginResult model."""

    def test_failed(self) -> None:
        result = LoginResult.failed(AuthFailure.CROSS_REGION, "moved", suggested_country_code="FR")

        assert result.success is False
        assert result.failure is AuthFailure.CROSS_REGION
        assert result.message == "moved"
        assert result.suggested_country_code == "FR"

    @pytest.mark.parametrize(
        ("failure", "fatal"),
        [
            (AuthFailure.CREDENTIALS, True),
            (AuthFailure.AMBIGUOUS_REGION, True),
            (AuthFailure.CROSS_REGION, False),
            (AuthFailure.NETWORK, False),
            (AuthFailure.MALFORMED, False),
            (AuthFailure.APP_VERSION, False),
        ],
    )
    def test_is_fatal(self, failure: AuthFailure, fatal: bool) -> None:
        assert LoginResult.failed(failure).is_fatal is fatal

    def test_success_is_not_fatal(self) -> None:
        assert LoginResult(success=True, token="t").is_fatal is False


class TestExclusionConfig:
    """Tests for device exclusion rules."""

    def test_empty_config_excludes_nothing(self) -> None:
        assert ExclusionConfig().matches(_device()) is False

    def test_type(self) -> None:
        assert ExclusionConfig(type=["WIFI-SWITCH"]).matches(_device()) is True
        assert ExclusionConfig(type=["wifi-air"]).matches(_device()) is False

    def test_model_prefix(self) -> None:
        assert ExclusionConfig(model=["esw15"]).matches(_device()) is True
        assert ExclusionConfig(model=["ESW01"]).matches(_device()) is False

    def test_name(self) -> None:
        assert ExclusionConfig(name=[" kitchen plug "]).matches(_device()) is True
        assert ExclusionConfig(name=["Kitchen"]).matches(_device()) is False

    def test_name_pattern(self) -> None:
        assert ExclusionConfig(name_pattern=[r"^kitchen"]).matches(_device()) is True
        assert ExclusionConfig(name_pattern=[r"garage$"]).matches(_device()) is False

    def test_invalid_pattern_is_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING)
        config = ExclusionConfig(name_pattern=["(unclosed", "plug$"])

        assert config.matches(_device()) is True
        assert "(unclosed" in caplog.text

    def test_id(self) -> None:
        assert ExclusionConfig(id=["cid-1"]).matches(_device()) is True
        assert ExclusionConfig(id=["uuid-1"]).matches(_device()) is True
        assert ExclusionConfig(id=["other"]).matches(_device(uuid=None)) is False


class TestDeviceInfo:
    """Tests for DeviceInfo."""

    def test_is_online(self) -> None:
        assert _device(connection_status="online").is_online is True
        assert _device(connection_status="offline").is_online is False
        assert _device().is_online is False
