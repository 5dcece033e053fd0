"""Unit tests for gateway Pydantic schemas."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from src.pp_gateway.user.db_models import UserModel
from src.pp_gateway.user.schemas import LoginResponse, MeResponse, RegisterRequest, UserInfo


class TestRegisterRequest:
    def test_valid_input(self) -> None:
        req = RegisterRequest(
            username="alice",
            email="alice@example.com",
            password="SecureP@ss1",
        )
        assert req.username == "alice"

    def test_username_too_short(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="ab", email="a@b.com", password="SecureP@ss1")

    def test_username_too_long(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(
                username="a" * 65, email="a@b.com", password="SecureP@ss1"
            )

    def test_username_invalid_chars(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(
                username="alice!", email="a@b.com", password="SecureP@ss1"
            )

    def test_invalid_email(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(
                username="alice", email="not-an-email", password="SecureP@ss1"
            )

    def test_password_too_short(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice", email="a@b.com", password="Ab1")

    def test_password_no_uppercase(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(
                username="alice", email="a@b.com", password="alllower1"
            )

    def test_password_no_lowercase(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(
                username="alice", email="a@b.com", password="ALLUPPER1"
            )

    def test_password_no_digit(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(
                username="alice", email="a@b.com", password="NoDigitPass"
            )


class TestUserInfo:
    def _user(self) -> UserModel:
        return UserModel(
            id="01JUSER",
            username="alice",
            email="alice@example.com",
            password_hash="x",
            token_balance=12,
            points_balance=40,
            is_active=True,
            is_admin=True,
            created_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC),
        )

    def test_user_info_from_model(self) -> None:
        info = UserInfo.from_model(self._user())
        assert info.user_id == "01JUSER"
        assert info.is_admin is True

    def test_me_response_carries_both_balances(self) -> None:
        me = MeResponse.from_model(self._user())
        assert me.token_balance == 12
        assert me.points_balance == 40
        assert me.created_at == "2026-01-02T03:04:05+00:00"


class TestLoginResponse:
    def test_defaults(self) -> None:
        resp = LoginResponse(
            access_token="a",
            refresh_token="r",
            user=UserInfo(user_id="u", username="alice", email="a@b.com"),
        )
        assert resp.token_type == "Bearer"
        assert resp.expires_in == 1800
        assert resp.user.is_admin is False
