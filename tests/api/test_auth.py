"""Bearer token handling in require_learner."""

from __future__ import annotations

import datetime

import jwt
from fastapi.testclient import TestClient

from lms_progress.services import token_service
from tests.conftest import auth


def _expired_token() -> str:
    past = datetime.datetime.now(datetime.UTC) - datetime.timedelta(hours=1)
    claims = {
        "iss": token_service.ISSUER,
        "aud": token_service.AUDIENCE,
        "sub": "1",
        "iat": past - datetime.timedelta(minutes=15),
        "exp": past,
        "jti": "expired-token",
    }
    return jwt.encode(claims, token_service._private_key, algorithm="ES256")


def test_valid_token_accepted(client: TestClient) -> None:
    assert client.get("/v1/enrollments", headers=auth(2)).status_code == 200


def test_expired_token_rejected(client: TestClient) -> None:
    resp = client.get(
        "/v1/enrollments", headers={"Authorization": f"Bearer {_expired_token()}"}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"
    assert resp.headers["www-authenticate"] == "Bearer"


def test_wrong_audience_rejected(client: TestClient) -> None:
    token = jwt.encode(
        {"iss": token_service.ISSUER, "aud": "someone-else", "sub": "1"},
        token_service._private_key,
        algorithm="ES256",
    )
    resp = client.get("/v1/enrollments", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_token_round_trip_carries_roles() -> None:
    token = token_service.create_access_token(sub="5", roles=["student", "mentor"])
    claims = token_service.decode_access_token(token)
    assert claims["sub"] == "5"
    assert claims["roles"] == ["student", "mentor"]
