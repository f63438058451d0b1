"""
Tests for password hashing and access tokens.
"""

from datetime import datetime, timedelta, timezone

from jose import jwt

from shopledger.auth.jwt import ALGORITHM, create_access_token, verify_token
from shopledger.config import settings
from shopledger.utils.password import hash_password, verify_password


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("s3cret")
        assert hashed != "s3cret"
        assert verify_password("s3cret", hashed)
        assert not verify_password("wrong", hashed)

    def test_hashes_are_salted(self):
        assert hash_password("same") != hash_password("same")


class TestTokens:
    def test_roundtrip(self):
        token = create_access_token(42, "manager")
        assert verify_token(token) == {"user_id": 42, "role": "manager"}

    def test_expired(self):
        token = create_access_token(1, "admin", expires_delta=timedelta(seconds=-1))
        assert verify_token(token) is None

    def test_wrong_secret(self):
        token = jwt.encode(
            {"sub": "1", "role": "admin", "type": "access"},
            "some-other-secret",
            algorithm=ALGORITHM,
        )
        assert verify_token(token) is None

    def test_wrong_type(self):
        token = jwt.encode(
            {
                "sub": "1",
                "role": "admin",
                "type": "refresh",
                "exp": datetime.now(timezone.utc) + timedelta(hours=1),
            },
            settings.secret_key,
            algorithm=ALGORITHM,
        )
        assert verify_token(token) is None

    def test_missing_role(self):
        token = jwt.encode(
            {"sub": "1", "type": "access"},
            settings.secret_key,
            algorithm=ALGORITHM,
        )
        assert verify_token(token) is None

    def test_garbage(self):
        assert verify_token("not.a.jwt") is None
