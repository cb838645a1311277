"""Verification of signed session tokens (issuing them is the login service's job)."""

from itsdangerous import BadData, SignatureExpired, URLSafeTimedSerializer

from src.core.exceptions import InvalidTokenError

TOKEN_SALT = "checkers-session"


class TokenVerifier:
    def __init__(self, secret_key: str, max_age_sec: int) -> None:
        self.max_age_sec = max_age_sec
        self._serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)

    def verify(self, token: str) -> str:
        """Return the identity the token was signed for."""
        try:
            payload = self._serializer.loads(token, max_age=self.max_age_sec)
        except SignatureExpired as exc:
            raise InvalidTokenError("Token expired.") from exc
        except BadData as exc:
            raise InvalidTokenError("Token invalid.") from exc

        user_id = payload.get("user_id") if isinstance(payload, dict) else None
        if user_id is None or str(user_id) == "":
            raise InvalidTokenError("Token carries no user.")
        return str(user_id)

    def sign(self, identity: str) -> str:
        """Same format the login service issues. Handy for tooling and tests."""
        return self._serializer.dumps({"user_id": identity})
