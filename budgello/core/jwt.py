from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import jwt

from ..config import Settings


def create_access_token(data: Dict[str, Any], config: Settings) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=config.access_token_expire_minutes)
    to_encode.update({"iat": int(now.timestamp()), "exp": int(expire.timestamp())})
    return jwt.encode(to_encode, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str, config: Settings) -> Dict[str, Any]:
    # Raises ExpiredSignatureError / JWTError; callers map them to 401
    return jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
