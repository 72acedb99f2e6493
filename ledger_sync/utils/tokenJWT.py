# utils/tokenJWT.py
from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ledger_sync.config import settings
from ledger_sync.exceptions import UnauthorizedError

# Authorization scheme; a missing header is reported as 401 by get_current_buyer_id
bearer_scheme = HTTPBearer(auto_error=False)

# Generate a new JWT access token
def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

# Token for a marketplace buyer; the subject is the account id
def create_buyer_token(user_id: int, expires_delta: timedelta = None) -> str:
    return create_access_token({"sub": str(user_id)}, expires_delta)

# Retrieve the id of the authenticated buyer from the bearer token
def get_current_buyer_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> int:
    if credentials is None:
        raise UnauthorizedError()
    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        subject = payload.get("sub")
        # Ensure the subject is present in the token payload
        if subject is None:
            raise UnauthorizedError()
        return int(subject)
    except (JWTError, ValueError):
        raise UnauthorizedError()
