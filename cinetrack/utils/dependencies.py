from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from cinetrack.utils.security import decode_token
from cinetrack.utils.exceptions import UnauthenticatedError

# auto_error=False so a missing header renders as our 401 {error} body
security = HTTPBearer(auto_error=False)


# Dependency to get the authenticated user id
async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    if credentials is None:
        raise UnauthenticatedError()

    payload = decode_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise UnauthenticatedError("Invalid token")

    return str(payload["sub"])
