from __future__ import annotations
import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from fitpool.security import decode_token

security = HTTPBearer()

async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    """Resolve the bearer token to the calling principal id (the `sub` claim)."""
    try:
        data = decode_token(credentials.credentials)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if data.get("type") != "access":
        raise HTTPException(status_code=401, detail="Wrong token type")
    sub = data.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Token has no subject")
    return str(sub)
