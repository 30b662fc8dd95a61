import uuid

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer

from docspace.core.security import verify_token

# Токены выдает внешняя платформа, здесь они только проверяются
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_actor(token: str = Depends(oauth2_scheme)) -> uuid.UUID:
    payload = verify_token(token)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        return uuid.UUID(payload["sub"])
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token subject")
