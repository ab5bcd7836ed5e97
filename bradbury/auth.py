from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bradbury.config import API_TOKENS

bearer = HTTPBearer(auto_error=False)


def parse_token_map(raw: str) -> dict[str, str]:
    """Parse ``token:user,token:user`` into a token -> user id map."""
    tokens = {}
    for pair in raw.split(","):
        token, sep, user_id = pair.strip().partition(":")
        if sep and token.strip() and user_id.strip():
            tokens[token.strip()] = user_id.strip()
    return tokens


TOKEN_MAP = parse_token_map(API_TOKENS)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> str:
    if credentials is None:
        raise HTTPException(status_code=401, detail="missing_token")
    user_id = TOKEN_MAP.get(credentials.credentials)
    if user_id is None:
        raise HTTPException(status_code=401, detail="invalid_token")
    return user_id
