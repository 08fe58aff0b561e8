from jose import JWTError, jwt
from typing import Optional
from dotenv import load_dotenv
import os

# Load environment variables
load_dotenv()

# Tokens are issued by the external auth provider; we only verify them
SECRET_KEY = os.getenv("AUTH_JWT_SECRET", "fallback-secret-key")
ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE") or None


# JWT token decoding
def decode_token(token: str) -> Optional[dict]:
    """Return the token claims, or None if the signature/expiry/audience is invalid"""
    options = {"verify_aud": AUDIENCE is not None}
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], audience=AUDIENCE, options=options)
    except JWTError:
        return None
