from typing import Generator, Optional

from fastapi import Header, HTTPException, status

from eden.core import security
from eden.core.config import settings
from eden.db.session import SessionLocal


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def verify_api_key_dependency(
    x_api_key: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> bool:
    """
    Dependency to verify API key for scorecard endpoints
    """
    if not settings.REQUIRE_API_KEY:
        return True

    # Extract API key from headers
    api_key = None
    if x_api_key:
        api_key = x_api_key
    elif authorization and authorization.startswith("Bearer "):
        api_key = authorization.split(" ", 1)[1]

    if not api_key or not security.verify_api_key(api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )

    return True
