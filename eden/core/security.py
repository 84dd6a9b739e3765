import hmac
from typing import Iterable, Optional

from eden.core.config import settings


def verify_api_key(api_key: str, valid_keys: Optional[Iterable[str]] = None) -> bool:
    """
    Verify API key against configured valid keys
    """
    if valid_keys is None:
        valid_keys = settings.VALID_API_KEYS
    if isinstance(valid_keys, str):
        valid_keys = [valid_keys]

    return any(hmac.compare_digest(api_key.encode(), key.encode()) for key in valid_keys)
