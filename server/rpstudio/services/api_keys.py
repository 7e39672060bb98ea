from __future__ import annotations

import logging

from cryptography.exceptions import InvalidTag

from rpstudio.core.config import get_settings
from rpstudio.core.secrets import ApiKeyVault, key_hint
from rpstudio.repositories.api_keys import ApiKeyCreate, create_api_key, get_api_key, touch_api_key


logger = logging.getLogger(__name__)


def _vault() -> ApiKeyVault:
    return ApiKeyVault(get_settings().api_key_master_key_bytes)


def store_api_key(user_id: int, key_name: str, plain_key: str) -> int:
    """Seal ``plain_key`` to ``user_id`` and persist only the sealed value."""
    sealed = _vault().seal(plain_key, user_id=user_id)
    key_id = create_api_key(user_id, ApiKeyCreate(key_name=key_name, encrypted_key=sealed))
    logger.info("Stored provider key id=%s for user %s (%s)", key_id, user_id, key_hint(plain_key))
    return key_id


def reveal_api_key(key_id: int, user_id: int) -> str | None:
    """Open an owned key for an outbound call and record that it was used.

    Returns ``None`` when the key is missing, not owned, sealed for another
    user, or sealed under a different master key.
    """
    row = get_api_key(key_id, user_id)
    if row is None:
        return None
    try:
        plain = _vault().open(row.encrypted_key, user_id=row.user_id)
    except (InvalidTag, ValueError):
        logger.warning("Cannot open provider key id=%s for user %s", key_id, user_id)
        return None
    touch_api_key(key_id, user_id)
    return plain
