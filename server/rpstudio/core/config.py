# pyright: reportMissingImports=false

from __future__ import annotations

from functools import lru_cache
import base64
import hashlib
from typing import ClassVar, cast

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_DEV_API_KEY_SECRET = "dev-api-key-secret-change-me"


class Settings(BaseSettings):
    """Environment-driven settings with local dev defaults."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
        extra="ignore",
    )

    env: str = "dev"
    log_level: str = "INFO"

    # Absent means the store is never contacted and every operation sees it as unavailable.
    database_url: str | None = None

    # External identity that is granted the admin role on login.
    owner_open_id: str | None = None

    api_key_secret: str = _DEV_API_KEY_SECRET
    api_key_master_key: bytes | None = None

    images_list_default_limit: int = 50

    @field_validator("database_url", "owner_open_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v: object) -> object:
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    @field_validator("api_key_master_key", mode="before")
    @classmethod
    def _parse_api_key_master_key(cls, v: object) -> bytes | None:
        if v is None:
            return None
        if isinstance(v, (bytes, bytearray)):
            raw_bytes = bytes(v)
            if raw_bytes == b"":
                return None
            if len(raw_bytes) != 32:
                raise ValueError("API_KEY_MASTER_KEY must be 32 bytes")
            return raw_bytes
        if isinstance(v, str):
            s = v.strip()
            if s == "":
                return None
            pad = "=" * ((4 - (len(s) % 4)) % 4)
            try:
                key_bytes = base64.urlsafe_b64decode((s + pad).encode("ascii"))
            except Exception as e:
                raise ValueError("API_KEY_MASTER_KEY contains invalid base64url") from e
            if len(key_bytes) != 32:
                raise ValueError("API_KEY_MASTER_KEY must decode to 32 bytes")
            return key_bytes
        return cast(bytes, v)

    @property
    def api_key_master_key_bytes(self) -> bytes:
        if self.api_key_master_key is not None:
            return self.api_key_master_key

        seed = (self.api_key_secret + "|api_key_master_key|v1").encode("utf-8")
        return hashlib.sha256(seed).digest()

    def _is_prod_env(self) -> bool:
        return self.env.strip().lower() in ("prod", "production")

    @model_validator(mode="after")
    def _validate_prod_config(self) -> "Settings":
        if not self._is_prod_env():
            return self

        problems: list[str] = []

        if not self.database_url:
            problems.append("DATABASE_URL must be set in production.")

        if self.api_key_master_key is None:
            problems.append("API_KEY_MASTER_KEY must be set in production (base64url 32 bytes).")

        if problems:
            details = "\n".join(f"- {p}" for p in problems)
            raise ValueError(
                f"Production settings validation failed (ENV={self.env!r}). Fix the following before starting:\n"
                + details
            )

        return self

    @model_validator(mode="after")
    def _validate_limits(self) -> "Settings":
        if self.images_list_default_limit <= 0:
            raise ValueError("IMAGES_LIST_DEFAULT_LIMIT must be > 0")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
