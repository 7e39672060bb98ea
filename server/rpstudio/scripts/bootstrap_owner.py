from __future__ import annotations

import argparse
from typing import cast

from rpstudio.core.config import get_settings
from rpstudio.core.logging import configure_logging
from rpstudio.repositories.users import UserOut, UserUpsert, get_user_by_open_id, upsert_user


def bootstrap_owner(
    *,
    open_id: str,
    name: str | None,
    email: str | None,
    login_method: str | None,
) -> UserOut:
    fields: dict[str, object] = {"open_id": open_id}
    if name is not None:
        fields["name"] = name
    if email is not None:
        fields["email"] = email
    if login_method is not None:
        fields["login_method"] = login_method

    # Role is left unset so the owner rule applies when open_id matches OWNER_OPEN_ID.
    upsert_user(UserUpsert.model_validate(fields))

    user = get_user_by_open_id(open_id)
    if user is None:
        raise RuntimeError(f"user open_id={open_id!r} not found after upsert; is DATABASE_URL set?")
    return user


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Create or refresh the owner account (idempotent). "
            "Defaults to OWNER_OPEN_ID; the owner is granted the admin role."
        )
    )
    _ = parser.add_argument(
        "--open-id",
        default=None,
        help="External identity to upsert (default: OWNER_OPEN_ID).",
    )
    _ = parser.add_argument("--name", default=None, help="Display name (unchanged if omitted).")
    _ = parser.add_argument("--email", default=None, help="Email (unchanged if omitted).")
    _ = parser.add_argument(
        "--login-method", default=None, help="Login method label (unchanged if omitted)."
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)

    open_id = cast(str | None, args.open_id) or settings.owner_open_id
    if not open_id:
        raise SystemExit("bootstrap_owner failed: pass --open-id or set OWNER_OPEN_ID")

    try:
        user = bootstrap_owner(
            open_id=open_id,
            name=cast(str | None, args.name),
            email=cast(str | None, args.email),
            login_method=cast(str | None, args.login_method),
        )
    except Exception as exc:
        raise SystemExit(f"bootstrap_owner failed: {type(exc).__name__}: {exc}")

    print(f"user_id={user.id} open_id={user.open_id} role={user.role}")


if __name__ == "__main__":
    main()
