from __future__ import annotations

import getpass
import os


OWNER_ENV_VARS = ("ZIPTREE_OWNER",)
FALLBACK_OWNER = "local"


def resolve_owner(config_owner: str | None = None) -> str:
    """Resolve the snapshot owner from env, config, or the OS account name."""
    for env_name in OWNER_ENV_VARS:
        value = os.getenv(env_name, "").strip()
        if value:
            return value

    if config_owner and config_owner.strip():
        return config_owner.strip()

    try:
        value = getpass.getuser().strip()
    except (KeyError, OSError):
        # No passwd entry and no LOGNAME/USER (e.g. some containers).
        value = ""
    return value or FALLBACK_OWNER
