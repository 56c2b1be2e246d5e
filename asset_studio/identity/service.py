import logging
import secrets
import string
import time

from ..exceptions import BadRequestError
from ..storage.service import Persister, THEME_KEY, USER_ID_KEY

THEMES = ("light", "dark")

_ALPHABET = string.ascii_lowercase + string.digits


def new_user_id() -> str:
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(7))
    return f"user-{int(time.time() * 1000)}-{suffix}"


def get_or_create_user_id(persister: Persister) -> str:
    """Return the anonymous identity for this storage, creating it once."""
    user_id = persister.load_raw(USER_ID_KEY)
    if user_id:
        return user_id

    user_id = new_user_id()
    if not persister.save_raw(USER_ID_KEY, user_id):
        # Still usable for this session; a new identity is minted next time.
        logging.warning("Could not persist the anonymous user id.")
    else:
        logging.info(f"Created anonymous user {user_id}")
    return user_id


def load_theme(persister: Persister) -> str | None:
    theme = persister.load_raw(THEME_KEY)
    return theme if theme in THEMES else None


def save_theme(persister: Persister, theme: str) -> bool:
    if theme not in THEMES:
        raise BadRequestError(f"Unknown theme: {theme}")
    return persister.save_raw(THEME_KEY, theme)
