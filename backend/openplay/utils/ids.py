"""Opaque short ids for sessions, players and matches."""

import secrets
import string

ID_ALPHABET = string.digits + string.ascii_lowercase
ID_LENGTH = 7


def generate_id() -> str:
    """Random 7-character base-36 id, e.g. "k3f9a0z"."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
