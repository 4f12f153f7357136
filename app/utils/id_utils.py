"""
Nanoid primary keys for users, saved results and library entries.
"""
import re

from nanoid import generate

ID_SIZE = 21
ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def generate_id() -> str:
    return generate(size=ID_SIZE)


def is_valid_nanoid(value) -> bool:
    """Shape check for ids taken from the URL, so junk never reaches a query"""
    return isinstance(value, str) and len(value) == ID_SIZE and ID_PATTERN.fullmatch(value) is not None
