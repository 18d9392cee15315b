"""Random identifiers for container names, run ids and throwaway secrets."""

import secrets
import string

_ALPHANUMERIC = string.ascii_letters + string.digits


def rand_string(length: int) -> str:
    """Random alphanumeric string, safe inside container names."""
    if length <= 0:
        raise ValueError("Length must be positive")
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def new_handle(name: str) -> str:
    """Container handle: ``name`` followed by 10 random alphanumerics."""
    return f"{name}{rand_string(10)}"


def random_id(length: int = 12) -> str:
    """Lower-case hex id used to tag one harness run."""
    if length <= 0:
        raise ValueError("Length must be positive")
    return secrets.token_hex((length + 1) // 2)[:length]
