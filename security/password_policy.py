import re
from typing import List, Tuple

from flask import current_app

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"\d")
_SYMBOL = re.compile(r"[^A-Za-z0-9]")

_DEFAULTS = {
    "PASSWORD_MIN_LEN": 8,
    "PASSWORD_MAX_LEN": 128,
    "PASSWORD_REQUIRE_UPPER": True,
    "PASSWORD_REQUIRE_LOWER": True,
    "PASSWORD_REQUIRE_DIGIT": True,
    "PASSWORD_REQUIRE_SYMBOL": False,
}


def _cfg(name: str):
    try:
        return current_app.config.get(name, _DEFAULTS[name])
    except RuntimeError:
        # outside an app context (CLI, unit tests)
        return _DEFAULTS[name]

def validate_password(pw: str) -> Tuple[bool, List[str]]:
    errors: List[str] = []

    if not isinstance(pw, str):
        return False, ["Password must be a string"]

    min_len = int(_cfg("PASSWORD_MIN_LEN"))
    max_len = int(_cfg("PASSWORD_MAX_LEN"))

    if len(pw) < min_len:
        errors.append(f"Password must be at least {min_len} characters")
    if len(pw) > max_len:
        errors.append(f"Password must be at most {max_len} characters")

    rules = (
        ("PASSWORD_REQUIRE_UPPER", _UPPER, "Password must include at least 1 uppercase letter"),
        ("PASSWORD_REQUIRE_LOWER", _LOWER, "Password must include at least 1 lowercase letter"),
        ("PASSWORD_REQUIRE_DIGIT", _DIGIT, "Password must include at least 1 number"),
        ("PASSWORD_REQUIRE_SYMBOL", _SYMBOL, "Password must include at least 1 symbol"),
    )
    for key, pattern, message in rules:
        if bool(_cfg(key)) and not pattern.search(pw):
            errors.append(message)

    return (len(errors) == 0), errors
