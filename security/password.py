import bcrypt
from flask import current_app

DEFAULT_ROUNDS = 12

def _rounds() -> int:
    try:
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_ROUNDS))
    except RuntimeError:
        return DEFAULT_ROUNDS

def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or not plain_password:
        raise ValueError("Password must be a non-empty string")
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt(rounds=_rounds()))
    return hashed.decode("utf-8")

def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False

def needs_rehash(password_hash: str) -> bool:
    """True when the stored hash uses a different cost than BCRYPT_ROUNDS."""
    # $2b$<cost>$<salt+digest>
    parts = (password_hash or "").split("$")
    if len(parts) < 4 or not parts[2].isdigit():
        return True
    return int(parts[2]) != _rounds()
