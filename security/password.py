import bcrypt

MIN_PASSWORD_LENGTH = 8
DEFAULT_ROUNDS = 12


def is_acceptable_password(plain_password) -> bool:
    return isinstance(plain_password, str) and len(plain_password) >= MIN_PASSWORD_LENGTH


def hash_password(plain_password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    if not isinstance(plain_password, str) or not plain_password:
        raise ValueError("Password must be a non-empty string")
    digest = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return digest.decode("utf-8")


def verify_password(plain_password: str, password_hash) -> bool:
    # members created by the coach have no password until they activate
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False
