import bcrypt

def validate_password(plain_password, min_length: int = 6) -> list:
    """Returns a list of policy problems; empty when the password is acceptable."""
    errors = []
    if not isinstance(plain_password, str) or not plain_password:
        return ["Password is required"]
    if len(plain_password) < min_length:
        errors.append(f"Password must be at least {min_length} characters")
    # bcrypt only looks at the first 72 bytes
    if len(plain_password.encode("utf-8")) > 72:
        errors.append("Password must be at most 72 bytes")
    return errors

def hash_password(plain_password: str, rounds: int = 12) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")

def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8")
        )
    except ValueError:
        return False
