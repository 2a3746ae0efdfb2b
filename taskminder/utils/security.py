import bcrypt

BCRYPT_ROUNDS = 12


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt at a fixed cost factor."""
    password_bytes = password.encode('utf-8')[:72]  # bcrypt only looks at 72 bytes
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against its stored hash."""
    if not plain_password or not hashed_password:
        return False
    password_bytes = plain_password.encode('utf-8')[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # malformed hash in the store
        return False
