import bcrypt

BCRYPT_ROUNDS = 10
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def is_password_hash(value: str) -> bool:
    return isinstance(value, str) and value.startswith(BCRYPT_PREFIXES)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not is_password_hash(hashed_password):
        return False
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
