from passlib.context import CryptContext


class PasswordHasher:
    """Salted one-way hashing of admin passwords (bcrypt)."""

    def __init__(self, rounds: int = 12):
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, plain_password: str) -> str:
        return self.pwd_context.hash(plain_password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        # A corrupted or foreign hash in the store counts as a mismatch
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            return False
