# returncheck/hashing.py
import hashlib

from argon2.low_level import Type, hash_secret_raw

class PhoneHasher:
    """
    Deterministic, non-reversible lookup key for a normalized phone number.

    Both the report (write) and check (read) paths must go through the same
    hasher instance; a different salt or scheme yields different keys, so
    rotating either orphans every stored report.

      sha256:   SHA-256 over phone || salt
      argon2id: Argon2id raw hash of phone, salt as the Argon2 salt
    """

    def __init__(self, salt: str, scheme: str = "sha256",
                 time_cost: int = 2, memory_cost: int = 19456, parallelism: int = 1):
        if not salt:
            raise ValueError("salt is required")
        self.salt = salt
        self.scheme = scheme
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism

    @classmethod
    def from_settings(cls, settings) -> "PhoneHasher":
        return cls(
            settings.PHONE_HASH_SALT,
            scheme=settings.PHONE_HASH_SCHEME,
            time_cost=settings.ARGON2_TIME_COST,
            memory_cost=settings.ARGON2_MEMORY_COST,
            parallelism=settings.ARGON2_PARALLELISM,
        )

    def hash(self, phone: str) -> str:
        if self.scheme == "argon2id":
            return self._argon2id(phone)
        h = hashlib.sha256()
        h.update(phone.encode("utf-8"))
        h.update(self.salt.encode("utf-8"))
        return h.hexdigest()

    def _argon2id(self, phone: str) -> str:
        # Argon2 requires at least 8 bytes of salt; stretch short salts.
        salt = hashlib.sha256(self.salt.encode("utf-8")).digest()
        raw = hash_secret_raw(
            secret=phone.encode("utf-8"),
            salt=salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            hash_len=32,
            type=Type.ID,
        )
        return raw.hex()

def truncate_for_logging(phone_key: str) -> str:
    return f"{phone_key[:12]}..."
