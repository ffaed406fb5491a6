"""
Tracking - Shipment tracking identifiers
"""
import hashlib
import random
import string


def format_address(street_address: str, city: str, state: str, zip_code: int) -> str:
    return f"{street_address}, {city}, {state}, {zip_code}"


def create_tracking_id(salt: str) -> str:
    """Derive a tracking ID such as ``QX-21123-104567890`` from ``salt``.

    The generator is seeded from a digest of the salt, so the same address
    always yields the same ID.
    """
    rng = random.Random(hashlib.sha256(salt.encode("utf-8")).digest())

    def letters(n: int) -> str:
        return "".join(rng.choice(string.ascii_uppercase) for _ in range(n))

    def digits(n: int) -> str:
        return "".join(rng.choice(string.digits) for _ in range(n))

    # Lengths count UTF-8 bytes, not characters.
    size = len(salt.encode("utf-8"))
    return f"{letters(2)}-{size}{digits(3)}-{size // 2}{digits(7)}"
