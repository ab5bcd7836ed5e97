import secrets
import time


def make_client_id(prefix: str) -> str:
    """Stable id for a record created on this device.

    Generated once, when the record is created, and carried unchanged through
    every later sync as its merge key.
    """
    return f"{prefix}_{time.time_ns() // 1_000_000}_{secrets.token_hex(6)}"
