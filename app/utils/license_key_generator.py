"""
License Key Generator Utility

Generates license keys in format: LICENSE-<epoch ms>-<9 base36 chars>
Example: LICENSE-1718000000000-K3J9X0QZ2

Keys are cosmetic identifiers handed back to the buyer. They are not
secrets and are not used for authorization.
"""

import random
import string
import time
from typing import Optional

LICENSE_PREFIX = "LICENSE"
SUFFIX_LENGTH = 9
BASE36_ALPHABET = string.digits + string.ascii_uppercase


def generate_license_key(timestamp_ms: Optional[int] = None) -> str:
    """
    Generate a license key.

    Args:
        timestamp_ms: Epoch milliseconds to embed (defaults to now)

    Returns:
        License key like LICENSE-1718000000000-K3J9X0QZ2
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)

    suffix = "".join(random.choices(BASE36_ALPHABET, k=SUFFIX_LENGTH))
    return f"{LICENSE_PREFIX}-{timestamp_ms}-{suffix}"


def validate_license_key_format(license_key: str) -> bool:
    """
    Validate that a license key matches the expected format.

    Args:
        license_key: License key string to validate

    Returns:
        True if valid format, False otherwise
    """
    parts = license_key.split("-")
    if len(parts) != 3 or parts[0] != LICENSE_PREFIX:
        return False

    timestamp_part, suffix = parts[1], parts[2]
    if not timestamp_part.isdigit():
        return False

    return len(suffix) == SUFFIX_LENGTH and all(c in BASE36_ALPHABET for c in suffix)
