"""
Order ID helpers.

New orders get an opaque id (ORDER-<epoch ms>-<hex>) and the owner is kept in
a pending-order record. Older clients built ORDER-<base64 email>-<timestamp>
themselves; decode_legacy_order_email reads the email back out of those.
"""

import base64
import binascii
import logging
import secrets
import time
from typing import Optional

logger = logging.getLogger(__name__)

ORDER_PREFIX = "ORDER"


def generate_order_id() -> str:
    """
    Generate an opaque order id.

    Returns:
        Order id like ORDER-1718000000000-9F2C4A1B7E
    """
    timestamp_ms = int(time.time() * 1000)
    return f"{ORDER_PREFIX}-{timestamp_ms}-{secrets.token_hex(5).upper()}"


def decode_legacy_order_email(order_id: Optional[str]) -> Optional[str]:
    """
    Extract the email encoded in a legacy order id.

    Args:
        order_id: Order id as received from the client

    Returns:
        Decoded email, or None when the id carries no decodable email
    """
    if not order_id or not order_id.startswith(f"{ORDER_PREFIX}-"):
        return None

    parts = order_id.split("-")
    if len(parts) < 3 or not parts[1]:
        return None

    # Legacy clients may emit the URL-safe alphabet
    encoded = parts[1].replace("_", "/")
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        email = base64.b64decode(padded, validate=True).decode("utf-8")
    except (binascii.Error, ValueError, UnicodeDecodeError):
        logger.warning(f"[ORDERS] Could not decode email segment from order id {order_id}")
        return None

    email = email.strip()
    if "@" not in email:
        return None
    return email
