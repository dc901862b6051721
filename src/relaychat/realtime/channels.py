"""Private channel naming.

Both participants derive the channel id on their own, so the name must be
deterministic (no salts, no per-process state) and symmetric in its
arguments. Identities must not contain SEPARATOR, otherwise two
different pairs could map to the same id.
"""

CHANNEL_PREFIX = "private"
SEPARATOR = "_"


def derive_channel(identity_a: str, identity_b: str) -> str:
    """Return the canonical channel id for an unordered pair of identities."""
    first, second = sorted((identity_a, identity_b))
    return SEPARATOR.join((CHANNEL_PREFIX, first, second))


def normalize_identity(identity: str, max_length: int) -> str:
    """Trim an identity and check it can name a channel participant.

    Raises ValueError describing the first rule it breaks.
    """
    name = (identity or "").strip()
    if not name:
        raise ValueError("Identity is required")
    if len(name) > max_length:
        raise ValueError(f"Identity exceeds {max_length} characters")
    if SEPARATOR in name:
        raise ValueError(f"Identity may not contain {SEPARATOR!r}")
    return name
