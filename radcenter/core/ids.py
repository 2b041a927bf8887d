"""
Identifier generation.

The server is the id authority: "<PREFIX>-<n>" with n random in [0, max].
Clients mint temporary placeholders, "<PREFIX>-LOCAL-<millis>-<seq>", which are
replaced with the server id once the create call succeeds.
"""
import itertools
import random
import time

PATIENT_PREFIX = "PT"
VISIT_PREFIX = "VS"
STUDY_PREFIX = "ST"
USER_PREFIX = "USR"
TEMPLATE_PREFIX = "TPL"

LOCAL_MARKER = "LOCAL"

# Process-wide sequence keeps placeholders unique within one millisecond
_sequence = itertools.count(1)

def server_id(prefix: str, upper: int = 99999) -> str:
    """
    Generate a server-side id candidate.

    Args:
        prefix: Type prefix, e.g. "PT"
        upper: Largest random number to draw

    Returns:
        str: Candidate id; callers check uniqueness
    """
    return f"{prefix}-{random.randint(0, upper)}"

def placeholder_id(prefix: str) -> str:
    """
    Generate a client-side temporary id.
    """
    return f"{prefix}-{LOCAL_MARKER}-{int(time.time() * 1000)}-{next(_sequence)}"

def is_placeholder(record_id: str) -> bool:
    return f"-{LOCAL_MARKER}-" in (record_id or "")
