"""
Core security utilities for PIN and passcode handling.

Staff PINs are stored as passlib hashes. The patient passcode is derived from
data the client already holds (first three letters of the name, upper-cased,
followed by the phone number); it is a convenience check, not a secret.
"""
from passlib.context import CryptContext
import hmac
import logging

# Set up logging
logger = logging.getLogger(__name__)

# PIN hashing context
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

def is_pin_hash(value: str) -> bool:
    """
    Check whether a stored PIN value is already a hash.

    Args:
        value: Stored PIN column value

    Returns:
        bool: True if passlib recognises the value as a hash
    """
    if not value:
        return False
    return pwd_context.identify(str(value)) is not None

def hash_pin(pin: str) -> str:
    """
    Hash a PIN. Values that are already hashes are returned unchanged.

    Args:
        pin: Plain text PIN (or an existing hash)

    Returns:
        str: Hashed PIN
    """
    pin = str(pin)
    if is_pin_hash(pin):
        return pin
    return pwd_context.hash(pin)

def verify_pin(plain_pin: str, stored: str) -> bool:
    """
    Verify a PIN against the stored value.

    Rows written before hashing was introduced hold the PIN in clear; those
    still verify by constant-time comparison.

    Args:
        plain_pin: PIN typed by the user
        stored: Stored hash or legacy plain value

    Returns:
        bool: True if the PIN matches
    """
    if plain_pin is None or stored is None or str(stored) == "":
        return False
    stored = str(stored)
    if is_pin_hash(stored):
        return pwd_context.verify(str(plain_pin), stored)
    logger.warning("Verifying PIN against a legacy plain text value")
    return hmac.compare_digest(str(plain_pin).encode(), stored.encode())

def patient_passcode(full_name: str, phone: str) -> str:
    """
    Build the expected patient passcode.

    Args:
        full_name: Patient full name
        phone: Patient phone number as stored

    Returns:
        str: First three letters of the name upper-cased + phone
    """
    return (full_name or "")[:3].upper() + (phone or "")

def verify_patient_passcode(passcode: str, full_name: str, phone: str) -> bool:
    """Case-insensitive comparison against the derived passcode."""
    return (passcode or "").strip().upper() == patient_passcode(full_name, phone).upper()
