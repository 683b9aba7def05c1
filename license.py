"""
License key issuing and validation for NextCap.

License keys are opaque identifiers stored server-side. A key grants
access to the capture client while its record exists, is active, and
has not passed its expiry instant.

Persistence is injected: every function here takes a repository object
(see database.LicenseRepository) so tests can substitute an in-memory one.
"""

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, List

from license_utils import ensure_utc, is_expired, utc_now

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Denial reasons
# ---------------------------------------------------------------------------


class DenialReason(str, enum.Enum):
    """User-facing reasons a key is refused."""
    MISSING_KEY = "No key provided."
    NOT_FOUND = "Invalid license key."
    INACTIVE = "This license is inactive. Contact your administrator."
    EXPIRED = "This license has expired."
    SERVER_ERROR = "A server error occurred."


# ---------------------------------------------------------------------------
# Error classes
# ---------------------------------------------------------------------------


class LicenseError(Exception):
    """Base class for license errors."""
    pass


class LicenseKeyCollisionError(LicenseError):
    """A generated key is already in use."""
    pass


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LicenseRecord:
    """A stored license."""

    id: int
    key: str
    holder_name: str
    email: str
    is_active: bool = True
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the license has expired."""
        return is_expired(self.expires_at, now)

    def to_dict(self) -> dict:
        """Convert to a dict for API responses."""
        return {
            "id": self.id,
            "key": self.key,
            "holder_name": self.holder_name,
            "email": self.email,
            "is_active": self.is_active,
            "expires_at": self.expires_at,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a key."""

    valid: bool
    holder_name: str = ""
    reason: str = ""

    @classmethod
    def granted(cls, holder_name: str) -> "ValidationResult":
        return cls(valid=True, holder_name=holder_name)

    @classmethod
    def denied(cls, reason: DenialReason) -> "ValidationResult":
        return cls(valid=False, reason=reason.value)

    def to_dict(self) -> dict:
        if self.valid:
            return {"valid": True, "holder_name": self.holder_name}
        return {"valid": False, "reason": self.reason}


class LicenseStore(Protocol):
    """What license validation and issuing need from persistence."""

    def list_licenses(self) -> List[LicenseRecord]: ...

    def get_license_by_key(self, key: str) -> Optional[LicenseRecord]: ...

    def key_exists(self, key: str) -> bool: ...

    def create_license(
        self,
        key: str,
        holder_name: str,
        email: str,
        expires_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> LicenseRecord: ...

    def set_active(self, license_id: int, is_active: bool) -> bool: ...

    def delete_license(self, license_id: int) -> bool: ...


# ---------------------------------------------------------------------------
# Key generation
# ---------------------------------------------------------------------------


def generate_license_key(segments: int = 4, segment_length: int = 4) -> str:
    """Generate an opaque license key such as ``1A2B-3C4D-5E6F-7A8B``.

    Each segment is cut from its own uuid4 so segments are independent.
    """
    return "-".join(
        uuid.uuid4().hex.upper()[:segment_length] for _ in range(segments)
    )


def _key_hint(key: str) -> str:
    """Short prefix of a key that is safe to log."""
    return f"{key[:4]}..." if len(key) > 4 else "***"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_license_key(
    key: Optional[str],
    store: LicenseStore,
    now: Optional[datetime] = None,
) -> ValidationResult:
    """Decide whether a key currently grants access.

    Rules, in order:
      1. An empty key is refused.
      2. The key must match a record exactly.
      3. The record must be active (checked before expiry).
      4. The expiry instant, if any, must not be strictly in the past.

    Args:
        key: The raw key submitted by the client.
        store: Repository used to look the key up.
        now: Optional override for the current time (used for testing).

    Returns:
        ValidationResult with the holder name on success or the reason.
    """
    if not key:
        return ValidationResult.denied(DenialReason.MISSING_KEY)

    record = store.get_license_by_key(key)
    if record is None:
        logger.info("License denied: unknown key %s", _key_hint(key))
        return ValidationResult.denied(DenialReason.NOT_FOUND)

    if not record.is_active:
        logger.info("License %s denied: inactive", record.id)
        return ValidationResult.denied(DenialReason.INACTIVE)

    if record.is_expired(now):
        logger.info("License %s denied: expired at %s", record.id, record.expires_at)
        return ValidationResult.denied(DenialReason.EXPIRED)

    return ValidationResult.granted(record.holder_name)


# ---------------------------------------------------------------------------
# Issuing
# ---------------------------------------------------------------------------


def issue_license(
    store: LicenseStore,
    holder_name: str,
    email: str,
    expires_at: Optional[datetime] = None,
    segments: int = 4,
    segment_length: int = 4,
    max_attempts: int = 5,
    now: Optional[datetime] = None,
) -> LicenseRecord:
    """Create a new active license with a unique key.

    A key that already exists is regenerated; the store's own uniqueness
    constraint covers the window between the check and the insert.

    Raises:
        LicenseKeyCollisionError: If no unique key was found in max_attempts.
    """
    created_at = now or utc_now()
    if expires_at is not None:
        expires_at = ensure_utc(expires_at)

    for attempt in range(1, max_attempts + 1):
        key = generate_license_key(segments, segment_length)
        if store.key_exists(key):
            logger.warning("Generated key collided (attempt %d/%d)", attempt, max_attempts)
            continue
        try:
            record = store.create_license(
                key=key,
                holder_name=holder_name,
                email=email,
                expires_at=expires_at,
                created_at=created_at,
            )
        except LicenseKeyCollisionError:
            logger.warning("Key taken during insert (attempt %d/%d)", attempt, max_attempts)
            continue

        logger.info(
            "Issued license %s to %s (expires: %s)",
            record.id, holder_name, expires_at.isoformat() if expires_at else "never",
        )
        return record

    raise LicenseKeyCollisionError(
        f"Could not generate a unique license key after {max_attempts} attempts"
    )
