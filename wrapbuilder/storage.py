"""Wrap persistence - shareable records of generated decks.

A generated deck is stored once, verbatim, under a short URL-safe share
code together with the override form it was built from. Viewing a record
never recomputes its slides.

``YamlWrapStore`` keeps one YAML file per record under a root directory.
"""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .schema.loader import load_yaml, save_yaml
from .schema.models import Slide

logger = logging.getLogger(__name__)

SHARE_CODE_LENGTH = 8
SHARE_CODE_ATTEMPTS = 10


class StorageError(Exception):
    """A record could not be created or found."""


class ShareAccessError(StorageError):
    """A record exists but may not be viewed right now."""


class PasswordRequiredError(ShareAccessError):
    """The record is password protected and no password was given."""


# ---------------------------------------------------------------------------
# Share codes and passwords
# ---------------------------------------------------------------------------

def generate_share_code() -> str:
    """Random 8-character URL-safe code."""
    return secrets.token_urlsafe(6)[:SHARE_CODE_LENGTH]


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(password: str, password_hash: str) -> bool:
    return hmac.compare_digest(hash_password(password), password_hash)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------

@dataclass
class WrapRecord:
    """One stored deck plus its sharing state."""
    share_code: str
    owner_id: str
    title: str
    wrap_type: str
    year: int
    slides_data: list[dict] = field(default_factory=list)
    form_data: dict | None = None
    created_at: datetime = field(default_factory=_now)
    is_active: bool = True
    is_revoked: bool = False
    expires_at: datetime | None = None
    starts_at: datetime | None = None
    password_hash: str | None = None
    view_count: int = 0
    last_viewed_at: datetime | None = None

    @property
    def is_password_protected(self) -> bool:
        return bool(self.password_hash)

    @property
    def share_path(self) -> str:
        return f"/wrap/{self.share_code}"

    def slides(self) -> list[Slide]:
        return [Slide.from_dict(s) for s in self.slides_data]

    def to_dict(self) -> dict:
        return {
            "share_code": self.share_code,
            "owner_id": self.owner_id,
            "title": self.title,
            "wrap_type": self.wrap_type,
            "year": self.year,
            "created_at": _format_time(self.created_at),
            "is_active": self.is_active,
            "is_revoked": self.is_revoked,
            "expires_at": _format_time(self.expires_at),
            "starts_at": _format_time(self.starts_at),
            "password_hash": self.password_hash,
            "view_count": self.view_count,
            "last_viewed_at": _format_time(self.last_viewed_at),
            "form_data": self.form_data,
            "slides": self.slides_data,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "WrapRecord":
        return cls(
            share_code=d["share_code"],
            owner_id=d.get("owner_id", ""),
            title=d.get("title", ""),
            wrap_type=d.get("wrap_type", "ads"),
            year=int(d.get("year") or 0),
            slides_data=list(d.get("slides") or []),
            form_data=d.get("form_data"),
            created_at=_parse_time(d.get("created_at")) or _now(),
            is_active=bool(d.get("is_active", True)),
            is_revoked=bool(d.get("is_revoked", False)),
            expires_at=_parse_time(d.get("expires_at")),
            starts_at=_parse_time(d.get("starts_at")),
            password_hash=d.get("password_hash"),
            view_count=int(d.get("view_count") or 0),
            last_viewed_at=_parse_time(d.get("last_viewed_at")),
        )


def check_access(record: WrapRecord, now: datetime | None = None) -> tuple[bool, str | None]:
    """Whether a record may be viewed at ``now``, and why not if it may not."""
    now = now or _now()
    if not record.is_active:
        return False, "This link is no longer active."
    if record.is_revoked:
        return False, "This link has been revoked."
    if record.expires_at is not None and record.expires_at < now:
        return False, "This link has expired."
    if record.starts_at is not None and record.starts_at > now:
        return False, "This link is not yet active."
    return True, None


def default_title(wrap_type: str, name: str = "") -> str:
    owner = f"{name}'s" if name else "Your"
    return f"{owner} {wrap_type} Wrapped"


# ---------------------------------------------------------------------------
# YAML store
# ---------------------------------------------------------------------------

class YamlWrapStore:
    """File-backed wrap records, one ``<share_code>.yaml`` per record."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, share_code: str) -> Path:
        return self.root / f"{share_code}.yaml"

    def exists(self, share_code: str) -> bool:
        return self._path(share_code).exists()

    def _unique_code(self) -> str:
        for _ in range(SHARE_CODE_ATTEMPTS):
            code = generate_share_code()
            if not self.exists(code):
                return code
        raise StorageError("Could not allocate a unique share code")

    def save(self, record: WrapRecord) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        save_yaml(record.to_dict(), self._path(record.share_code))

    def create(
        self,
        owner_id: str,
        wrap_type: str,
        slides: list[Slide],
        form_data: dict | None = None,
        title: str | None = None,
        name: str = "",
        year: int | None = None,
        password: str | None = None,
        expires_at: datetime | None = None,
        starts_at: datetime | None = None,
    ) -> WrapRecord:
        """Store a generated deck under a new share code.

        Args:
            owner_id: Opaque identifier of the owning user (passed through).
            wrap_type: "ads", "ecommerce" or "social".
            slides: The derived deck; stored as-is.
            form_data: Override fields the deck was built from.
            title: Record title; defaults to "<name>'s <type> Wrapped".
            year: Report year; defaults to the current year.
            password: Optional viewing password, stored hashed.

        Raises:
            StorageError: If owner_id is empty or no unique code was found.
        """
        if not owner_id:
            raise StorageError("Missing required field: owner_id")
        now = _now()
        record = WrapRecord(
            share_code=self._unique_code(),
            owner_id=owner_id,
            title=title or default_title(wrap_type, name),
            wrap_type=wrap_type,
            year=year or now.year,
            slides_data=[s.to_dict() for s in slides],
            form_data=form_data,
            created_at=now,
            expires_at=expires_at,
            starts_at=starts_at,
            password_hash=hash_password(password) if password else None,
        )
        self.save(record)
        logger.info("Stored %s wrap %s with %d slides", wrap_type, record.share_code,
                    len(record.slides_data))
        return record

    def get(self, share_code: str) -> WrapRecord:
        path = self._path(share_code)
        if not path.exists():
            raise StorageError(f"Wrap not found: {share_code}")
        return WrapRecord.from_dict(load_yaml(path))

    def list(self, owner_id: str | None = None) -> list[WrapRecord]:
        """Records, newest first, optionally limited to one owner."""
        if not self.root.exists():
            return []
        records = [WrapRecord.from_dict(load_yaml(p)) for p in sorted(self.root.glob("*.yaml"))]
        if owner_id is not None:
            records = [r for r in records if r.owner_id == owner_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def revoke(self, share_code: str) -> WrapRecord:
        record = self.get(share_code)
        record.is_revoked = True
        self.save(record)
        return record

    def record_view(self, share_code: str, now: datetime | None = None) -> WrapRecord:
        record = self.get(share_code)
        record.view_count += 1
        record.last_viewed_at = now or _now()
        self.save(record)
        return record

    def open(self, share_code: str, password: str | None = None,
             now: datetime | None = None) -> WrapRecord:
        """Fetch a record for viewing and count the view.

        Raises:
            StorageError: The code is unknown.
            ShareAccessError: The link is inactive, revoked, expired, not yet
                live, or the password is wrong.
            PasswordRequiredError: The record needs a password and none was given.
        """
        record = self.get(share_code)
        ok, reason = check_access(record, now)
        if not ok:
            raise ShareAccessError(reason)
        if record.is_password_protected:
            if not password:
                raise PasswordRequiredError("This wrap is password protected.")
            if not verify_password(password, record.password_hash):
                raise ShareAccessError("Invalid password")
        return self.record_view(share_code, now)
