# apps/api/video_rows.py
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from errors import DecodeError, InvalidIdentifier

VIDEO_COLUMNS = (
    "id",
    "owner_user_id",
    "target_type",
    "target_id",
    "storage_bucket",
    "storage_key",
    "content_type",
    "duration_seconds",
    "created_at",
    "vote_score",
)

# SQLite hands timestamps back as text in either of these shapes
_TEXT_TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
)


class ContentTargetType(str, enum.Enum):
    PROPOSAL = "proposal"
    PROGRAM = "program"
    VIDEO = "video"
    COMMENT = "comment"

    @classmethod
    def parse(cls, raw: Any) -> "ContentTargetType":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise InvalidIdentifier("target_type", raw) from None


@dataclass(frozen=True)
class FeedVideo:
    id: UUID
    owner_user_id: UUID
    target_type: ContentTargetType
    target_id: UUID
    storage_bucket: str
    storage_key: str
    content_type: str
    duration_seconds: Optional[int]
    created_at: datetime
    vote_score: int


def parse_identifier(raw: Any, field: str) -> UUID:
    """Parse a caller-supplied id; bad input is the caller's fault, not the store's."""
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw).strip())
    except (ValueError, AttributeError, TypeError):
        raise InvalidIdentifier(field, raw) from None


def _row_get(row: Any, column: str) -> Any:
    if isinstance(row, Mapping):
        if column not in row:
            raise DecodeError(f"missing column {column}", column=column)
        return row[column]
    mapping = getattr(row, "_mapping", None)
    if mapping is not None:
        if column not in mapping:
            raise DecodeError(f"missing column {column}", column=column)
        return mapping[column]
    try:
        return getattr(row, column)
    except AttributeError:
        raise DecodeError(f"missing column {column}", column=column) from None


def _decode_uuid(value: Any, column: str) -> UUID:
    if isinstance(value, UUID):
        return value
    if value is None:
        raise DecodeError(f"{column} is null", column=column)
    try:
        return UUID(str(value))
    except ValueError:
        raise DecodeError(f"invalid {column}: {value!r}", column=column) from None


def _decode_timestamp(value: Any, column: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        parsed = None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _TEXT_TIMESTAMP_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            raise DecodeError(f"invalid {column}: {value!r}", column=column)
    else:
        raise DecodeError(f"invalid {column}: {value!r}", column=column)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _decode_target_type(value: Any) -> ContentTargetType:
    if isinstance(value, ContentTargetType):
        return value
    try:
        return ContentTargetType(str(value))
    except ValueError:
        raise DecodeError(f"invalid target_type: {value!r}", column="target_type") from None


def _decode_int(value: Any, column: str, *, default: Optional[int] = None) -> Optional[int]:
    if value is None:
        return default
    if isinstance(value, bool):
        raise DecodeError(f"invalid {column}: {value!r}", column=column)
    try:
        if isinstance(value, (int, Decimal)):
            return int(value)
        if isinstance(value, float):
            return int(round(value))
        return int(str(value).strip())
    except (ValueError, ArithmeticError):
        raise DecodeError(f"invalid {column}: {value!r}", column=column) from None


def decode_video_row(row: Any) -> FeedVideo:
    """
    Map one result row onto FeedVideo.

    Accepts SQLAlchemy Row/RowMapping objects, plain dicts, or ORM-like objects.
    Postgres returns native UUID/datetime values; SQLite returns text. Both are
    accepted. A null vote_score means no votes (left join with nothing on the right).
    """
    return FeedVideo(
        id=_decode_uuid(_row_get(row, "id"), "id"),
        owner_user_id=_decode_uuid(_row_get(row, "owner_user_id"), "owner_user_id"),
        target_type=_decode_target_type(_row_get(row, "target_type")),
        target_id=_decode_uuid(_row_get(row, "target_id"), "target_id"),
        storage_bucket=str(_row_get(row, "storage_bucket") or ""),
        storage_key=str(_row_get(row, "storage_key") or ""),
        content_type=str(_row_get(row, "content_type") or ""),
        duration_seconds=_decode_int(_row_get(row, "duration_seconds"), "duration_seconds"),
        created_at=_decode_timestamp(_row_get(row, "created_at"), "created_at"),
        vote_score=_decode_int(_row_get(row, "vote_score"), "vote_score", default=0),
    )


def decode_video_rows(rows: Sequence[Any]) -> List[FeedVideo]:
    return [decode_video_row(row) for row in rows]
