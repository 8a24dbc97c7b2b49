import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from errors import DecodeError, InvalidIdentifier
from video_rows import ContentTargetType, decode_video_row, decode_video_rows, parse_identifier


def _row(**overrides):
    row = {
        "id": str(uuid.uuid4()),
        "owner_user_id": str(uuid.uuid4()),
        "target_type": "proposal",
        "target_id": str(uuid.uuid4()),
        "storage_bucket": "videos",
        "storage_key": "videos/a.mp4",
        "content_type": "video/mp4",
        "duration_seconds": 42,
        "created_at": "2026-10-01T12:30:00+00:00",
        "vote_score": 3,
    }
    row.update(overrides)
    return row


def test_decodes_text_row():
    row = _row()
    video = decode_video_row(row)
    assert video.id == uuid.UUID(row["id"])
    assert video.target_type is ContentTargetType.PROPOSAL
    assert video.created_at == datetime(2026, 10, 1, 12, 30, tzinfo=timezone.utc)
    assert video.vote_score == 3
    assert video.duration_seconds == 42


def test_decodes_native_values():
    vid = uuid.uuid4()
    created = datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc)
    video = decode_video_row(_row(id=vid, created_at=created, vote_score=Decimal("-2")))
    assert video.id == vid
    assert video.created_at == created
    assert video.vote_score == -2


def test_sqlite_timestamp_is_treated_as_utc():
    video = decode_video_row(_row(created_at="2026-10-01 12:30:00"))
    assert video.created_at == datetime(2026, 10, 1, 12, 30, tzinfo=timezone.utc)


def test_missing_vote_total_means_zero_and_duration_is_optional():
    video = decode_video_row(_row(vote_score=None, duration_seconds=None))
    assert video.vote_score == 0
    assert video.duration_seconds is None


def test_attribute_rows_are_accepted():
    class Obj:
        pass

    obj = Obj()
    for key, value in _row().items():
        setattr(obj, key, value)
    assert decode_video_row(obj).storage_key == "videos/a.mp4"


@pytest.mark.parametrize(
    "overrides, column",
    [
        ({"target_type": "podcast"}, "target_type"),
        ({"id": "not-a-uuid"}, "id"),
        ({"target_id": None}, "target_id"),
        ({"created_at": "yesterday"}, "created_at"),
        ({"created_at": 12}, "created_at"),
        ({"vote_score": "lots"}, "vote_score"),
    ],
)
def test_bad_values_raise_decode_error(overrides, column):
    with pytest.raises(DecodeError) as excinfo:
        decode_video_row(_row(**overrides))
    assert excinfo.value.column == column


def test_missing_column():
    row = _row()
    del row["storage_key"]
    with pytest.raises(DecodeError):
        decode_video_row(row)


def test_one_bad_row_fails_the_batch():
    with pytest.raises(DecodeError):
        decode_video_rows([_row(), _row(target_type="?")])


def test_parse_identifier():
    vid = uuid.uuid4()
    assert parse_identifier(str(vid), "video_id") == vid
    assert parse_identifier(f"  {vid} ", "video_id") == vid
    assert parse_identifier(vid, "video_id") is vid
    with pytest.raises(InvalidIdentifier) as excinfo:
        parse_identifier("42", "video_id")
    assert excinfo.value.field == "video_id"
    with pytest.raises(InvalidIdentifier):
        parse_identifier(None, "user_id")


def test_target_type_parse():
    assert ContentTargetType.parse("Program") is ContentTargetType.PROGRAM
    assert ContentTargetType.parse(ContentTargetType.COMMENT) is ContentTargetType.COMMENT
    with pytest.raises(InvalidIdentifier):
        ContentTargetType.parse("podcast")
