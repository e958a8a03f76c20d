"""タグコーデックのユニットテスト"""

from datetime import datetime, timedelta, timezone

from flagbridge.tags import (
    decode_expiry,
    decode_metadata,
    encode_expiry,
    encode_metadata,
    format_timestamp,
    parse_timestamp,
    update_expiry_tags,
    update_metadata_tags,
)

EXPIRY = datetime(2025, 12, 31, tzinfo=timezone.utc)


def test_encode_metadata_sorted_and_whitelisted() -> None:
    """許可キーのみ、キー昇順でエンコードされること。"""
    tags = encode_metadata({"owner": "team-a", "domain": "checkout", "color": "red"})
    assert tags == ["domain:checkout", "owner:team-a"]


def test_encode_metadata_trims_and_drops_empty() -> None:
    assert encode_metadata({"owner": "  team-a ", "type": "   "}) == ["owner:team-a"]


def test_decode_metadata_ignores_unrelated_tags() -> None:
    """許可キー以外のタグはメタデータにならないこと。"""
    tags = ["region:eu", "owner:team-a", "lifetime:temporary", "beta"]
    assert decode_metadata(tags) == {"owner": "team-a", "lifetime": "temporary"}


def test_decode_metadata_first_tag_wins() -> None:
    assert decode_metadata(["owner:first", "owner:second"]) == {"owner": "first"}


def test_metadata_round_trip() -> None:
    metadata = {"owner": "team-a", "created": "2025-01-01", "type": "release"}
    assert decode_metadata(encode_metadata(metadata)) == metadata


def test_update_metadata_replaces_instead_of_merging() -> None:
    """既存のメタデータタグは全て置き換えられ、他のタグは残ること。"""
    tags = ["region:eu", "owner:old", "domain:old"]
    assert update_metadata_tags(tags, {"owner": "new"}) == ["region:eu", "owner:new"]


def test_update_metadata_with_empty_clears() -> None:
    assert update_metadata_tags(["owner:old", "beta"], {}) == ["beta"]


def test_encode_expiry_format() -> None:
    """UTC の ISO-8601 で出力されること。"""
    assert encode_expiry(EXPIRY) == "expiry:2025-12-31T00:00:00Z"


def test_encode_expiry_converts_to_utc() -> None:
    local = datetime(2025, 12, 31, 9, 0, tzinfo=timezone(timedelta(hours=9)))
    assert encode_expiry(local) == "expiry:2025-12-31T00:00:00Z"


def test_expiry_round_trip() -> None:
    assert decode_expiry([encode_expiry(EXPIRY)]) == EXPIRY


def test_decode_expiry_absent_or_invalid() -> None:
    """存在しない・解釈できない expiry タグは None になること。"""
    assert decode_expiry(["owner:team-a"]) is None
    assert decode_expiry(["expiry:not-a-date"]) is None


def test_update_expiry_replaces_existing() -> None:
    """expiry タグは常に 1 つだけになること。"""
    tags = ["region:eu", "expiry:2024-01-01T00:00:00Z"]
    updated = update_expiry_tags(tags, EXPIRY)
    assert updated == ["region:eu", "expiry:2025-12-31T00:00:00Z"]
    assert sum(1 for t in updated if t.startswith("expiry:")) == 1


def test_update_expiry_clears() -> None:
    assert update_expiry_tags(["expiry:2024-01-01T00:00:00Z", "beta"], None) == ["beta"]


def test_tag_round_trip_with_unrelated_tag() -> None:
    """メタデータと期限を往復でき、無関係なタグは残ること。"""
    tags = ["region:eu"] + encode_metadata({"owner": "team-a"}) + [encode_expiry(EXPIRY)]
    updated = update_expiry_tags(tags, datetime(2026, 6, 1, tzinfo=timezone.utc))
    assert "region:eu" in updated
    assert decode_metadata(updated) == {"owner": "team-a"}
    assert decode_expiry(updated) == datetime(2026, 6, 1, tzinfo=timezone.utc)


def test_timestamp_helpers() -> None:
    assert format_timestamp(datetime(2025, 1, 2, 3, 4, 5)) == "2025-01-02T03:04:05Z"
    assert parse_timestamp("2025-01-02T03:04:05Z") == datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert parse_timestamp("yesterday") is None
