"""タグを使ったメタデータ・有効期限のエンコード／デコード

ベンダーのタグはフラットな文字列リストのため、許可されたキーだけを
"<key>:<value>" 形式で格納する。それ以外のタグには触れない。
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

METADATA_KEYS: tuple[str, ...] = ("created", "domain", "owner", "type", "lifetime")
SEPARATOR = ":"
EXPIRY_PREFIX = "expiry" + SEPARATOR


def format_timestamp(value: datetime) -> str:
    """UTC の ISO-8601 文字列（末尾 Z）に変換する。タイムゾーンなしは UTC とみなす。"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    timespec = "microseconds" if value.microsecond else "seconds"
    return value.isoformat(timespec=timespec).replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime | None:
    """ISO-8601 文字列を UTC の datetime に変換する。失敗した場合は None。"""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _metadata_key_of(tag: str) -> str | None:
    for key in METADATA_KEYS:
        if tag.startswith(key + SEPARATOR):
            return key
    return None


def encode_metadata(metadata: Mapping[str, str]) -> list[str]:
    """許可キーのメタデータをキー昇順でタグに変換する。空値と未許可キーは捨てる。"""
    tags: list[str] = []
    for key in sorted(metadata):
        if key not in METADATA_KEYS:
            continue
        value = str(metadata[key]).strip()
        if value:
            tags.append(f"{key}{SEPARATOR}{value}")
    return tags


def decode_metadata(tags: Iterable[str]) -> dict[str, str]:
    """タグからメタデータを取り出す。同じキーが複数ある場合は先頭を採用する。"""
    metadata: dict[str, str] = {}
    for tag in tags:
        key = _metadata_key_of(tag)
        if key is None or key in metadata:
            continue
        value = tag[len(key) + len(SEPARATOR):]
        if value:
            metadata[key] = value
    return metadata


def update_metadata_tags(tags: Iterable[str], metadata: Mapping[str, str]) -> list[str]:
    """既存のメタデータタグを全て取り除き、metadata から作り直す（マージしない）。"""
    kept = [tag for tag in tags if _metadata_key_of(tag) is None]
    return kept + encode_metadata(metadata)


def encode_expiry(expiry: datetime) -> str:
    return EXPIRY_PREFIX + format_timestamp(expiry)


def decode_expiry(tags: Iterable[str]) -> datetime | None:
    """最初の expiry タグを読む。存在しない・解釈できない場合は None。"""
    for tag in tags:
        if tag.startswith(EXPIRY_PREFIX):
            return parse_timestamp(tag[len(EXPIRY_PREFIX):])
    return None


def update_expiry_tags(tags: Iterable[str], expiry: datetime | None) -> list[str]:
    """既存の expiry タグを取り除き、expiry が指定されていれば 1 つだけ追加する。"""
    kept = [tag for tag in tags if not tag.startswith(EXPIRY_PREFIX)]
    if expiry is not None:
        kept.append(encode_expiry(expiry))
    return kept
