"""ペイロード文字列の型変換"""

from __future__ import annotations

import json
import math
from typing import Any

_TRUE_STRINGS = frozenset({"true", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "no", "off"})


def parse_boolean_string(value: str) -> tuple[bool, bool]:
    """真偽値を表す文字列を bool に変換する。

    "1" / "0" のような数値文字列は数値変換と衝突しないよう一致させない。

    Returns:
        (変換後の値, 一致したかどうか)
    """
    lower = value.strip().lower()
    if lower in _TRUE_STRINGS:
        return True, True
    if lower in _FALSE_STRINGS:
        return False, True
    return False, False


def parse_numeric_string(value: str) -> tuple[int | float | None, bool]:
    """数値文字列を int または float に変換する。

    小数部・指数部がなければ int、あれば float を返す。

    Returns:
        (変換後の値, 一致したかどうか)
    """
    trimmed = value.strip()
    if not trimmed or "_" in trimmed:
        return None, False
    # int() / float() は全角数字なども受け付ける
    if not trimmed.isascii():
        return None, False
    try:
        return int(trimmed, 10), True
    except ValueError:
        pass
    try:
        number = float(trimmed)
    except ValueError:
        return None, False
    if math.isnan(number) or math.isinf(number):
        return None, False
    return number, True


def is_json_object(value: str) -> bool:
    """前後の空白を除いて {...} の形をしていれば True。"""
    trimmed = value.strip()
    return trimmed.startswith("{") and trimmed.endswith("}")


def parse_json_object(value: str) -> tuple[dict[str, Any] | None, bool]:
    """JSON オブジェクト文字列を辞書に変換する。

    オブジェクトに見えてもパースできない場合（入れ子が深すぎる場合を含む）は
    不一致として扱う。
    """
    if not is_json_object(value):
        return None, False
    try:
        obj = json.loads(value)
    except (ValueError, RecursionError):
        return None, False
    if not isinstance(obj, dict):
        return None, False
    return obj, True
