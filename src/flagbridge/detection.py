"""ベンダーフラグからマニフェストの型とデフォルト値を推定する検出チェーン"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from .coercion import parse_boolean_string, parse_json_object, parse_numeric_string
from .config import TypeCoercionConfig
from .models import FlagType, VendorFlagRecord

logger = logging.getLogger(__name__)

Detection = tuple[FlagType | None, Any, bool]

_NO_MATCH: Detection = (None, None, False)


class TypeDetector(Protocol):
    """型検出器プロトコル。一致しない場合は (None, None, False) を返す。"""

    def detect(self, record: VendorFlagRecord) -> Detection: ...


class PayloadObjectDetector:
    """JSON オブジェクトのペイロードを持つフラグを object 型と判定する。"""

    def detect(self, record: VendorFlagRecord) -> Detection:
        for payload in (record.filters.payloads or {}).values():
            obj, ok = parse_json_object(payload)
            if ok:
                return FlagType.OBJECT, obj, True
        return _NO_MATCH


class PayloadCoercionDetector:
    """設定で有効化された場合に限り、ペイロード文字列を真偽値・数値に変換する。"""

    def __init__(self, config: TypeCoercionConfig) -> None:
        self._config = config

    def detect(self, record: VendorFlagRecord) -> Detection:
        if not (self._config.coerce_boolean_strings or self._config.coerce_numeric_strings):
            return _NO_MATCH
        for payload in (record.filters.payloads or {}).values():
            # 真偽値の方が具体的なので先に試す
            if self._config.coerce_boolean_strings:
                value, ok = parse_boolean_string(payload)
                if ok:
                    return FlagType.BOOLEAN, value, True
            if self._config.coerce_numeric_strings:
                number, ok = parse_numeric_string(payload)
                if ok:
                    return FlagType.INTEGER, number, True
        return _NO_MATCH


class MultivariateDetector:
    """先頭のバリアントキーから integer / string 型を判定する。"""

    def detect(self, record: VendorFlagRecord) -> Detection:
        variants = record.filters.multivariate
        if not variants:
            return _NO_MATCH
        first_key = variants[0].key
        number, ok = parse_numeric_string(first_key)
        if ok:
            return FlagType.INTEGER, number, True
        return FlagType.STRING, first_key, True


class BooleanDetector:
    """常に一致する boolean 判定。

    先頭グループのロールアウト率が 0% なら false、正の値なら true として扱う。
    """

    def detect(self, record: VendorFlagRecord) -> Detection:
        if not record.active:
            return FlagType.BOOLEAN, False, True
        groups = record.filters.groups
        if groups and groups[0].rollout_percentage is not None:
            return FlagType.BOOLEAN, groups[0].rollout_percentage > 0, True
        return FlagType.BOOLEAN, True, True


class TypeDetectionChain:
    """検出器を固定順で試し、最初に一致した結果を返す。"""

    def __init__(self, config: TypeCoercionConfig | None = None) -> None:
        self._detectors: list[TypeDetector] = [
            PayloadObjectDetector(),
            PayloadCoercionDetector(config or TypeCoercionConfig()),
            MultivariateDetector(),
            BooleanDetector(),
        ]

    def detect(self, record: VendorFlagRecord) -> tuple[FlagType, Any]:
        """フラグの型とデフォルト値を返す。"""
        for detector in self._detectors:
            flag_type, value, ok = detector.detect(record)
            if ok and flag_type is not None:
                logger.debug(
                    "Flag type detected",
                    extra={
                        "flag_key": record.key,
                        "detector": type(detector).__name__,
                        "flag_type": flag_type.value,
                    },
                )
                return flag_type, value
        # BooleanDetector が必ず一致するため到達しない
        return FlagType.BOOLEAN, False
