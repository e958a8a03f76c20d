"""ベンダーのマルチバリアント定義とマニフェストのバリアントの相互変換"""

from __future__ import annotations

from typing import Any

from .coercion import parse_boolean_string, parse_json_object, parse_numeric_string
from .config import TypeCoercionConfig
from .models import MultivariateVariant, Variant, VendorFlagRecord


def coerce_payload(payload: str, config: TypeCoercionConfig) -> Any:
    """ペイロード文字列をマニフェストの値に変換する。

    JSON オブジェクト、（有効なら）真偽値、（有効なら）数値の順に試し、
    どれにも一致しなければ文字列のまま返す。
    """
    obj, ok = parse_json_object(payload)
    if ok:
        return obj
    if config.coerce_boolean_strings:
        flag, ok = parse_boolean_string(payload)
        if ok:
            return flag
    if config.coerce_numeric_strings:
        number, ok = parse_numeric_string(payload)
        if ok:
            return number
    return payload


def convert_vendor_variants(
    record: VendorFlagRecord, config: TypeCoercionConfig | None = None
) -> dict[str, Variant]:
    """ベンダーフラグのバリアントをマニフェスト形式に変換する。

    単純な boolean フラグ（マルチバリアントもペイロードもない）は空の辞書を返す。
    """
    config = config or TypeCoercionConfig()
    payloads = record.filters.payloads
    variants: dict[str, Variant] = {}

    if record.filters.multivariate:
        for mv in record.filters.multivariate:
            value: Any = mv.key
            if payloads is not None:
                if mv.key in payloads:
                    value = coerce_payload(payloads[mv.key], config)
            else:
                number, ok = parse_numeric_string(mv.key)
                if ok:
                    value = number
            variants[mv.key] = Variant(value=value, weight=mv.rollout_percentage)
        return variants

    for key, payload in (payloads or {}).items():
        variants[key] = Variant(value=coerce_payload(payload, config))
    return variants


def build_multivariate(variants: dict[str, Variant]) -> list[MultivariateVariant]:
    """マニフェストのバリアントからベンダーのマルチバリアント定義をキー昇順で作る。

    ペイロードは生成しない。
    """
    return [
        MultivariateVariant(
            key=key,
            name=key,
            rollout_percentage=variants[key].weight or 0,
        )
        for key in sorted(variants)
    ]
