"""バリアントの重みを合計 100 に正規化する"""

from __future__ import annotations

import logging

from .exceptions import FlagBridgeErrorCodes, ValidationError
from .models import Variant

logger = logging.getLogger(__name__)

TOTAL_WEIGHT = 100


def validate_variant_weights(variants: dict[str, Variant]) -> None:
    """正規化の前提条件を検証する。

    Raises:
        ValidationError: バリアントが空、または明示された重みが 0〜100 の整数でない場合
    """
    if not variants:
        raise ValidationError(
            "variants",
            "variants cannot be empty - at least one variant is required",
            code=FlagBridgeErrorCodes.INVALID_VARIANTS,
        )
    for key, variant in variants.items():
        weight = variant.weight
        if weight is None:
            continue
        if isinstance(weight, bool) or not isinstance(weight, int):
            raise ValidationError(
                "weight",
                f"weight of variant {key!r} must be an integer, got {weight!r}",
                code=FlagBridgeErrorCodes.INVALID_WEIGHT,
            )
        if weight < 0 or weight > TOTAL_WEIGHT:
            raise ValidationError(
                "weight",
                f"weight of variant {key!r} must be between 0 and 100, got {weight}",
                code=FlagBridgeErrorCodes.INVALID_WEIGHT,
            )


def normalize_variant_weights(variants: dict[str, Variant]) -> dict[str, Variant]:
    """重みの合計がちょうど 100 になるバリアントを新しく作って返す。

    次の 4 通りで処理する:

    1. 全て指定済みで合計 100 -> そのまま
    2. 全て未指定 -> キーの昇順で均等配分（余りは先頭から 1 ずつ）
    3. 一部指定済みで合計 100 未満 -> 残りを未指定バリアントに均等配分
    4. それ以外 -> 比例配分し、端数はキー昇順で先頭のバリアントにまとめて加算

    Raises:
        ValidationError: variants が空の場合
    """
    validate_variant_weights(variants)

    unweighted = [k for k in sorted(variants) if variants[k].weight is None]
    total = sum(v.weight for v in variants.values() if v.weight is not None)

    if not unweighted and total == TOTAL_WEIGHT:
        return {k: Variant(value=v.value, weight=v.weight) for k, v in variants.items()}

    if len(unweighted) == len(variants):
        logger.debug("Distributing variant weights equally", extra={"count": len(variants)})
        return _distribute_equally(variants)

    if unweighted and total < TOTAL_WEIGHT:
        logger.debug("Distributing remaining variant weight", extra={"specified": total})
        normalized = {k: Variant(value=v.value, weight=v.weight) for k, v in variants.items()}
        for key, weight in _split(TOTAL_WEIGHT - total, unweighted).items():
            normalized[key].weight = weight
        return normalized

    logger.debug("Rescaling variant weights proportionally", extra={"specified": total})
    return _normalize_proportionally(variants, total)


def _split(amount: int, keys: list[str]) -> dict[str, int]:
    base, remainder = divmod(amount, len(keys))
    return {key: base + (1 if i < remainder else 0) for i, key in enumerate(keys)}


def _distribute_equally(variants: dict[str, Variant]) -> dict[str, Variant]:
    weights = _split(TOTAL_WEIGHT, sorted(variants))
    return {k: Variant(value=v.value, weight=weights[k]) for k, v in variants.items()}


def _normalize_proportionally(variants: dict[str, Variant], total: int) -> dict[str, Variant]:
    if total == 0:
        return _distribute_equally(variants)

    normalized = {
        k: Variant(value=v.value, weight=(v.weight or 0) * TOTAL_WEIGHT // total)
        for k, v in variants.items()
    }
    calculated = sum(v.weight for v in normalized.values() if v.weight is not None)
    if calculated != TOTAL_WEIGHT:
        first = normalized[min(normalized)]
        first.weight = (first.weight or 0) + TOTAL_WEIGHT - calculated
    return normalized
