"""マニフェスト形式とベンダー形式のフラグ変換"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable

from .config import TypeCoercionConfig
from .detection import TypeDetectionChain
from .models import (
    CreateFlagRequest,
    FilterGroup,
    FlagState,
    FlagType,
    Manifest,
    StandardFlag,
    UpdateFlagRequest,
    VendorCreateBody,
    VendorFilters,
    VendorFlagRecord,
    VendorUpdateBody,
)
from .tags import (
    decode_expiry,
    decode_metadata,
    encode_expiry,
    encode_metadata,
    update_expiry_tags,
    update_metadata_tags,
)
from .variants import build_multivariate, convert_vendor_variants
from .weights import normalize_variant_weights

logger = logging.getLogger(__name__)

FULL_ROLLOUT = 100


def vendor_to_standard(
    record: VendorFlagRecord, config: TypeCoercionConfig | None = None
) -> StandardFlag:
    """ベンダーフラグをマニフェスト形式に変換する。

    マニフェストの name にはキーを、description にはベンダー側の名前を入れる。
    """
    config = config or TypeCoercionConfig()
    flag_type, default_value = TypeDetectionChain(config).detect(record)
    return StandardFlag(
        key=record.key,
        name=record.key,
        description=record.name,
        type=flag_type,
        default_value=default_value,
        variants=convert_vendor_variants(record, config),
        state=FlagState.ENABLED if record.active else FlagState.DISABLED,
        expiry=decode_expiry(record.tags),
        metadata=decode_metadata(record.tags),
    )


def vendor_to_manifest(
    records: Iterable[VendorFlagRecord], config: TypeCoercionConfig | None = None
) -> Manifest:
    """ベンダーフラグ一覧をマニフェストに変換する。順序は入力のまま。"""
    return Manifest(flags=[vendor_to_standard(r, config) for r in records])


def _boolean_rollout(default_value: object) -> int:
    # boolean フラグのデフォルト値はロールアウト率で表す（true=100%, false=0%）
    return FULL_ROLLOUT if default_value is True else 0


def standard_to_vendor_create(
    request: CreateFlagRequest, default_rollout_percentage: int = 0
) -> VendorCreateBody:
    """作成リクエストをベンダーの作成ボディに変換する。

    Raises:
        ValidationError: バリアントの重みが不正な場合
    """
    rollout = FULL_ROLLOUT
    if request.type == FlagType.BOOLEAN:
        rollout = _boolean_rollout(request.default_value)

    filters = VendorFilters(groups=[FilterGroup(rollout_percentage=rollout)])
    if request.variants:
        filters.multivariate = build_multivariate(normalize_variant_weights(request.variants))

    tags = encode_metadata(request.metadata)
    if request.expiry is not None:
        tags.append(encode_expiry(request.expiry))

    return VendorCreateBody(
        key=request.key,
        name=request.description or request.name or request.key,
        filters=filters,
        rollout_percentage=default_rollout_percentage,
        tags=tags,
    )


def _reconcile_variant_filters(
    request: UpdateFlagRequest, existing: VendorFlagRecord
) -> VendorFilters:
    """既存の filters を保持したままマルチバリアント定義だけを差し替える。"""
    filters = copy.deepcopy(existing.filters)
    if not filters.groups:
        filters.groups = [FilterGroup(rollout_percentage=FULL_ROLLOUT)]
    normalized = normalize_variant_weights(request.variants or {})
    filters.multivariate = build_multivariate(normalized)
    # バリアント配分はマルチバリアント定義が持つ
    for group in filters.groups:
        group.variant = None
    return filters


def _reconcile_boolean_filters(
    request: UpdateFlagRequest, existing: VendorFlagRecord
) -> VendorFilters:
    filters = copy.deepcopy(existing.filters)
    rollout = _boolean_rollout(request.default_value)
    if filters.groups:
        filters.groups[0].rollout_percentage = rollout
    else:
        filters.groups = [FilterGroup(rollout_percentage=rollout)]
    return filters


def _is_boolean_default_update(request: UpdateFlagRequest, existing: VendorFlagRecord) -> bool:
    if not isinstance(request.default_value, bool):
        return False
    if request.type is not None:
        return request.type == FlagType.BOOLEAN
    return not existing.filters.multivariate


def standard_to_vendor_update(
    request: UpdateFlagRequest, existing: VendorFlagRecord
) -> VendorUpdateBody:
    """部分更新リクエストを既存レコードと突き合わせてベンダーの更新ボディに変換する。

    リクエストに含まれないフィールドは更新ボディにも含めない。
    existing は変更しない。

    Raises:
        ValidationError: バリアントが空、または重みが不正な場合
    """
    update = VendorUpdateBody()

    if request.description:
        update.name = request.description
    elif request.name:
        update.name = request.name

    if request.state is not None:
        update.active = request.state == FlagState.ENABLED

    if request.variants is not None:
        update.filters = _reconcile_variant_filters(request, existing)
    elif _is_boolean_default_update(request, existing):
        update.filters = _reconcile_boolean_filters(request, existing)

    if request.metadata is not None or request.expiry is not None or request.clear_expiry:
        tags = list(existing.tags)
        if request.metadata is not None:
            tags = update_metadata_tags(tags, request.metadata)
        if request.expiry is not None or request.clear_expiry:
            tags = update_expiry_tags(tags, request.expiry)
        update.tags = tags

    logger.debug(
        "Vendor update body built",
        extra={"flag_key": existing.key, "fields": sorted(update.to_dict())},
    )
    return update
