"""マニフェスト形式とベンダー形式のフラグデータモデル"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import StrEnum
from typing import Any

from .exceptions import FlagBridgeErrorCodes, ValidationError
from .tags import format_timestamp, parse_timestamp


class FlagType(StrEnum):
    """マニフェストフラグの型。"""

    BOOLEAN = "boolean"
    STRING = "string"
    INTEGER = "integer"
    OBJECT = "object"


class FlagState(StrEnum):
    """マニフェストフラグの状態。"""

    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


@dataclass
class Variant:
    """マニフェストフラグのバリアント。weight が None の場合は未指定。"""

    value: Any
    weight: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Variant:
        return cls(value=data.get("value"), weight=data.get("weight"))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"value": self.value}
        if self.weight is not None:
            result["weight"] = self.weight
        return result


def _variants_from_dict(data: Any) -> dict[str, Variant]:
    if not isinstance(data, dict):
        raise ValidationError(
            "variants",
            "variants must be an object keyed by variant name",
            code=FlagBridgeErrorCodes.INVALID_VARIANTS,
        )
    return {
        str(key): Variant.from_dict(value if isinstance(value, dict) else {"value": value})
        for key, value in data.items()
    }


def _expiry_from_value(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    parsed = parse_timestamp(str(value))
    if parsed is None:
        raise ValidationError(
            "expiry",
            f"expiry must be an ISO-8601 timestamp, got {value!r}",
            code=FlagBridgeErrorCodes.INVALID_REQUEST,
        )
    return parsed


def _metadata_from_value(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        raise ValidationError(
            "metadata",
            "metadata must be an object of string values",
            code=FlagBridgeErrorCodes.INVALID_REQUEST,
        )
    return {str(k): str(v) for k, v in value.items() if v is not None}


@dataclass
class StandardFlag:
    """マニフェスト形式のフラグ。"""

    key: str
    type: FlagType
    default_value: Any
    state: FlagState
    name: str = ""
    description: str = ""
    variants: dict[str, Variant] = field(default_factory=dict)
    expiry: datetime | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """マニフェスト JSON 形式の辞書に変換する。"""
        result: dict[str, Any] = {"key": self.key}
        if self.name:
            result["name"] = self.name
        if self.description:
            result["description"] = self.description
        result["type"] = self.type.value
        result["defaultValue"] = self.default_value
        if self.variants:
            result["variants"] = {k: v.to_dict() for k, v in self.variants.items()}
        result["state"] = self.state.value
        if self.expiry is not None:
            result["expiry"] = format_timestamp(self.expiry)
        if self.metadata:
            result["metadata"] = dict(self.metadata)
        return result


@dataclass
class Manifest:
    """マニフェスト全体。"""

    flags: list[StandardFlag] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"flags": [f.to_dict() for f in self.flags]}


@dataclass
class CreateFlagRequest:
    """フラグ作成リクエスト。"""

    key: str
    type: FlagType
    default_value: Any
    name: str = ""
    description: str = ""
    variants: dict[str, Variant] = field(default_factory=dict)
    expiry: datetime | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CreateFlagRequest:
        """マニフェスト JSON からリクエストを生成する。

        Raises:
            ValidationError: 必須フィールドの欠落や不正な型の場合
        """
        key = data.get("key")
        if not key:
            raise ValidationError("key", "key is required", code=FlagBridgeErrorCodes.INVALID_REQUEST)
        if "defaultValue" not in data:
            raise ValidationError(
                "defaultValue",
                "defaultValue is required",
                code=FlagBridgeErrorCodes.INVALID_REQUEST,
            )
        try:
            flag_type = FlagType(data.get("type"))
        except ValueError as e:
            raise ValidationError(
                "type",
                f"unsupported flag type: {data.get('type')!r}",
                code=FlagBridgeErrorCodes.INVALID_REQUEST,
            ) from e
        return cls(
            key=str(key),
            type=flag_type,
            default_value=data["defaultValue"],
            name=data.get("name") or "",
            description=data.get("description") or "",
            variants=_variants_from_dict(data["variants"]) if data.get("variants") is not None else {},
            expiry=_expiry_from_value(data["expiry"]) if data.get("expiry") is not None else None,
            metadata=_metadata_from_value(data["metadata"]) if data.get("metadata") is not None else {},
        )


@dataclass
class UpdateFlagRequest:
    """フラグ更新リクエスト。None のフィールドは更新対象外。

    expiry を削除する場合は clear_expiry を True にする。
    """

    name: str | None = None
    description: str | None = None
    type: FlagType | None = None
    default_value: Any = None
    variants: dict[str, Variant] | None = None
    state: FlagState | None = None
    expiry: datetime | None = None
    clear_expiry: bool = False
    metadata: dict[str, str] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UpdateFlagRequest:
        """マニフェスト JSON の部分更新からリクエストを生成する。

        "expiry": null は有効期限の削除として扱う。
        """
        flag_type: FlagType | None = None
        if data.get("type") is not None:
            try:
                flag_type = FlagType(data["type"])
            except ValueError as e:
                raise ValidationError(
                    "type",
                    f"unsupported flag type: {data['type']!r}",
                    code=FlagBridgeErrorCodes.INVALID_REQUEST,
                ) from e
        state: FlagState | None = None
        if data.get("state") is not None:
            try:
                state = FlagState(data["state"])
            except ValueError as e:
                raise ValidationError(
                    "state",
                    f"unsupported flag state: {data['state']!r}",
                    code=FlagBridgeErrorCodes.INVALID_REQUEST,
                ) from e
        clear_expiry = "expiry" in data and data["expiry"] is None
        return cls(
            name=data.get("name"),
            description=data.get("description"),
            type=flag_type,
            default_value=data.get("defaultValue"),
            variants=_variants_from_dict(data["variants"]) if data.get("variants") is not None else None,
            state=state,
            expiry=_expiry_from_value(data["expiry"]) if data.get("expiry") is not None else None,
            clear_expiry=clear_expiry,
            metadata=_metadata_from_value(data["metadata"]) if data.get("metadata") is not None else None,
        )


@dataclass
class FilterGroup:
    """ベンダーのフィルターグループ。properties と未知のキーは解釈せずに保持する。"""

    properties: list[dict[str, Any]] = field(default_factory=list)
    rollout_percentage: int | None = None
    variant: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FilterGroup:
        known = {"properties", "rollout_percentage", "variant"}
        return cls(
            properties=list(data.get("properties") or []),
            rollout_percentage=data.get("rollout_percentage"),
            variant=data.get("variant"),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = dict(self.extra)
        result["properties"] = self.properties
        result["rollout_percentage"] = self.rollout_percentage
        result["variant"] = self.variant
        return result


@dataclass
class MultivariateVariant:
    """ベンダーのマルチバリアント定義の 1 要素。"""

    key: str
    rollout_percentage: int = 0
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MultivariateVariant:
        # 旧クライアントは rollout_flag で送ってくる
        weight = data.get("rollout_percentage", data.get("rollout_flag", 0))
        return cls(
            key=str(data["key"]),
            rollout_percentage=weight if weight is not None else 0,
            name=data.get("name") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "rollout_percentage": self.rollout_percentage,
        }


@dataclass
class VendorFilters:
    """ベンダーフラグの filters ブロック。"""

    groups: list[FilterGroup] = field(default_factory=list)
    multivariate: list[MultivariateVariant] | None = None
    payloads: dict[str, str] | None = None
    rollout_percentage: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VendorFilters:
        known = {"groups", "multivariate", "payloads", "rollout_percentage"}
        multivariate = data.get("multivariate")
        payloads = data.get("payloads")
        return cls(
            groups=[FilterGroup.from_dict(g) for g in data.get("groups") or []],
            multivariate=(
                [MultivariateVariant.from_dict(v) for v in multivariate.get("variants") or []]
                if multivariate
                else None
            ),
            payloads=(
                {str(k): v if isinstance(v, str) else _dump_payload(v) for k, v in payloads.items()}
                if payloads is not None
                else None
            ),
            rollout_percentage=data.get("rollout_percentage"),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = dict(self.extra)
        result["groups"] = [g.to_dict() for g in self.groups]
        result["multivariate"] = (
            {"variants": [v.to_dict() for v in self.multivariate]}
            if self.multivariate is not None
            else None
        )
        if self.payloads is not None:
            result["payloads"] = dict(self.payloads)
        if self.rollout_percentage is not None:
            result["rollout_percentage"] = self.rollout_percentage
        return result


def _dump_payload(value: Any) -> str:
    # API によってはペイロードを JSON 値のまま返すため文字列に揃える
    return json.dumps(value)


@dataclass
class VendorFlagRecord:
    """ベンダー側のフラグレコード。"""

    id: int
    key: str
    name: str = ""
    active: bool = False
    deleted: bool = False
    tags: list[str] = field(default_factory=list)
    filters: VendorFilters = field(default_factory=VendorFilters)
    created_at: str = ""
    updated_at: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VendorFlagRecord:
        """API レスポンス辞書から VendorFlagRecord を生成する。"""
        known = {f.name for f in fields(cls)} - {"extra"}
        return cls(
            id=data.get("id", 0),
            key=data["key"],
            name=data.get("name") or "",
            active=bool(data.get("active", False)),
            deleted=bool(data.get("deleted", False)),
            tags=[str(t) for t in data.get("tags") or []],
            filters=VendorFilters.from_dict(data.get("filters") or {}),
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass
class VendorCreateBody:
    """ベンダーのフラグ作成リクエストボディ。"""

    key: str
    name: str
    filters: VendorFilters
    active: bool = True
    rollout_percentage: int | None = None
    ensure_experience_continuity: bool = True
    creation_context: str = "feature_flags"
    evaluation_runtime: str = "server"
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "key": self.key,
            "filters": self.filters.to_dict(),
            "active": self.active,
            "ensure_experience_continuity": self.ensure_experience_continuity,
            "creation_context": self.creation_context,
            "evaluation_runtime": self.evaluation_runtime,
            "tags": list(self.tags),
        }
        if self.rollout_percentage is not None:
            result["rollout_percentage"] = self.rollout_percentage
        return result


@dataclass
class VendorUpdateBody:
    """ベンダーのフラグ更新リクエストボディ。None のフィールドは送信しない。"""

    name: str | None = None
    active: bool | None = None
    filters: VendorFilters | None = None
    tags: list[str] | None = None

    def is_empty(self) -> bool:
        """更新対象のフィールドが 1 つもない場合に True を返す。"""
        return self.name is None and self.active is None and self.filters is None and self.tags is None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.name is not None:
            result["name"] = self.name
        if self.active is not None:
            result["active"] = self.active
        if self.filters is not None:
            result["filters"] = self.filters.to_dict()
        if self.tags is not None:
            result["tags"] = list(self.tags)
        return result
