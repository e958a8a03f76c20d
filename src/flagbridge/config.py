"""設定の読み込み（YAML ファイル + 環境変数）"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import FlagBridgeError, FlagBridgeErrorCodes


class TypeCoercionConfig(BaseModel):
    """ペイロード文字列の型変換設定。プロセス内で不変として扱う。"""

    model_config = ConfigDict(frozen=True)

    coerce_numeric_strings: bool = False
    coerce_boolean_strings: bool = False


class FeatureFlagsSection(BaseModel):
    """フラグ変換設定。"""

    model_config = ConfigDict(frozen=True)

    default_rollout_percentage: int = Field(default=0, ge=0, le=100)
    type_coercion: TypeCoercionConfig = Field(default_factory=TypeCoercionConfig)


class LogSection(BaseModel):
    """ログ設定。"""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class FlagBridgeConfig(BaseModel):
    """flagbridge 設定全体。"""

    model_config = ConfigDict(frozen=True)

    feature_flags: FeatureFlagsSection = Field(default_factory=FeatureFlagsSection)
    log: LogSection = Field(default_factory=LogSection)


# 環境変数名 -> 設定パス（ドット区切り）
ENV_OVERRIDES: dict[str, str] = {
    "DEFAULT_ROLLOUT_PERCENTAGE": "feature_flags.default_rollout_percentage",
    "COERCE_NUMERIC_STRINGS": "feature_flags.type_coercion.coerce_numeric_strings",
    "COERCE_BOOLEAN_STRINGS": "feature_flags.type_coercion.coerce_boolean_strings",
    "LOG_LEVEL": "log.level",
    "LOG_FORMAT": "log.format",
}

_BOOL_ENV_VALUES = {
    "true": True,
    "1": True,
    "yes": True,
    "on": True,
    "false": False,
    "0": False,
    "no": False,
    "off": False,
}


def merge_layers(*layers: Mapping[str, Any]) -> dict[str, Any]:
    """設定レイヤーを先頭から順に重ねた新しい辞書を返す。

    後ろのレイヤーが優先される。セクション（dict）同士は再帰的に重ね、
    それ以外の値は置き換える。入力は変更しない。
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, Mapping):
                merged[key] = merge_layers(current, value)
            elif isinstance(value, Mapping):
                merged[key] = merge_layers(value)
            else:
                merged[key] = value
    return merged


def _file_layer(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FlagBridgeError(
            code=FlagBridgeErrorCodes.READ_FILE,
            message=f"Failed to read config file: {path}",
            cause=e,
        ) from e
    try:
        layer = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise FlagBridgeError(
            code=FlagBridgeErrorCodes.PARSE_YAML,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    if layer is None:
        return {}
    if not isinstance(layer, dict):
        raise FlagBridgeError(
            code=FlagBridgeErrorCodes.PARSE_YAML,
            message=f"Config file must contain a mapping: {path}",
        )
    return layer


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    """ENV_OVERRIDES に載っている環境変数だけを設定レイヤーに変換する。

    空文字列の環境変数は未設定として扱う。
    """
    layer: dict[str, Any] = {}
    for name, path in ENV_OVERRIDES.items():
        raw = environ.get(name, "").strip()
        if not raw:
            continue
        *sections, leaf = path.split(".")
        node = layer
        for section in sections:
            node = node.setdefault(section, {})
        if leaf.startswith("coerce_"):
            value = _BOOL_ENV_VALUES.get(raw.lower())
            if value is None:
                raise FlagBridgeError(
                    code=FlagBridgeErrorCodes.CONFIG_ERROR,
                    message=f"invalid {name}: {raw!r}",
                )
            node[leaf] = value
        else:
            node[leaf] = raw
    return layer


def _validate(data: dict[str, Any]) -> FlagBridgeConfig:
    try:
        return FlagBridgeConfig.model_validate(data)
    except ValidationError as e:
        raise FlagBridgeError(
            code=FlagBridgeErrorCodes.CONFIG_ERROR,
            message=f"Config validation failed: {e}",
            cause=e,
        ) from e


def load(
    base_path: Path,
    env_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> FlagBridgeConfig:
    """flagbridge の設定を読み込む。

    ベース設定ファイル、環境別設定ファイル（存在する場合のみ）、環境変数の順に
    重ね、最後に一度だけ検証する。environ を省略した場合は環境変数を参照しない。

    Raises:
        FlagBridgeError: 読み込み・パース・検証に失敗した場合
    """
    layers = [_file_layer(base_path)]
    if env_path is not None and env_path.exists():
        layers.append(_file_layer(env_path))
    if environ is not None:
        layers.append(_env_layer(environ))
    return _validate(merge_layers(*layers))


def apply_env_overrides(
    config: FlagBridgeConfig, environ: Mapping[str, str]
) -> FlagBridgeConfig:
    """読み込み済みの設定に環境変数を重ねた新しい FlagBridgeConfig を返す。"""
    return _validate(merge_layers(config.model_dump(), _env_layer(environ)))
