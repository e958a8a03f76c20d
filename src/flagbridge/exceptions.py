"""flagbridge ライブラリの例外型定義"""

from __future__ import annotations


class FlagBridgeError(Exception):
    """flagbridge ライブラリのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class FlagBridgeErrorCodes:
    """FlagBridgeError のエラーコード定数。"""

    INVALID_VARIANTS: str = "INVALID_VARIANTS"
    INVALID_WEIGHT: str = "INVALID_WEIGHT"
    INVALID_REQUEST: str = "INVALID_REQUEST"
    CONFIG_ERROR: str = "CONFIG_ERROR"
    READ_FILE: str = "READ_FILE_ERROR"
    PARSE_YAML: str = "PARSE_YAML_ERROR"


class ValidationError(FlagBridgeError):
    """呼び出し側の入力不備を表すエラー。field に問題のあるフィールド名を持つ。"""

    def __init__(self, field: str, message: str, *, code: str | None = None) -> None:
        super().__init__(
            code if code is not None else f"INVALID_{field.upper()}",
            message,
        )
        self.field = field
