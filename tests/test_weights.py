"""バリアント重み正規化のユニットテスト"""

import pytest
from flagbridge.exceptions import FlagBridgeErrorCodes, ValidationError
from flagbridge.models import Variant
from flagbridge.weights import normalize_variant_weights, validate_variant_weights


def weights_of(variants: dict[str, Variant]) -> dict[str, int | None]:
    return {k: v.weight for k, v in variants.items()}


def test_all_weights_sum_100_pass_through() -> None:
    """全て指定済みで合計 100 ならそのまま。"""
    variants = {"a": Variant("A", 25), "b": Variant("B", 75)}
    result = normalize_variant_weights(variants)
    assert weights_of(result) == {"a": 25, "b": 75}
    assert result["a"].value == "A"


def test_no_weights_equal_split() -> None:
    """未指定なら均等配分し、余りはキー昇順の先頭に配る。"""
    variants = {"c": Variant("C"), "a": Variant("A"), "b": Variant("B")}
    assert weights_of(normalize_variant_weights(variants)) == {"a": 34, "b": 33, "c": 33}


def test_no_weights_two_and_four_variants() -> None:
    two = normalize_variant_weights({"on": Variant(True), "off": Variant(False)})
    assert weights_of(two) == {"on": 50, "off": 50}
    four = normalize_variant_weights({k: Variant(k) for k in "abcd"})
    assert set(weights_of(four).values()) == {25}


def test_single_variant_gets_everything() -> None:
    assert weights_of(normalize_variant_weights({"only": Variant(1)})) == {"only": 100}


def test_partial_weights_distribute_remainder() -> None:
    """指定済みの重みは保持し、残りを未指定に均等配分する。"""
    variants = {"control": Variant("c", 40), "a": Variant("a"), "b": Variant("b")}
    assert weights_of(normalize_variant_weights(variants)) == {"control": 40, "a": 30, "b": 30}


def test_partial_weights_remainder_goes_to_first_unweighted() -> None:
    variants = {"x": Variant(1, 50), "c": Variant(2), "a": Variant(3), "b": Variant(4)}
    assert weights_of(normalize_variant_weights(variants)) == {"x": 50, "a": 17, "b": 17, "c": 16}


def test_proportional_rescale_preserves_order() -> None:
    """合計が 100 でない場合は比例配分し、大小関係を保つ。"""
    variants = {"x": Variant(1, 20), "y": Variant(2, 30), "z": Variant(3, 40)}
    result = weights_of(normalize_variant_weights(variants))
    assert sum(w for w in result.values() if w is not None) == 100
    assert result == {"x": 23, "y": 33, "z": 44}
    assert result["x"] < result["y"] < result["z"]


def test_proportional_rescale_over_100() -> None:
    variants = {"a": Variant("a", 100), "b": Variant("b", 100)}
    assert weights_of(normalize_variant_weights(variants)) == {"a": 50, "b": 50}


def test_some_weights_sum_over_100_unweighted_get_zero() -> None:
    """一部指定で合計 100 以上なら全体を比例配分し、未指定は 0 になる。"""
    variants = {"a": Variant("a", 60), "b": Variant("b", 60), "c": Variant("c")}
    result = weights_of(normalize_variant_weights(variants))
    assert result == {"a": 50, "b": 50, "c": 0}


def test_all_zero_weights_fall_back_to_equal_split() -> None:
    variants = {"a": Variant("a", 0), "b": Variant("b", 0), "c": Variant("c", 0)}
    assert weights_of(normalize_variant_weights(variants)) == {"a": 34, "b": 33, "c": 33}


@pytest.mark.parametrize(
    "variants",
    [
        {"a": Variant(1), "b": Variant(2), "c": Variant(3), "d": Variant(4), "e": Variant(5), "f": Variant(6)},
        {"a": Variant(1, 10), "b": Variant(2)},
        {"a": Variant(1, 33), "b": Variant(2, 33), "c": Variant(3, 33)},
        {"a": Variant(1, 70), "b": Variant(2, 70), "c": Variant(3)},
        {"a": Variant(1, 7), "b": Variant(2, 13), "c": Variant(3, 1)},
    ],
)
def test_sum_is_always_100(variants: dict[str, Variant]) -> None:
    """どの入力でも合計がちょうど 100 になること。"""
    result = normalize_variant_weights(variants)
    weights = [v.weight for v in result.values()]
    assert all(isinstance(w, int) and w >= 0 for w in weights)
    assert sum(w for w in weights if w is not None) == 100


def test_normalize_is_deterministic_regardless_of_key_order() -> None:
    """キーの並び順に関係なく同じ結果になること。"""
    first = normalize_variant_weights({"b": Variant(1, 20), "a": Variant(2, 30), "c": Variant(3, 40)})
    second = normalize_variant_weights({"c": Variant(3, 40), "a": Variant(2, 30), "b": Variant(1, 20)})
    assert weights_of(first) == weights_of(second)


def test_normalize_does_not_mutate_input() -> None:
    variants = {"a": Variant("a"), "b": Variant("b", 10)}
    normalize_variant_weights(variants)
    assert variants["a"].weight is None
    assert variants["b"].weight == 10


def test_empty_variants_rejected() -> None:
    """空のバリアントは ValidationError。"""
    with pytest.raises(ValidationError) as exc_info:
        normalize_variant_weights({})
    assert exc_info.value.code == FlagBridgeErrorCodes.INVALID_VARIANTS


@pytest.mark.parametrize("weight", [-1, 101, True])
def test_out_of_range_weight_rejected(weight: int) -> None:
    """0〜100 の整数以外の重みは ValidationError。"""
    with pytest.raises(ValidationError) as exc_info:
        validate_variant_weights({"a": Variant("a", weight)})
    assert exc_info.value.code == FlagBridgeErrorCodes.INVALID_WEIGHT
    assert exc_info.value.field == "weight"
