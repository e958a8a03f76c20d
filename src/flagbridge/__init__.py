"""flagbridge: manifest <-> vendor feature flag transformer."""

from .config import (
    FeatureFlagsSection,
    FlagBridgeConfig,
    LogSection,
    TypeCoercionConfig,
    apply_env_overrides,
    load,
    merge_layers,
)
from .detection import TypeDetectionChain
from .exceptions import FlagBridgeError, FlagBridgeErrorCodes, ValidationError
from .logger import configure_logging
from .models import (
    CreateFlagRequest,
    FilterGroup,
    FlagState,
    FlagType,
    Manifest,
    MultivariateVariant,
    StandardFlag,
    UpdateFlagRequest,
    Variant,
    VendorCreateBody,
    VendorFilters,
    VendorFlagRecord,
    VendorUpdateBody,
)
from .transformer import (
    standard_to_vendor_create,
    standard_to_vendor_update,
    vendor_to_manifest,
    vendor_to_standard,
)
from .weights import normalize_variant_weights, validate_variant_weights

__all__ = [
    "CreateFlagRequest",
    "FeatureFlagsSection",
    "FilterGroup",
    "FlagBridgeConfig",
    "FlagBridgeError",
    "FlagBridgeErrorCodes",
    "FlagState",
    "FlagType",
    "LogSection",
    "Manifest",
    "MultivariateVariant",
    "StandardFlag",
    "TypeCoercionConfig",
    "TypeDetectionChain",
    "UpdateFlagRequest",
    "ValidationError",
    "Variant",
    "VendorCreateBody",
    "VendorFilters",
    "VendorFlagRecord",
    "VendorUpdateBody",
    "apply_env_overrides",
    "configure_logging",
    "load",
    "merge_layers",
    "normalize_variant_weights",
    "standard_to_vendor_create",
    "standard_to_vendor_update",
    "validate_variant_weights",
    "vendor_to_manifest",
    "vendor_to_standard",
]
