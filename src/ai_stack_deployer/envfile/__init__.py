"""Service configuration files: markers, classification and transforms."""

from .applier import (
    ApplyResult,
    ConfigApplier,
    FieldMode,
    FieldRule,
    Transform,
    TRANSFORMS,
    credential_parameters,
    default_marker_store,
    hardware_parameters,
)
from .markers import Marker, MarkerStore
from .state import ConfigState, Encoding, StateInspector, detect_encoding

__all__ = [
    "ApplyResult",
    "ConfigApplier",
    "ConfigState",
    "Encoding",
    "FieldMode",
    "FieldRule",
    "Marker",
    "MarkerStore",
    "StateInspector",
    "Transform",
    "TRANSFORMS",
    "credential_parameters",
    "default_marker_store",
    "detect_encoding",
    "hardware_parameters",
]
