from __future__ import annotations

import logging

from ..services.errors import UnsupportedVariable
from .base import VariableSpec
from .variables import MARINE_VARIABLES, generic_variable

logger = logging.getLogger(__name__)

VARIABLE_ALIASES: dict[str, str] = {
    "swh": "hs",
    "wave_height": "hs",
    "tm": "tm02",
    "tp": "tpeak",
    "dir": "dirm",
    "band1": "inundation",
    "inun": "inundation",
}

_warned_unknown_variable: set[str] = set()
_unknown_variable_hits: dict[str, int] = {}


def normalize_variable_id(var_id: str) -> str:
    normalized = str(var_id or "").strip().lower()
    if "/" in normalized:
        # provider layer names such as "cook_forecast/hs"
        normalized = normalized.rsplit("/", 1)[-1]
    return VARIABLE_ALIASES.get(normalized, normalized)


def is_supported(var_id: str) -> bool:
    return normalize_variable_id(var_id) in MARINE_VARIABLES


def get_variable(var_id: str, *, strict: bool = False) -> VariableSpec:
    """Look up a catalog entry, falling back to a generic continuous spec.

    The fallback is logged once per id; later hits only bump a counter. With
    strict=True an unknown id raises UnsupportedVariable instead.
    """
    key = normalize_variable_id(var_id)
    spec = MARINE_VARIABLES.get(key)
    if spec is not None:
        return spec
    if strict:
        raise UnsupportedVariable(f"Unsupported variable: {var_id!r}")

    key = key or "<unknown-var>"
    _unknown_variable_hits[key] = _unknown_variable_hits.get(key, 0) + 1
    if key not in _warned_unknown_variable:
        _warned_unknown_variable.add(key)
        logger.warning(
            "Unsupported variable %r; using generic continuous defaults (hits=%d)",
            key,
            _unknown_variable_hits[key],
        )
    return generic_variable(key)


def list_variables() -> list[VariableSpec]:
    return sorted(MARINE_VARIABLES.values(), key=lambda spec: (spec.order is None, spec.order or 0, spec.id))
