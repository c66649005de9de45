"""Privacy policy for what part of an analysis bundle reaches the inference prompt.

The integration prompt always carries the pre-computed dimension scores. The
analysis bundle (per-second series and their statistics) is optional context
and is minimized before it is rendered:

- ``strict``: session info and per-channel statistics only
- ``standard``: plus the downsampled headline series
- ``explicit``: the full bundle, including full-resolution series
"""

from __future__ import annotations

from typing import Any, Literal, get_args

PrivacyMode = Literal["strict", "standard", "explicit"]

PRIVACY_MODES: tuple[str, ...] = get_args(PrivacyMode)


def _round_floats(obj: Any, ndigits: int = 2) -> Any:
    if isinstance(obj, float):
        return round(obj, ndigits)
    if isinstance(obj, dict):
        return {k: _round_floats(v, ndigits=ndigits) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_round_floats(v, ndigits=ndigits) for v in obj]
    return obj


def build_llm_data_context(
    bundle: dict[str, Any],
    privacy_mode: PrivacyMode,
) -> dict[str, Any]:
    """Minimize an analysis bundle for the inference prompt.

    Raises:
        ValueError: Unknown privacy mode.
    """
    if privacy_mode not in PRIVACY_MODES:
        raise ValueError(f"Unknown privacy mode {privacy_mode!r}; expected one of {PRIVACY_MODES}")

    base: dict[str, Any] = {
        "session_info": dict(bundle.get("session_info", {})),
        "statistics": _round_floats(bundle.get("statistics", {}), ndigits=4),
    }

    if privacy_mode == "strict":
        return base

    if privacy_mode == "standard":
        base["downsampled"] = _round_floats(bundle.get("downsampled", {}), ndigits=2)
        return base

    # explicit
    return dict(bundle)
