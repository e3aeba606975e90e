"""Canonical variation option names.

Stored attribute keys are free-form ("color", "Color", "COLOR"). They are folded
onto a small fixed set of canonical names once, when variations are loaded.
"""

from collections.abc import Mapping

COLOR = "Color"
SIZE = "Size"
CANONICAL_OPTION_NAMES = (COLOR, SIZE)

_BY_FOLDED_NAME = {name.casefold(): name for name in CANONICAL_OPTION_NAMES}


def canonical_option_name(key: str) -> str:
    """Return the canonical spelling for a known option, else the trimmed key unchanged."""
    stripped = key.strip()
    return _BY_FOLDED_NAME.get(stripped.casefold(), stripped)


def canonicalize_attributes(attributes: Mapping[str, str]) -> dict[str, str]:
    """Rename known option keys to their canonical spelling; first occurrence wins on collision."""
    out: dict[str, str] = {}
    for key, value in attributes.items():
        name = canonical_option_name(str(key))
        if name and name not in out:
            out[name] = str(value).strip()
    return out
