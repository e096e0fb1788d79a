"""Compact human-readable renderings of counters and byte totals."""

from __future__ import annotations

_BYTE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB")

_THOUSAND = 1000
_TEN_THOUSAND = 10 * _THOUSAND
_MILLION = 1000 * 1000
_TEN_MILLION = 10 * _MILLION


def bytes_display_string(value: int) -> str:
    """Render a byte count in B, KiB, MiB, GiB or TiB with one decimal place."""
    scaled = float(value)
    unit_index = 0
    while scaled >= 1024.0 and unit_index < len(_BYTE_UNITS) - 1:
        scaled /= 1024.0
        unit_index += 1

    if unit_index == 0:
        return f"{int(scaled)} {_BYTE_UNITS[0]}"
    return f"{scaled:.1f} {_BYTE_UNITS[unit_index]}"


def _suffixed(value: int) -> str | None:
    """Return the k/M form of ``value``, or None when it is shown as is."""
    if _MILLION <= value < _TEN_MILLION:
        millions = value // _MILLION
        hundred_thousands = (value % _MILLION) // (100 * _THOUSAND)
        return f"{millions}.{hundred_thousands}M"
    if _TEN_THOUSAND <= value < _MILLION:
        return f"{value // _THOUSAND}k"
    if _THOUSAND <= value < _TEN_THOUSAND:
        thousands = value // _THOUSAND
        hundreds = (value % _THOUSAND) // 100
        return f"{thousands}.{hundreds}k"
    return None


def decimal_suffix_string(value: int) -> str:
    """Render a count with a k or M suffix where it fits in four characters."""
    suffixed = _suffixed(value)
    return suffixed if suffixed is not None else str(value)


def y_axis_text(value: int) -> str:
    """Render a histogram axis label, padded so plain numbers line up."""
    suffixed = _suffixed(value)
    if suffixed is not None:
        return f" {suffixed} "
    return f" {value}".ljust(5) + " "