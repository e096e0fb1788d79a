"""Text rendering of latency histograms and counter read-outs for the dashboard."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from loadshear.numeric_strings import (
    bytes_display_string,
    decimal_suffix_string,
    y_axis_text,
)


@dataclass(frozen=True)
class Color:
    """A 24-bit RGB colour."""

    r: int
    g: int
    b: int

    def ansi_foreground(self) -> str:
        """The escape sequence that selects this colour as the text colour."""
        return f"\033[38;2;{self.r};{self.g};{self.b}m"


SCHEME_LIGHT_TEAL = Color(31, 255, 181)
SCHEME_TEAL = Color(27, 214, 224)
SCHEME_PURPLE = Color(104, 73, 245)
SCHEME_RED = Color(224, 27, 75)

LATENCY_LABELS = (
    "64 ", "128", "256", "512", "1  ", "2  ",
    "4  ", "8  ", "16 ", "32 ", "64 ", "128",
    "256", "512", "1  ", ">1 ",
)

UNIT_LABELS = (
    "us ", "us ", "us ", "us ", "ms ", "ms ",
    "ms ", "ms ", "ms ", "ms ", "ms ", "ms ",
    "ms ", "ms ", "s  ", "s  ",
)

_HIST_COLORS = (
    SCHEME_LIGHT_TEAL,
    SCHEME_TEAL,
    SCHEME_TEAL,
    SCHEME_PURPLE,
    SCHEME_RED,
)
_HIST_STOPS = (0.0, 0.35, 0.55, 0.80, 1.0)

BLOCK_CHAR = "\u2588"
SEPARATOR_CHAR = "\u2500"
Y_LABEL_WIDTH = 6
_GAMMA = 2.2


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def interpolate_color(t: float, start: Color, end: Color) -> Color:
    """Blend two colours in gamma space; ``t`` of 0 gives ``start``, 1 gives ``end``."""

    def channel(a: int, b: int) -> int:
        mixed = (1.0 - t) * a**_GAMMA + t * b**_GAMMA
        value = int(mixed ** (1.0 / _GAMMA) + 1e-9)
        return max(0, min(255, value))

    return Color(
        channel(start.r, end.r),
        channel(start.g, end.g),
        channel(start.b, end.b),
    )


def gradient_color(column: int, width: int) -> Color:
    """The bar colour for ``column`` of a histogram ``width`` columns wide."""
    t = column / max(1, width - 1)
    t = min(1.0, max(0.0, t))

    segment = 0
    while segment < len(_HIST_STOPS) - 1 and t > _HIST_STOPS[segment + 1]:
        segment += 1

    if segment >= len(_HIST_COLORS) - 1:
        return _HIST_COLORS[-1]

    low, high = _HIST_STOPS[segment], _HIST_STOPS[segment + 1]
    t_segment = (t - low) / (high - low)
    return interpolate_color(
        t_segment, _HIST_COLORS[segment], _HIST_COLORS[segment + 1]
    )


def render_histogram(
    buckets: Sequence[int],
    title: str,
    height: int = 8,
    bin_width: int = 4,
) -> str:
    """Draw the latency buckets as vertical bars with a labelled y axis."""
    values = list(buckets)
    if not values:
        raise ValueError("histogram needs at least one bucket")
    if len(values) > len(LATENCY_LABELS):
        raise ValueError(
            f"histogram supports at most {len(LATENCY_LABELS)} buckets"
        )
    if height < 1 or bin_width < 1:
        raise ValueError("height and bin width must be positive")

    max_value = max(values)
    fills = [
        min(height, _round_half_up(value / max_value * height)) if max_value > 0 else 0
        for value in values
    ]

    blank_label = " " * Y_LABEL_WIDTH
    blank_cell = " " * bin_width
    rows = []
    for offset, row in enumerate(range(height - 1, -1, -1)):
        if offset % 4 == 0:
            fraction = row / max(1, height - 1)
            label = y_axis_text(_round_half_up(fraction * max_value))
            label = label.center(Y_LABEL_WIDTH)
        else:
            label = blank_label
        cells = "".join(
            BLOCK_CHAR * bin_width if row < fill else blank_cell for fill in fills
        )
        rows.append(f"{label} {cells}")

    rows.append(f"{blank_label} {blank_cell * len(values)}")
    rows.append(
        f"{blank_label} "
        + "".join(label.center(bin_width) for label in LATENCY_LABELS[: len(values)])
    )
    rows.append(
        f"{blank_label} "
        + "".join(label.center(bin_width) for label in UNIT_LABELS[: len(values)])
    )

    width = max(len(row) for row in rows)
    return "\n".join([title.center(width), SEPARATOR_CHAR * width, *rows])


def bytes_display(title: str, value: int, diff: int) -> str:
    """A byte total with its growth since the last sample, if any."""
    diff_text = f" +{bytes_display_string(diff)}" if diff > 0 else " "
    return f"{title}{bytes_display_string(value)}{diff_text}"


def numeric_display(title: str, value: int, diff: int) -> str:
    """A counter with its change since the last sample, if any."""
    diff_text = f" +{decimal_suffix_string(diff)}" if diff != 0 else " "
    return f"{title}{decimal_suffix_string(value)}{diff_text}"