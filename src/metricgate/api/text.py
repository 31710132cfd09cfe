"""Plain-text rendering of metric values."""

import math
from decimal import Decimal

from metricgate.models import Counter, Gauge


def format_float(value: float) -> str:
    """Shortest decimal form that round-trips, in %g layout.

    Exponent notation is used below 1e-4 and from 1e6 upwards, e.g.
    ``37.1``, ``100``, ``1e-05``, ``1.234567e+06``.
    """
    if not math.isfinite(value):
        return str(value)
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    sign, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    prefix = "-" if sign else ""
    point = len(digits) + exponent
    exp = point - 1

    if exp < -4 or exp >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        return f"{prefix}{mantissa}e{'+' if exp >= 0 else '-'}{abs(exp):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return f"{prefix}{digits}{'0' * (point - len(digits))}"
    return f"{prefix}{digits[:point]}.{digits[point:]}"


def render_metrics_page(gauges: list[Gauge], counters: list[Counter]) -> str:
    """One ``name\\t\\tvalue`` line per stored metric, gauges first."""
    lines = [f"{g.name}\t\t{g.value:f}" for g in gauges]
    lines.extend(f"{c.name}\t\t{c.value:d}" for c in counters)
    return "".join(f"{line}\n" for line in lines)
