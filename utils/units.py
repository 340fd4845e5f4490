"""
Unit Conversion Helpers

Normalizes unit strings and converts quantities between units of the
same dimension. Conversions that are not known pass the quantity through
unchanged so that a stock movement is never blocked by an odd unit.
"""

import math

from constants import (
    UNIT_ALIASES, MASS_TO_G, VOLUME_TO_ML, MASS_UNITS, VOLUME_UNITS, KG_PER_LITRE,
)


def to_number(value, default=0.0):
    """Coerce a caller-supplied value to float, falling back to default."""
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (ValueError, TypeError):
        return default
    if not math.isfinite(number):
        return default
    return number


def normalize_unit(unit):
    """Lowercase, trim and resolve aliases ('Kgs' -> 'kg', 'litre' -> 'lt')."""
    cleaned = str(unit or '').strip().lower()
    return UNIT_ALIASES.get(cleaned, cleaned)


def convert_quantity(quantity, from_unit, to_unit):
    """
    Convert quantity from one unit to another.

    Mass units convert among themselves, as do volume units. Same unit,
    missing unit, unknown unit or a mass/volume pair returns the quantity
    unchanged.
    """
    source = normalize_unit(from_unit)
    target = normalize_unit(to_unit)

    if not source or not target or source == target:
        return quantity

    if source in MASS_UNITS and target in MASS_UNITS:
        return quantity * MASS_TO_G[source] / MASS_TO_G[target]

    if source in VOLUME_UNITS and target in VOLUME_UNITS:
        return quantity * VOLUME_TO_ML[source] / VOLUME_TO_ML[target]

    # Can't convert
    return quantity


def to_kg(quantity, unit):
    """
    Express quantity in kilograms for costing.

    Volumes are weighed at one kilogram per litre. Units with no known
    factor are treated as if already in kilograms.
    """
    normalized = normalize_unit(unit)
    if normalized in MASS_UNITS:
        return convert_quantity(quantity, normalized, 'kg')
    if normalized in VOLUME_UNITS:
        return convert_quantity(quantity, normalized, 'lt') * KG_PER_LITRE
    return quantity


def compute_price_per_kg(purchase_unit, purchase_quantity, original_price):
    """
    Price per kilogram of a purchase pack.

    Returns None when the pack is incomplete (missing unit, quantity or
    price, or a quantity that is not positive).
    """
    if not purchase_unit or purchase_quantity is None or original_price is None:
        return None
    if purchase_quantity <= 0 or original_price < 0:
        return None

    kilograms = to_kg(purchase_quantity, purchase_unit)
    if kilograms <= 0:
        return None
    return original_price / kilograms
