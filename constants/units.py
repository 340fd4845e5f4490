"""
Unit Constants and Conversion Tables

Contains the unit aliases and conversion factors used to normalize
received quantities and to cost recipe lines by the kilogram.
"""

# Unit aliases (lowercase input -> canonical unit)
UNIT_ALIASES = {
    'kilogram': 'kg', 'kilograms': 'kg', 'kgs': 'kg', 'kilo': 'kg', 'kilos': 'kg',
    'gram': 'g', 'grams': 'g', 'gr': 'g', 'grs': 'g',
    'milligram': 'mg', 'milligrams': 'mg',
    'pound': 'lb', 'pounds': 'lb', 'lbs': 'lb',
    'ounce': 'oz', 'ounces': 'oz',
    'liter': 'lt', 'liters': 'lt', 'litre': 'lt', 'litres': 'lt', 'l': 'lt', 'ltr': 'lt',
    'milliliter': 'ml', 'milliliters': 'ml', 'millilitre': 'ml', 'millilitres': 'ml',
}

# Mass conversions to G
MASS_TO_G = {'mg': 0.001, 'g': 1, 'kg': 1000, 'oz': 28.3495, 'lb': 453.592}

# Volume conversions to ML
VOLUME_TO_ML = {'ml': 1, 'lt': 1000}

MASS_UNITS = set(MASS_TO_G)
VOLUME_UNITS = set(VOLUME_TO_ML)

# Liquids are priced per litre as if one litre weighed one kilogram
KG_PER_LITRE = 1.0

# Fallback consumption unit for ingredients materialized from a bare line
DEFAULT_ORIGINAL_UNIT = 'unit'
