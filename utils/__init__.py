# Utility modules for the kitchen ledger
from .units import to_number, normalize_unit, convert_quantity, to_kg, compute_price_per_kg
from .sanitizer import (
    sanitize_text, sanitize_name, sanitize_notes, sanitize_unit
)
