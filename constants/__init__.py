"""
Constants Package

Unit tables and validation whitelists shared by models and services.
"""

from .units import (
    UNIT_ALIASES,
    MASS_TO_G,
    VOLUME_TO_ML,
    MASS_UNITS,
    VOLUME_UNITS,
    KG_PER_LITRE,
    DEFAULT_ORIGINAL_UNIT,
)

from .validation import (
    VALID_PURCHASE_UNITS,
    VALID_MEAL_TYPES,
    PLAN_BLOCKS,
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_COMPLETED,
    VALID_REQUISITION_STATUSES,
    DIRECTION_INBOUND,
    DIRECTION_OUTBOUND,
    DIRECTION_ADJUSTMENT,
    VALID_DIRECTIONS,
    SOURCE_REQUISITION,
    SOURCE_PRODUCTION_ORDER,
    SOURCE_MANUAL,
    SOURCE_ADJUSTMENT,
    VALID_SOURCE_TYPES,
    AUTO_REQUESTER,
    MAX_LENGTHS,
)
