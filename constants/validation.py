"""
Validation Constants

Contains whitelist values for validating caller input and the
state values shared by requisitions and the stock ledger.
"""

# Units an ingredient purchase pack can be priced in
VALID_PURCHASE_UNITS = {'kg', 'g', 'lb', 'oz', 'lt', 'ml'}

# Valid meal types for menus and requisitions
VALID_MEAL_TYPES = {'breakfast', 'lunch', 'dinner', 'snack', 'extra'}

# Meal-block slots of a production plan, in display order
PLAN_BLOCKS = ('breakfast', 'lunch', 'snack', 'dinner', 'extra')

# Requisition header and line statuses
STATUS_PENDING = 'pending'
STATUS_APPROVED = 'approved'
STATUS_REJECTED = 'rejected'
STATUS_COMPLETED = 'completed'
VALID_REQUISITION_STATUSES = {STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_COMPLETED}

# Stock movement directions
DIRECTION_INBOUND = 'inbound'
DIRECTION_OUTBOUND = 'outbound'
DIRECTION_ADJUSTMENT = 'adjustment'
VALID_DIRECTIONS = {DIRECTION_INBOUND, DIRECTION_OUTBOUND, DIRECTION_ADJUSTMENT}

# Stock movement provenance
SOURCE_REQUISITION = 'Requisition'
SOURCE_PRODUCTION_ORDER = 'ProductionOrder'
SOURCE_MANUAL = 'Manual'
SOURCE_ADJUSTMENT = 'Adjustment'
VALID_SOURCE_TYPES = {SOURCE_REQUISITION, SOURCE_PRODUCTION_ORDER, SOURCE_MANUAL, SOURCE_ADJUSTMENT}

# Who generated requisitions are requested by
AUTO_REQUESTER = 'Auto-System'

# Maximum field lengths
MAX_LENGTHS = {
    'ingredient_name': 200,
    'recipe_name': 200,
    'supplier': 200,
    'base': 100,
    'unit': 20,
    'notes': 2000,
}
