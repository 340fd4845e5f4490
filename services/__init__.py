"""
Services Package

Business logic modules for the kitchen ledger.
"""

from .errors import (
    KitchenLedgerError,
    ValidationError,
    NotFoundError,
    InvalidTransitionError,
    RecipeLockedError,
)

from .events import (
    kitchen_signals,
    ingredient_price_changed,
    publish_price_changes,
)

from .costing import (
    line_cost,
    recompute_recipe_costs,
    get_recipe,
    scale_recipe,
    update_recipe_lines,
    set_recipe_lock,
    recompute_costs_for_ingredient,
    get_ingredient,
    save_ingredient,
    update_ingredient_pricing,
)

from .demand import (
    yield_adjusted,
    generate_menu_requisitions,
    generate_plan_requisitions,
)

from .ledger import (
    is_posted,
    resolve_ingredient,
    post_requisition,
    record_movement,
    record_production,
    adjust_stock,
    list_movements,
    low_stock,
)

from .requisitions import (
    OUTCOME_COMPLETED,
    OUTCOME_PARTIAL,
    OUTCOME_ALREADY_POSTED,
    get_requisition,
    create_requisition,
    list_requisitions,
    approve_requisition,
    bulk_approve,
    reject_requisition,
    complete_requisition,
    delete_requisition,
)

from .planning import (
    get_plan,
    save_plan,
    delete_plan,
)

__all__ = [
    # Errors
    'KitchenLedgerError',
    'ValidationError',
    'NotFoundError',
    'InvalidTransitionError',
    'RecipeLockedError',
    # Events
    'kitchen_signals',
    'ingredient_price_changed',
    'publish_price_changes',
    # Costing
    'line_cost',
    'recompute_recipe_costs',
    'get_recipe',
    'scale_recipe',
    'update_recipe_lines',
    'set_recipe_lock',
    'recompute_costs_for_ingredient',
    'get_ingredient',
    'save_ingredient',
    'update_ingredient_pricing',
    # Demand
    'yield_adjusted',
    'generate_menu_requisitions',
    'generate_plan_requisitions',
    # Ledger
    'is_posted',
    'resolve_ingredient',
    'post_requisition',
    'record_movement',
    'record_production',
    'adjust_stock',
    'list_movements',
    'low_stock',
    # Requisitions
    'OUTCOME_COMPLETED',
    'OUTCOME_PARTIAL',
    'OUTCOME_ALREADY_POSTED',
    'get_requisition',
    'create_requisition',
    'list_requisitions',
    'approve_requisition',
    'bulk_approve',
    'reject_requisition',
    'complete_requisition',
    'delete_requisition',
    # Plans
    'get_plan',
    'save_plan',
    'delete_plan',
]
