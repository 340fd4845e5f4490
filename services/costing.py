"""
Recipe Cost Service

Functions for costing recipes from their ingredient lines, scaling them
to a portion count, and recomputing every dependent recipe after an
ingredient is repriced.
"""

import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db, Ingredient, Recipe, RecipeIngredient
from models.base import utcnow
from constants import VALID_PURCHASE_UNITS
from utils.sanitizer import sanitize_name
from utils.units import normalize_unit, to_kg, to_number
from .errors import NotFoundError, RecipeLockedError, ValidationError
from .events import ingredient_price_changed, publish_price_changes

logger = logging.getLogger(__name__)


def line_unit(line):
    """Unit of a recipe line: its own, else the ingredient's base unit."""
    if line.unit:
        return line.unit
    if line.ingredient is not None:
        return line.ingredient.original_unit
    return None


def line_cost(line):
    """Cost of one recipe line at the ingredient's current price per kg."""
    ing = line.ingredient
    if ing is None:
        return 0.0
    kilograms = to_kg(line.quantity or 0.0, line_unit(line))
    return (ing.price_per_kg or 0.0) * kilograms


def recompute_recipe_costs(recipe):
    """
    Refresh line costs, total cost and cost per portion on a recipe.

    Back-fills base_quantity the first time a line is seen without one.
    Does not commit.
    """
    total = 0.0
    for line in recipe.lines:
        if line.base_quantity is None:
            line.base_quantity = line.quantity
        line.line_cost = line_cost(line)
        total += line.line_cost

    recipe.total_cost = total
    portions = recipe.portions or 0
    recipe.cost_per_portion = total / portions if portions > 0 else 0.0
    return recipe


def _check_lock(recipe, privileged):
    if recipe.is_locked and not privileged:
        raise RecipeLockedError(f'Recipe "{recipe.name}" is locked')


def get_recipe(recipe_id):
    recipe = db.session.get(Recipe, recipe_id)
    if recipe is None:
        raise NotFoundError('Recipe not found')
    return recipe


def scale_recipe(recipe, target_portions, privileged=False, persist=True):
    """
    Rescale every line of a recipe to target_portions.

    quantity = base_quantity * target_portions / base_portions. With
    persist=False the result is a preview: nothing is written and the
    session changes are rolled back before returning the scaled figures.
    """
    target = to_number(target_portions, default=None)
    if target is None or target <= 0:
        raise ValidationError('targetPortions must be a positive number')

    if persist:
        _check_lock(recipe, privileged)

    if not recipe.base_portions:
        recipe.base_portions = recipe.portions or current_app.config['DEFAULT_BASE_PORTIONS']

    factor = target / recipe.base_portions
    for line in recipe.lines:
        if line.base_quantity is None:
            line.base_quantity = line.quantity
        line.quantity = line.base_quantity * factor

    recipe.yield_weight = sum(line.quantity for line in recipe.lines)
    recipe.portions = target
    recompute_recipe_costs(recipe)

    scaled = recipe.to_dict()
    if persist:
        db.session.commit()
        logger.info("Recipe %s scaled to %s portions", recipe.id, target)
    else:
        db.session.rollback()
    return scaled


def update_recipe_lines(recipe, lines, privileged=False):
    """
    Replace the ingredient lines of a recipe and recompute its costs.

    Each line is {ingredientId, quantity, baseQuantity?, unit?}.
    """
    _check_lock(recipe, privileged)

    new_lines = []
    for position, raw in enumerate(lines or []):
        ingredient_id = raw.get('ingredientId')
        if ingredient_id is None:
            raise ValidationError('Each recipe line needs an ingredientId')
        if db.session.get(Ingredient, ingredient_id) is None:
            raise ValidationError(f'Unknown ingredient {ingredient_id}')
        quantity = to_number(raw.get('quantity'))
        new_lines.append(RecipeIngredient(
            ingredient_id=ingredient_id,
            position=position,
            quantity=quantity,
            base_quantity=to_number(raw.get('baseQuantity'), default=quantity),
            unit=raw.get('unit') or None,
        ))

    recipe.lines = new_lines
    recipe.yield_weight = sum(line.quantity for line in new_lines)
    db.session.flush()
    recompute_recipe_costs(recipe)
    db.session.commit()
    return recipe


def set_recipe_lock(recipe, locked, locked_by=None, note=''):
    """Lock or unlock a recipe, stamping who did it."""
    recipe.is_locked = bool(locked)
    if recipe.is_locked:
        recipe.locked_at = utcnow()
        recipe.locked_by = locked_by
        recipe.lock_note = note or ''
    else:
        recipe.locked_at = None
        recipe.locked_by = None
        recipe.lock_note = ''
    db.session.commit()
    return recipe


def recompute_costs_for_ingredient(ingredient_id, batch_size=None):
    """
    Recompute and persist the costs of every recipe using an ingredient.

    Recipes are walked in pages of batch_size ordered by id, and each one
    is committed on its own. A recipe that fails is rolled back, logged
    and skipped; the remaining recipes are still processed. Locked recipes
    are included: the lock guards structure, not cost figures.

    Returns {'recomputed': n, 'failed': m}.
    """
    if batch_size is None:
        batch_size = current_app.config.get('COST_CASCADE_BATCH_SIZE', 50)

    recomputed = 0
    failed = 0
    last_id = 0

    while True:
        recipe_ids = [
            row[0] for row in (
                db.session.query(Recipe.id)
                .join(RecipeIngredient, RecipeIngredient.recipe_id == Recipe.id)
                .filter(RecipeIngredient.ingredient_id == ingredient_id, Recipe.id > last_id)
                .distinct()
                .order_by(Recipe.id)
                .limit(batch_size)
                .all()
            )
        ]
        if not recipe_ids:
            break

        for recipe_id in recipe_ids:
            last_id = recipe_id
            try:
                recipe = db.session.get(Recipe, recipe_id)
                if recipe is None:
                    continue
                recompute_recipe_costs(recipe)
                db.session.commit()
                recomputed += 1
            except Exception:
                db.session.rollback()
                failed += 1
                logger.exception(
                    "Recipe cost recompute failed for recipe %s (ingredient %s)",
                    recipe_id, ingredient_id
                )

    logger.info(
        "Cost cascade for ingredient %s: %d recomputed, %d failed",
        ingredient_id, recomputed, failed
    )
    return {'recomputed': recomputed, 'failed': failed}


@ingredient_price_changed.connect
def _on_ingredient_price_changed(sender, ingredient_id=None, **extra):
    # The price write has already committed
    try:
        recompute_costs_for_ingredient(ingredient_id)
    except Exception:
        db.session.rollback()
        logger.exception("Cost cascade aborted for ingredient %s", ingredient_id)


def get_ingredient(ingredient_id):
    ingredient = db.session.get(Ingredient, ingredient_id)
    if ingredient is None:
        raise NotFoundError('Ingredient not found')
    return ingredient


def save_ingredient(ingredient):
    """Persist an ingredient, then run the cost cascade if its price moved."""
    db.session.add(ingredient)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    publish_price_changes()
    return ingredient


def update_ingredient_pricing(ingredient_id, purchase_unit=None, purchase_quantity=None,
                              original_price=None, yield_percent=None, supplier=None):
    """Apply a price edit to an ingredient; unchanged values append no history."""
    ingredient = get_ingredient(ingredient_id)

    if purchase_unit is not None:
        unit = normalize_unit(purchase_unit)
        if unit not in VALID_PURCHASE_UNITS:
            raise ValidationError(f"Unsupported purchase unit '{purchase_unit}'")
        ingredient.purchase_unit = unit
    if purchase_quantity is not None:
        quantity = to_number(purchase_quantity, default=None)
        if quantity is None or quantity <= 0:
            raise ValidationError('purchaseQuantity must be a positive number')
        ingredient.purchase_quantity = quantity
    if original_price is not None:
        price = to_number(original_price, default=None)
        if price is None or price < 0:
            raise ValidationError('originalPrice must be zero or more')
        ingredient.original_price = price
    if yield_percent is not None:
        value = to_number(yield_percent, default=None)
        if value is None or value <= 0 or value > 100:
            raise ValidationError('yield must be in (0, 100]')
        ingredient.yield_percent = value
    if supplier is not None:
        ingredient.supplier = sanitize_name(supplier)

    return save_ingredient(ingredient)
