"""
Stock Ledger Service

Posts received goods against the ingredient stock ledger. Requisition
postings happen at most once per requisition; production runs, manual
entries and stock adjustments are written as they come.
"""

import logging
from datetime import date as date_cls

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from constants import (
    DEFAULT_ORIGINAL_UNIT, DIRECTION_ADJUSTMENT, DIRECTION_INBOUND, DIRECTION_OUTBOUND,
    SOURCE_ADJUSTMENT, SOURCE_MANUAL, SOURCE_PRODUCTION_ORDER, SOURCE_REQUISITION, STATUS_COMPLETED,
    VALID_DIRECTIONS, VALID_SOURCE_TYPES,
)
from models import db, Ingredient, Recipe, StockMovement, StockPosting
from utils.sanitizer import sanitize_name, sanitize_notes, sanitize_unit
from utils.units import convert_quantity, to_kg, to_number
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _today():
    return date_cls.today().isoformat()


def is_posted(source_type, source_id):
    """True when a posting marker exists for this source."""
    posting = db.session.query(StockPosting.id).filter_by(
        source_type=source_type, source_id=str(source_id)
    ).first()
    return posting is not None


def resolve_ingredient(line):
    """
    Find the ingredient a requisition line refers to, creating it if needed.

    Resolution order:
    1. ingredient_id, when it still exists
    2. exact (name, supplier) match
    3. exact name match
    4. a new ingredient with zero stock, in the line's unit

    Returns (ingredient, match_type) where match_type is 'id',
    'name_supplier', 'name' or 'created'.
    """
    if line.ingredient_id is not None:
        ingredient = db.session.get(Ingredient, line.ingredient_id, with_for_update=True)
        if ingredient is not None:
            return ingredient, 'id'

    name = sanitize_name(line.item)
    supplier = sanitize_name(line.supplier)
    if not name:
        raise ValidationError(f'Requisition line {line.id} has no ingredient and no name')

    if supplier:
        ingredient = (
            Ingredient.query.filter_by(name=name, supplier=supplier)
            .order_by(Ingredient.id).with_for_update().first()
        )
        if ingredient is not None:
            return ingredient, 'name_supplier'

    ingredient = Ingredient.query.filter_by(name=name).order_by(Ingredient.id).with_for_update().first()
    if ingredient is not None:
        return ingredient, 'name'

    ingredient = Ingredient(
        name=name,
        supplier=supplier,
        original_unit=sanitize_unit(line.unit) or DEFAULT_ORIGINAL_UNIT,
        stock=0.0,
    )
    db.session.add(ingredient)
    db.session.flush()
    logger.info("Created ingredient %s (%s) from requisition line %s", ingredient.id, name, line.id)
    return ingredient, 'created'


def post_requisition(requisition):
    """
    Write the inbound movements of a fully completed requisition.

    Runs inside the caller's transaction and only flushes: the caller
    commits, or rolls back if anything here raises. Lines received at a
    quantity of zero or less produce no movement. Returns the new
    movements, or None when the requisition was already posted.
    """
    source_id = str(requisition.id)
    if is_posted(SOURCE_REQUISITION, source_id):
        logger.info("Requisition %s already posted; skipping", requisition.id)
        return None

    # Claims the idempotency key; a concurrent poster fails on flush
    posting = StockPosting(source_type=SOURCE_REQUISITION, source_id=source_id)
    db.session.add(posting)
    db.session.flush()

    base = requisition.base or current_app.config['DEFAULT_BASE']
    movement_date = requisition.date or _today()

    movements = []
    for line in requisition.items:
        if line.status != STATUS_COMPLETED:
            continue
        received = to_number(line.actual_quantity)
        if received <= 0:
            continue

        ingredient, _ = resolve_ingredient(line)
        line.ingredient_id = ingredient.id

        quantity = convert_quantity(received, line.unit or ingredient.original_unit, ingredient.original_unit)
        if quantity <= 0:
            continue

        price = to_number(line.unit_price)
        cost_total = line.total_price if line.total_price is not None else received * price

        movement = StockMovement(
            ingredient_id=ingredient.id,
            ingredient_name=ingredient.name,
            base=base,
            supplier=line.supplier or ingredient.supplier or '',
            quantity=quantity,
            unit=ingredient.original_unit,
            purchase_price=price,
            cost_total=cost_total,
            date=movement_date,
            notes=f'Requisition {requisition.id}',
            direction=DIRECTION_INBOUND,
            source_type=SOURCE_REQUISITION,
            source_id=source_id,
            posting=posting,
        )
        db.session.add(movement)
        ingredient.stock = (ingredient.stock or 0.0) + quantity
        movements.append(movement)

    posting.line_count = len(movements)
    db.session.flush()
    logger.info(
        "Posted requisition %s: %d movement(s) at base %s",
        requisition.id, len(movements), base
    )
    return movements


def _signed_delta(direction, quantity):
    # Adjustments carry their sign in the quantity
    if direction == DIRECTION_OUTBOUND:
        return -quantity
    return quantity


def record_movement(ingredient_id, quantity, unit, date, direction=DIRECTION_INBOUND, base=None,
                    supplier=None, purchase_price=0, notes='', source_type=SOURCE_MANUAL, source_id=None):
    """
    Record a manual stock movement and apply it to the ingredient's stock.

    Not guarded against repeats: manual entries are never retried
    automatically. The quantity is converted to the ingredient's base
    unit. Outbound movements subtract and may take stock below zero.
    Requisition movements are refused here; only post_requisition
    writes them.
    """
    qty = to_number(quantity, default=None)
    ingredient_id = to_number(ingredient_id, default=None)
    if ingredient_id is None or not qty or not unit or not date:
        raise ValidationError('Missing required fields')

    ingredient = db.session.get(Ingredient, int(ingredient_id), with_for_update=True)
    if ingredient is None:
        raise NotFoundError('Ingredient not found')

    if direction not in VALID_DIRECTIONS:
        direction = DIRECTION_INBOUND
    if source_type == SOURCE_REQUISITION:
        raise ValidationError('Requisition movements are posted by completing the requisition')
    if source_type not in VALID_SOURCE_TYPES:
        source_type = SOURCE_MANUAL
    if direction != DIRECTION_ADJUSTMENT and qty < 0:
        raise ValidationError('quantity must be positive for inbound and outbound movements')

    base_qty = convert_quantity(qty, unit, ingredient.original_unit)
    price = to_number(purchase_price)

    movement = StockMovement(
        ingredient_id=ingredient.id,
        ingredient_name=ingredient.name,
        base=sanitize_name(base) or current_app.config['DEFAULT_BASE'],
        supplier=sanitize_name(supplier),
        quantity=base_qty,
        unit=ingredient.original_unit,
        purchase_price=price,
        cost_total=qty * price,
        date=date,
        notes=sanitize_notes(notes),
        direction=direction,
        source_type=source_type,
        source_id=str(source_id) if source_id is not None else None,
    )
    db.session.add(movement)
    ingredient.stock = (ingredient.stock or 0.0) + _signed_delta(direction, base_qty)

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    if ingredient.stock < 0:
        logger.warning("Ingredient %s stock is negative (%s) after movement %s",
                       ingredient.id, ingredient.stock, movement.id)
    return movement


def adjust_stock(ingredient_id, quantity, kind):
    """
    Add to or deduct from an ingredient's stock.

    Deductions stop at zero. The change actually applied is recorded as a
    signed 'adjustment' movement.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or kind not in ('add', 'deduct'):
        raise ValidationError('Invalid quantity or type')
    if quantity < 0:
        raise ValidationError('Invalid quantity or type')

    ingredient = db.session.get(Ingredient, ingredient_id, with_for_update=True)
    if ingredient is None:
        raise NotFoundError('Ingredient not found')

    current = ingredient.stock or 0.0
    if kind == 'add':
        delta = quantity
    else:
        delta = max(0.0, current - quantity) - current

    ingredient.stock = current + delta
    if delta:
        db.session.add(StockMovement(
            ingredient_id=ingredient.id,
            ingredient_name=ingredient.name,
            base=current_app.config['DEFAULT_BASE'],
            quantity=delta,
            unit=ingredient.original_unit,
            date=_today(),
            notes=f'Stock {kind}',
            direction=DIRECTION_ADJUSTMENT,
            source_type=SOURCE_ADJUSTMENT,
        ))

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return ingredient


def record_production(recipe_id, quantity, base, date):
    """
    Deduct the ingredients of a production run from stock.

    Each recipe line is multiplied by the run quantity, converted to the
    ingredient's base unit and written as one outbound movement. Lines
    whose ingredient is gone are skipped. Everything commits together.
    """
    runs = to_number(quantity, default=None)
    if runs is None or runs <= 0 or not date:
        raise ValidationError('Missing required fields')

    recipe_id = to_number(recipe_id, default=None)
    recipe = db.session.get(Recipe, int(recipe_id)) if recipe_id is not None else None
    if recipe is None:
        raise NotFoundError('Recipe not found')

    base = sanitize_name(base) or current_app.config['DEFAULT_BASE']
    source_id = str(recipe.id)

    movements = []
    for line in recipe.lines:
        if line.ingredient_id is None:
            continue
        ingredient = db.session.get(Ingredient, line.ingredient_id, with_for_update=True)
        if ingredient is None:
            continue

        used = (line.quantity or 0.0) * runs
        unit = line.unit or ingredient.original_unit
        base_qty = convert_quantity(used, unit, ingredient.original_unit)
        if base_qty <= 0:
            continue

        movement = StockMovement(
            ingredient_id=ingredient.id,
            ingredient_name=ingredient.name,
            base=base,
            supplier=ingredient.supplier or '',
            quantity=base_qty,
            unit=ingredient.original_unit,
            purchase_price=ingredient.price_per_kg or 0.0,
            cost_total=(ingredient.price_per_kg or 0.0) * to_kg(used, unit),
            date=date,
            notes=f'Production of {recipe.name} x {runs:g}',
            direction=DIRECTION_OUTBOUND,
            source_type=SOURCE_PRODUCTION_ORDER,
            source_id=source_id,
        )
        db.session.add(movement)
        ingredient.stock = (ingredient.stock or 0.0) - base_qty
        movements.append(movement)

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    for movement in movements:
        if movement.ingredient.stock < 0:
            logger.warning("Ingredient %s stock is negative (%s) after production of recipe %s",
                           movement.ingredient_id, movement.ingredient.stock, recipe.id)
    logger.info("Production of recipe %s x %s at %s: %d movement(s)", recipe.id, runs, base, len(movements))
    return movements


def list_movements(filters=None):
    """Movements matching supplier / ingredientId / date / base / direction / sourceType."""
    filters = filters or {}
    query = StockMovement.query
    if filters.get('supplier'):
        query = query.filter(StockMovement.supplier == filters['supplier'])
    if filters.get('ingredientId'):
        ingredient_id = to_number(filters['ingredientId'], default=None)
        if ingredient_id is None:
            raise ValidationError('ingredientId must be a number')
        query = query.filter(StockMovement.ingredient_id == int(ingredient_id))
    if filters.get('date'):
        query = query.filter(StockMovement.date == filters['date'])
    if filters.get('base'):
        query = query.filter(StockMovement.base == filters['base'])
    if filters.get('direction'):
        query = query.filter(StockMovement.direction == filters['direction'])
    if filters.get('sourceType'):
        query = query.filter(StockMovement.source_type == filters['sourceType'])
    if filters.get('sourceId'):
        query = query.filter(StockMovement.source_id == str(filters['sourceId']))
    return query.order_by(StockMovement.id.desc()).all()


def low_stock(threshold=None):
    """Ingredients whose stock is below threshold."""
    if threshold is None:
        threshold = current_app.config['LOW_STOCK_THRESHOLD']
    return Ingredient.query.filter(Ingredient.stock < threshold).order_by(Ingredient.name).all()
