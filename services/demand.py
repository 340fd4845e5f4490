"""
Demand Aggregation Service

Turns menus and production plans into requisitions: each recipe line is
scaled to the target head count, aggregated per ingredient and grossed up
by the ingredient's yield so that enough raw product is bought to cover
prep loss.
"""

import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from constants import AUTO_REQUESTER, STATUS_COMPLETED, STATUS_PENDING
from models import db, Ingredient, Menu, MenuRecipe, Recipe, Requisition, RequisitionItem
from utils.units import to_number

logger = logging.getLogger(__name__)


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def scale_factor(target_quantity, recipe):
    """Ratio of the target head count to the recipe's reference portions."""
    base = recipe.base_portions or current_app.config['DEFAULT_BASE_PORTIONS']
    return target_quantity / base


def yield_adjusted(quantity, yield_percent):
    """
    Gross up a net quantity by the ingredient yield.

    A yield of 80% means 1 kg used needs 1.25 kg bought. A yield of zero
    forces the quantity to 0 instead of dividing by zero; no yield at all
    means nothing is lost.
    """
    if yield_percent is None:
        return quantity
    if yield_percent <= 0:
        return 0.0
    return quantity / (yield_percent / 100.0)


def accumulate_recipe(totals, recipe, target_quantity):
    """Add the scaled lines of one recipe into totals {ingredient_id: qty}."""
    factor = scale_factor(target_quantity, recipe)
    for line in recipe.lines:
        if line.ingredient_id is None:
            continue
        quantity = line.base_quantity if line.base_quantity is not None else line.quantity
        totals[line.ingredient_id] = totals.get(line.ingredient_id, 0.0) + (quantity or 0.0) * factor
    return totals


def load_ingredient_meta(ingredient_ids):
    """Fetch name, unit, supplier and yield for all ids in one query."""
    if not ingredient_ids:
        return {}
    rows = Ingredient.query.filter(Ingredient.id.in_(list(ingredient_ids))).all()
    return {ing.id: ing for ing in rows}


def build_items(totals, meta):
    """
    Turn aggregated totals into requisition items.

    Ingredient ids with no master record are dropped.
    """
    default_supplier = current_app.config['DEFAULT_SUPPLIER']
    items = []
    dropped = []
    for ingredient_id, quantity in totals.items():
        ing = meta.get(ingredient_id)
        if ing is None:
            dropped.append(ingredient_id)
            continue
        items.append(RequisitionItem(
            ingredient_id=ing.id,
            item=ing.name,
            unit=ing.original_unit or 'kg',
            quantity=yield_adjusted(quantity, ing.yield_percent),
            supplier=ing.supplier or default_supplier,
            status=STATUS_PENDING,
        ))
    if dropped:
        logger.warning("Dropped %d unresolvable ingredient id(s) from demand: %s", len(dropped), dropped)
    return items


def _menus_query(menu_ids=None, date=None, base=None):
    query = Menu.query.options(
        selectinload(Menu.entries).selectinload(MenuRecipe.recipe).selectinload(Recipe.lines)
    )
    if menu_ids:
        query = query.filter(Menu.id.in_(menu_ids))
    if date:
        query = query.filter(Menu.date == date)
    if base:
        query = query.filter(Menu.base == base)
    return query.order_by(Menu.date, Menu.id)


def generate_menu_requisitions(people_count=None, menu_ids=None, date=None, base=None):
    """
    Generate one requisition per (date, base, meal type) from menus.

    Existing requisitions with the same key are replaced in place and
    reset to pending, so running the generation twice yields the same
    headers. Completed requisitions are left as they are.
    """
    if people_count is None:
        people_count = current_app.config['DEFAULT_PEOPLE_COUNT']
    people_count = to_number(people_count, default=current_app.config['DEFAULT_PEOPLE_COUNT'])

    buckets = {}
    for menu in _menus_query(menu_ids, date, base).all():
        meal_type = (menu.meal_type or '').lower()
        key = (menu.date, menu.base, meal_type)
        bucket = buckets.setdefault(key, {'menus': [], 'totals': {}})
        bucket['menus'].append(menu)
        for recipe in menu.recipes:
            accumulate_recipe(bucket['totals'], recipe, people_count)

    all_ids = set()
    for bucket in buckets.values():
        all_ids.update(bucket['totals'])
    meta = load_ingredient_meta(all_ids)

    results = []
    for (menu_date, menu_base, meal_type), bucket in buckets.items():
        requisition = Requisition.query.filter_by(
            date=menu_date, base=menu_base, meal_type=meal_type
        ).first()

        if requisition is not None and requisition.status == STATUS_COMPLETED:
            logger.info(
                "Requisition %s for %s/%s/%s already completed; not regenerated",
                requisition.id, menu_date, menu_base, meal_type
            )
            results.append(requisition)
            continue

        if requisition is None:
            requisition = Requisition(date=menu_date, base=menu_base, meal_type=meal_type)
            db.session.add(requisition)

        requisition.menu_name = bucket['menus'][0].menu_name
        requisition.people_count = people_count
        requisition.portion_factor = people_count / current_app.config['DEFAULT_BASE_PORTIONS']
        requisition.requested_by = AUTO_REQUESTER
        requisition.status = STATUS_PENDING
        requisition.linked_menus = bucket['menus']
        requisition.items = build_items(bucket['totals'], meta)
        results.append(requisition)

    _commit()
    logger.info("Generated %d requisition(s) from menus for %s people", len(results), people_count)
    return results


def generate_plan_requisitions(plan):
    """
    Regenerate the requisition of a production plan.

    All earlier auto-generated, not completed requisitions of the plan are
    deleted first; the blocks are then aggregated into one requisition
    keyed by the plan's (date, base).
    """
    stale = Requisition.query.filter(
        Requisition.plan_id == plan.id,
        Requisition.requested_by == AUTO_REQUESTER,
        Requisition.status != STATUS_COMPLETED,
    ).all()
    for requisition in stale:
        db.session.delete(requisition)

    totals = {}
    menus = []
    people_count = 0.0
    for block in plan.blocks:
        quantity = block.quantity or 0.0
        if block.menu is None or quantity <= 0:
            continue
        if block.menu not in menus:
            menus.append(block.menu)
        people_count += quantity
        for recipe in block.menu.recipes:
            accumulate_recipe(totals, recipe, quantity)

    results = []
    items = build_items(totals, load_ingredient_meta(set(totals)))
    if items:
        requisition = Requisition(
            date=plan.date,
            base=plan.base,
            menu_name=', '.join(menu.menu_name for menu in menus if menu.menu_name),
            people_count=people_count,
            plan_id=plan.id,
            requested_by=AUTO_REQUESTER,
            status=STATUS_PENDING,
            linked_menus=menus,
            items=items,
        )
        db.session.add(requisition)
        results.append(requisition)

    _commit()
    logger.info(
        "Plan %s regenerated: %d stale requisition(s) removed, %d created",
        plan.id, len(stale), len(results)
    )
    return results
