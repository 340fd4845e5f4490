"""
Production Planning Service

Saving a plan regenerates its requisitions; deleting it removes them.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from constants import PLAN_BLOCKS, STATUS_COMPLETED
from models import db, Menu, Plan, PlanBlock, Requisition
from utils.sanitizer import sanitize_name, sanitize_notes
from utils.units import to_number
from .demand import generate_plan_requisitions
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def get_plan(plan_id):
    plan = db.session.get(Plan, plan_id)
    if plan is None:
        raise NotFoundError('Plan not found')
    return plan


def _apply_blocks(plan, blocks):
    """Update the plan's meal blocks in place from {block: {menu, qty}}."""
    if not isinstance(blocks, dict):
        raise ValidationError('blocks must be an object keyed by meal block')

    unknown = set(blocks) - set(PLAN_BLOCKS)
    if unknown:
        raise ValidationError(f'Unknown meal block(s): {", ".join(sorted(unknown))}')

    existing = {block.block: block for block in plan.blocks}
    for name in PLAN_BLOCKS:
        if name not in blocks:
            continue
        slot = blocks[name] or {}
        menu_id = slot.get('menu')
        quantity = to_number(slot.get('qty'))
        if quantity < 0:
            raise ValidationError(f'Quantity for {name} cannot be negative')

        if not menu_id:
            if name in existing:
                plan.blocks.remove(existing[name])
            continue

        menu_id = to_number(menu_id, default=None)
        if menu_id is None or db.session.get(Menu, int(menu_id)) is None:
            raise ValidationError(f'Menu {menu_id} not found for {name}')

        block = existing.get(name)
        if block is None:
            plan.blocks.append(PlanBlock(block=name, menu_id=int(menu_id), quantity=quantity))
        else:
            block.menu_id = int(menu_id)
            block.quantity = quantity


def save_plan(date, base, blocks, notes=None, plan_id=None):
    """
    Create or update a plan and regenerate its requisitions.

    Returns (plan, requisitions).
    """
    date = (date or '').strip()
    base = sanitize_name(base)
    if not date or not base:
        raise ValidationError('Missing required fields or invalid format')

    if plan_id is None:
        plan = Plan()
        db.session.add(plan)
    else:
        plan = get_plan(plan_id)

    plan.date = date
    plan.base = base
    if notes is not None:
        plan.notes = sanitize_notes(notes)

    try:
        _apply_blocks(plan, blocks or {})
        db.session.flush()
        # Menus referenced by new blocks load lazily from here on
        db.session.expire(plan, ['blocks'])
    except (ValidationError, SQLAlchemyError):
        db.session.rollback()
        raise

    requisitions = generate_plan_requisitions(plan)
    logger.info("Plan %s saved for %s at %s", plan.id, plan.date, plan.base)
    return plan, requisitions


def delete_plan(plan_id):
    """
    Delete a plan together with its open requisitions.

    Completed requisitions are kept, detached from the plan, because the
    stock ledger points at them.
    """
    plan = get_plan(plan_id)
    removed = 0
    for requisition in Requisition.query.filter_by(plan_id=plan.id).all():
        if requisition.status == STATUS_COMPLETED:
            requisition.plan_id = None
        else:
            db.session.delete(requisition)
            removed += 1

    db.session.delete(plan)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    logger.info("Plan %s deleted with %d requisition(s)", plan_id, removed)
