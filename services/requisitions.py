"""
Requisition Lifecycle Service

Owns the approve / reject / complete transitions of requisition headers
and their line items. Completing the last open line posts the received
goods to the stock ledger in the same transaction.
"""

import logging
import math

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from constants import (
    SOURCE_REQUISITION, STATUS_APPROVED, STATUS_COMPLETED, STATUS_PENDING, STATUS_REJECTED,
    VALID_MEAL_TYPES, VALID_REQUISITION_STATUSES,
)
from models import db, Ingredient, Requisition, RequisitionItem
from models.base import utcnow
from utils.sanitizer import sanitize_name, sanitize_notes, sanitize_unit
from utils.units import to_number
from . import ledger
from .errors import InvalidTransitionError, NotFoundError, ValidationError
from .events import publish_price_changes

logger = logging.getLogger(__name__)

OUTCOME_COMPLETED = 'completed'
OUTCOME_PARTIAL = 'partial'
OUTCOME_ALREADY_POSTED = 'already_posted'

# Ids per UPDATE statement in bulk approval
BULK_CHUNK_SIZE = 500


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def get_requisition(requisition_id, for_update=False):
    requisition = db.session.get(Requisition, requisition_id, with_for_update=for_update)
    if requisition is None:
        raise NotFoundError('Requisition not found')
    return requisition


def normalize_requisition_lines(payload):
    """
    Canonical line dicts from either request shape.

    Accepts the items-array shape ({"items": [...]}) and the legacy
    single-line shape where item, quantity, unit and supplier sit on the
    header itself.
    """
    raw_items = payload.get('items')
    if raw_items is None and (payload.get('item') or payload.get('ingredientId') is not None):
        raw_items = [payload]
    if raw_items is None:
        raw_items = []
    if not isinstance(raw_items, list):
        raise ValidationError('items must be a list')

    default_supplier = current_app.config['DEFAULT_SUPPLIER']
    lines = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValidationError('Each requisition line must be an object')

        ingredient_id = raw.get('ingredientId')
        if ingredient_id is not None:
            try:
                ingredient_id = int(ingredient_id)
            except (TypeError, ValueError):
                raise ValidationError(f'Invalid ingredientId {ingredient_id!r}')

        name = sanitize_name(raw.get('item'))
        if not name and ingredient_id is None:
            raise ValidationError('Each requisition line needs an item name or ingredientId')

        quantity = to_number(raw.get('quantity'), default=None)
        if quantity is None or quantity < 0:
            raise ValidationError(f'Invalid quantity for line "{name or ingredient_id}"')

        lines.append({
            'ingredient_id': ingredient_id,
            'item': name,
            'unit': sanitize_unit(raw.get('unit')),
            'quantity': quantity,
            'supplier': sanitize_name(raw.get('supplier')) or default_supplier,
        })
    return lines


def _plan_id(value):
    if not value:
        return None
    plan_id = to_number(value, default=None)
    if plan_id is None:
        raise ValidationError('plan must be a number')
    return int(plan_id)


def create_requisition(payload):
    """Create a requisition by hand from either request shape."""
    date = (payload.get('date') or '').strip()
    if not date:
        raise ValidationError('Missing required fields')

    meal_type = (payload.get('mealType') or '').lower() or None
    if meal_type is not None and meal_type not in VALID_MEAL_TYPES:
        raise ValidationError(f"Invalid meal type '{meal_type}'")

    lines = normalize_requisition_lines(payload)
    if not lines:
        raise ValidationError('A requisition needs at least one line')

    ingredient_ids = {line['ingredient_id'] for line in lines if line['ingredient_id'] is not None}
    known = {}
    if ingredient_ids:
        known = {ing.id: ing for ing in Ingredient.query.filter(Ingredient.id.in_(ingredient_ids)).all()}

    items = []
    for line in lines:
        ing = known.get(line['ingredient_id'])
        items.append(RequisitionItem(
            ingredient_id=line['ingredient_id'],
            item=line['item'] or (ing.name if ing else ''),
            unit=line['unit'] or (ing.original_unit if ing else ''),
            quantity=line['quantity'],
            supplier=line['supplier'],
            status=STATUS_PENDING,
        ))

    requisition = Requisition(
        date=date,
        base=sanitize_name(payload.get('base')),
        meal_type=meal_type,
        menu_name=sanitize_name(payload.get('menuName')),
        plan_id=_plan_id(payload.get('plan')),
        requested_by=sanitize_name(payload.get('requestedBy')) or 'Manual',
        status=STATUS_PENDING,
        notes=sanitize_notes(payload.get('notes')) or None,
        items=items,
    )
    db.session.add(requisition)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError('A requisition already exists for this date, base and meal type')
    return requisition


def build_requisition_query(filters=None):
    """Requisition query from status / supplier / plan / base / mealType / date range filters."""
    filters = filters or {}
    query = Requisition.query

    status = filters.get('status')
    if status and status != 'all':
        if status not in VALID_REQUISITION_STATUSES:
            raise ValidationError(f"Unknown status '{status}'")
        query = query.filter(Requisition.status == status)
    supplier = filters.get('supplier')
    if supplier and supplier != 'all':
        query = query.filter(Requisition.items.any(RequisitionItem.supplier == supplier))
    if filters.get('plan'):
        query = query.filter(Requisition.plan_id == _plan_id(filters['plan']))
    if filters.get('base'):
        query = query.filter(Requisition.base == filters['base'])
    if filters.get('mealType'):
        query = query.filter(Requisition.meal_type == filters['mealType'].lower())

    if filters.get('date'):
        query = query.filter(Requisition.date == filters['date'])
    else:
        if filters.get('fromDate'):
            query = query.filter(Requisition.date >= filters['fromDate'])
        if filters.get('toDate'):
            query = query.filter(Requisition.date <= filters['toDate'])
    return query


def list_requisitions(filters=None, page=1, limit=50):
    """Page of requisitions, newest date first."""
    limit = max(1, min(int(to_number(limit, 50)), current_app.config['REQUISITION_PAGE_LIMIT']))
    page = max(int(to_number(page, 1)), 1)

    query = build_requisition_query(filters)
    total = query.count()
    data = (
        query.order_by(Requisition.date.desc(), Requisition.id.desc())
        .offset((page - 1) * limit).limit(limit).all()
    )
    return {
        'data': data,
        'total': total,
        'page': page,
        'pages': math.ceil(total / limit) or 1,
    }


def approve_requisition(requisition_id):
    """Approve a requisition and every one of its lines, whatever the quantities."""
    requisition = get_requisition(requisition_id, for_update=True)
    if requisition.status not in (STATUS_PENDING, STATUS_APPROVED):
        raise InvalidTransitionError(f'Cannot approve a {requisition.status} requisition')

    requisition.status = STATUS_APPROVED
    for item in requisition.items:
        item.status = STATUS_APPROVED
    _commit()
    logger.info("Requisition %s approved (%d line(s))", requisition.id, len(requisition.items))
    return requisition


def bulk_approve(filters=None):
    """
    Approve every pending or approved requisition the filters match.

    Returns {'matched', 'updated_headers', 'updated_items'}.
    """
    query = build_requisition_query(filters).filter(
        Requisition.status.in_((STATUS_PENDING, STATUS_APPROVED))
    )
    ids = [row[0] for row in query.with_entities(Requisition.id).all()]

    updated_headers = 0
    updated_items = 0
    for start in range(0, len(ids), BULK_CHUNK_SIZE):
        chunk = ids[start:start + BULK_CHUNK_SIZE]
        updated_headers += Requisition.query.filter(
            Requisition.id.in_(chunk), Requisition.status != STATUS_APPROVED
        ).update({Requisition.status: STATUS_APPROVED}, synchronize_session=False)
        updated_items += RequisitionItem.query.filter(
            RequisitionItem.requisition_id.in_(chunk), RequisitionItem.status != STATUS_APPROVED
        ).update({RequisitionItem.status: STATUS_APPROVED}, synchronize_session=False)

    _commit()
    db.session.expire_all()
    logger.info(
        "Bulk approve matched %d requisition(s): %d header(s), %d line(s) updated",
        len(ids), updated_headers, updated_items
    )
    return {'matched': len(ids), 'updated_headers': updated_headers, 'updated_items': updated_items}


def reject_requisition(requisition_id, notes=None):
    """Reject a pending or approved requisition; completed lines keep their status."""
    requisition = get_requisition(requisition_id, for_update=True)
    if requisition.status not in (STATUS_PENDING, STATUS_APPROVED):
        raise InvalidTransitionError(f'Cannot reject a {requisition.status} requisition')

    requisition.status = STATUS_REJECTED
    for item in requisition.items:
        if item.status != STATUS_COMPLETED:
            item.status = STATUS_REJECTED
    if notes:
        requisition.notes = sanitize_notes(notes)
    _commit()
    logger.info("Requisition %s rejected", requisition.id)
    return requisition


def _keyed(mapping):
    return {str(key): value for key, value in (mapping or {}).items()}


def _optional_number(value, label, item_id):
    if value is None:
        return None
    number = to_number(value, default=None)
    if number is None:
        raise ValidationError(f'Invalid {label} for item {item_id}')
    return number


def complete_requisition(requisition_id, actual_quantities, completed_by=None, notes=None,
                         unit_prices=None, totals=None):
    """
    Record received quantities and complete the requisition when every
    line is done.

    actual_quantities, unit_prices and totals are keyed by item id. Lines
    without an actual quantity keep their status. Once all lines are
    completed the header is completed and the stock ledger is posted in
    the same transaction; otherwise the header stays approved and can be
    completed again later.

    Returns {'requisition', 'outcome', 'movements'} where outcome is
    'completed', 'partial' or 'already_posted'.
    """
    requisition = get_requisition(requisition_id, for_update=True)

    if ledger.is_posted(SOURCE_REQUISITION, requisition.id):
        logger.info("Requisition %s already posted; completion ignored", requisition.id)
        return {'requisition': requisition, 'outcome': OUTCOME_ALREADY_POSTED, 'movements': []}

    if requisition.status == STATUS_REJECTED:
        raise InvalidTransitionError('Cannot complete a rejected requisition')

    actuals = _keyed(actual_quantities)
    prices = _keyed(unit_prices)
    line_totals = _keyed(totals)

    try:
        for item in requisition.items:
            key = str(item.id)
            received = _optional_number(actuals.get(key), 'actual quantity', item.id)
            if received is None:
                continue
            item.actual_quantity = received
            item.status = STATUS_COMPLETED
            price = _optional_number(prices.get(key), 'unit price', item.id)
            if price is not None:
                item.unit_price = price
            total = _optional_number(line_totals.get(key), 'total', item.id)
            if total is not None:
                item.total_price = total

        all_lines_done = all(item.status == STATUS_COMPLETED for item in requisition.items)

        movements = []
        if all_lines_done:
            requisition.status = STATUS_COMPLETED
            requisition.completed_at = utcnow()
            requisition.completed_by = sanitize_name(completed_by) or None
            if notes:
                requisition.notes = sanitize_notes(notes)
            movements = ledger.post_requisition(requisition) or []
        else:
            requisition.status = STATUS_APPROVED

        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if ledger.is_posted(SOURCE_REQUISITION, requisition_id):
            logger.info("Requisition %s was posted concurrently", requisition_id)
            return {
                'requisition': get_requisition(requisition_id),
                'outcome': OUTCOME_ALREADY_POSTED,
                'movements': [],
            }
        raise
    except Exception:
        db.session.rollback()
        raise

    # Ingredients materialized by the posting may carry a price
    publish_price_changes()
    outcome = OUTCOME_COMPLETED if all_lines_done else OUTCOME_PARTIAL
    logger.info(
        "Requisition %s %s: %d movement(s) posted",
        requisition.id, outcome, len(movements)
    )
    return {'requisition': requisition, 'outcome': outcome, 'movements': movements}


def delete_requisition(requisition_id):
    """Delete a requisition that has not been posted to the stock ledger."""
    requisition = get_requisition(requisition_id)
    if ledger.is_posted(SOURCE_REQUISITION, requisition.id):
        raise InvalidTransitionError('Cannot delete a requisition already posted to stock')
    db.session.delete(requisition)
    _commit()
    logger.info("Requisition %s deleted", requisition_id)

