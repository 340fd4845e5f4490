"""Manual stock movements, adjustments and ledger reads."""

import logging

import pytest

from models import db, Ingredient, StockMovement, StockPosting
from services import ledger, requisitions
from services.errors import NotFoundError, ValidationError


def test_inbound_movement_converts_to_base_unit(make_ingredient):
    flour = make_ingredient()

    movement = ledger.record_movement(flour.id, 500, 'g', '2026-03-02', supplier='Mill Co', purchase_price=0.004)

    assert movement.quantity == pytest.approx(0.5)
    assert movement.unit == 'kg'
    assert movement.base == 'BASE'
    assert movement.cost_total == pytest.approx(2.0)
    assert db.session.get(Ingredient, flour.id).stock == pytest.approx(0.5)


def test_outbound_movement_may_go_negative(make_ingredient, caplog):
    flour = make_ingredient(stock=1.0)

    with caplog.at_level(logging.WARNING, logger='services.ledger'):
        ledger.record_movement(flour.id, 3, 'kg', '2026-03-02', direction='outbound')

    assert db.session.get(Ingredient, flour.id).stock == pytest.approx(-2.0)
    assert 'negative' in caplog.text


def test_adjustment_carries_its_sign(make_ingredient):
    flour = make_ingredient(stock=5.0)

    ledger.record_movement(flour.id, -2, 'kg', '2026-03-02', direction='adjustment', source_type='Adjustment')

    assert db.session.get(Ingredient, flour.id).stock == pytest.approx(3.0)


def test_unknown_direction_and_source_fall_back(make_ingredient):
    flour = make_ingredient()

    movement = ledger.record_movement(flour.id, 1, 'kg', '2026-03-02', direction='sideways', source_type='Gift')

    assert movement.direction == 'inbound'
    assert movement.source_type == 'Manual'


def test_manual_movements_are_not_deduplicated(make_ingredient):
    flour = make_ingredient()

    for _ in range(2):
        ledger.record_movement(flour.id, 1, 'kg', '2026-03-02', source_id='invoice-7')

    assert StockMovement.query.count() == 2
    assert db.session.get(Ingredient, flour.id).stock == pytest.approx(2.0)


@pytest.mark.parametrize('args', [
    (None, 1, 'kg', '2026-03-02'),
    (1, 0, 'kg', '2026-03-02'),
    (1, 1, '', '2026-03-02'),
    (1, 1, 'kg', ''),
])
def test_record_movement_requires_fields(make_ingredient, args):
    make_ingredient()
    with pytest.raises(ValidationError):
        ledger.record_movement(*args)


def test_record_movement_unknown_ingredient(app):
    with pytest.raises(NotFoundError):
        ledger.record_movement(42, 1, 'kg', '2026-03-02')


def test_adjust_stock_add_and_deduct_floor(make_ingredient):
    flour = make_ingredient(stock=2.0)

    ledger.adjust_stock(flour.id, 3, 'add')
    ingredient = ledger.adjust_stock(flour.id, 10, 'deduct')

    assert ingredient.stock == 0.0
    deltas = [m.quantity for m in StockMovement.query.order_by(StockMovement.id)]
    assert deltas == pytest.approx([3.0, -5.0])
    assert {m.source_type for m in StockMovement.query} == {'Adjustment'}


@pytest.mark.parametrize('quantity, kind', [(-1, 'add'), ('3', 'add'), (True, 'add'), (1, 'set')])
def test_adjust_stock_rejects_bad_input(make_ingredient, quantity, kind):
    flour = make_ingredient()
    with pytest.raises(ValidationError):
        ledger.adjust_stock(flour.id, quantity, kind)


def test_manual_movement_cannot_claim_a_requisition(make_ingredient, make_requisition):
    flour = make_ingredient()
    requisition = make_requisition([('Flour', 5, 'kg', flour)])
    item_id = requisition.items[0].id

    with pytest.raises(ValidationError):
        ledger.record_movement(flour.id, 1, 'kg', '2026-03-02', source_type='Requisition', source_id=requisition.id)

    result = requisitions.complete_requisition(requisition.id, {item_id: 5})

    assert result['outcome'] == 'completed'
    assert db.session.get(Ingredient, flour.id).stock == pytest.approx(5.0)
    assert StockMovement.query.filter_by(source_id=str(requisition.id)).count() == 1


def test_is_posted_needs_a_posting_marker(make_ingredient):
    flour = make_ingredient()
    db.session.add(StockMovement(
        ingredient_id=flour.id, quantity=1, unit='kg', date='2026-03-02',
        source_type='Requisition', source_id='77',
    ))
    db.session.commit()

    assert not ledger.is_posted('Requisition', 77)

    db.session.add(StockPosting(source_type='Requisition', source_id='77'))
    db.session.commit()

    assert ledger.is_posted('Requisition', 77)


def test_production_deducts_recipe_lines(make_ingredient, make_recipe):
    flour = make_ingredient(stock=10.0)
    salt = make_ingredient(name='Salt', stock=1.0)
    bread = make_recipe(lines=[(flour, 2, 'kg'), (salt, 100, 'g')])

    movements = ledger.record_production(bread.id, 3, 'North', '2026-03-02')

    assert [m.quantity for m in movements] == pytest.approx([6.0, 0.3])
    assert {m.direction for m in movements} == {'outbound'}
    assert {m.source_type for m in movements} == {'ProductionOrder'}
    assert movements[0].cost_total == pytest.approx(12.0)
    assert db.session.get(Ingredient, flour.id).stock == pytest.approx(4.0)
    assert db.session.get(Ingredient, salt.id).stock == pytest.approx(0.7)


def test_production_may_take_stock_negative(make_ingredient, make_recipe, caplog):
    flour = make_ingredient(stock=1.0)
    bread = make_recipe(lines=[(flour, 2, 'kg')])

    with caplog.at_level(logging.WARNING, logger='services.ledger'):
        ledger.record_production(bread.id, 1, None, '2026-03-02')

    assert db.session.get(Ingredient, flour.id).stock == pytest.approx(-1.0)
    assert StockMovement.query.one().base == 'BASE'
    assert 'negative' in caplog.text


def test_production_validation(make_ingredient, make_recipe):
    bread = make_recipe(lines=[(make_ingredient(), 2, 'kg')])

    with pytest.raises(ValidationError):
        ledger.record_production(bread.id, 0, 'North', '2026-03-02')
    with pytest.raises(ValidationError):
        ledger.record_production(bread.id, 1, 'North', '')
    with pytest.raises(NotFoundError):
        ledger.record_production(9999, 1, 'North', '2026-03-02')
    assert StockMovement.query.count() == 0


def test_list_movements_filters(make_ingredient):
    flour = make_ingredient()
    sugar = make_ingredient(name='Sugar')
    ledger.record_movement(flour.id, 1, 'kg', '2026-03-02', base='North')
    ledger.record_movement(sugar.id, 1, 'kg', '2026-03-02', base='South')

    rows = ledger.list_movements({'ingredientId': str(sugar.id)})

    assert [row.ingredient_name for row in rows] == ['Sugar']
    assert len(ledger.list_movements({'base': 'North'})) == 1
    with pytest.raises(ValidationError):
        ledger.list_movements({'ingredientId': 'abc'})


def test_low_stock(make_ingredient):
    make_ingredient(name='Flour', stock=1)
    make_ingredient(name='Sugar', stock=50)

    assert [ing.name for ing in ledger.low_stock()] == ['Flour']
    assert [ing.name for ing in ledger.low_stock(100)] == ['Flour', 'Sugar']
