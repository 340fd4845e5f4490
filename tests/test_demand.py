"""Menu- and plan-driven demand aggregation."""

import pytest

from models import db, Plan, Recipe, RecipeIngredient, Requisition
from services import demand, planning
from services.errors import NotFoundError, ValidationError


def test_yield_adjusted():
    assert demand.yield_adjusted(1.0, 80) == pytest.approx(1.25)
    assert demand.yield_adjusted(1.0, 0) == 0.0
    assert demand.yield_adjusted(1.0, -5) == 0.0
    assert demand.yield_adjusted(1.0, None) == 1.0


def test_scale_factor_defaults_base_portions(app):
    assert demand.scale_factor(50, Recipe(base_portions=None)) == pytest.approx(5.0)
    assert demand.scale_factor(50, Recipe(base_portions=25)) == pytest.approx(2.0)


def test_menu_generation_scales_and_grosses_up(make_ingredient, make_recipe, make_menu):
    flour = make_ingredient(yield_percent=80)
    bread = make_recipe(lines=[(flour, 2, 'kg')], base_portions=10)
    menu = make_menu([bread])

    results = demand.generate_menu_requisitions(people_count=50)

    assert len(results) == 1
    requisition = results[0]
    assert (requisition.date, requisition.base, requisition.meal_type) == ('2026-03-02', 'North', 'lunch')
    assert requisition.status == 'pending'
    assert requisition.requested_by == 'Auto-System'
    assert [m.id for m in requisition.linked_menus] == [menu.id]
    assert len(requisition.items) == 1
    item = requisition.items[0]
    assert item.ingredient_id == flour.id
    assert item.quantity == pytest.approx(12.5)
    assert item.supplier == 'Mill Co'


def test_zero_yield_forces_zero_quantity(make_ingredient, make_recipe, make_menu):
    herb = make_ingredient(name='Herb', yield_percent=0)
    make_menu([make_recipe(lines=[(herb, 1, 'kg')])])

    requisition = demand.generate_menu_requisitions(people_count=10)[0]

    assert requisition.items[0].quantity == 0.0


def test_lines_aggregate_per_ingredient(make_ingredient, make_recipe, make_menu):
    flour = make_ingredient()
    bread = make_recipe(name='Bread', lines=[(flour, 2, 'kg')])
    cake = make_recipe(name='Cake', lines=[(flour, 1, 'kg')])
    make_menu([bread, cake])

    requisition = demand.generate_menu_requisitions(people_count=10)[0]

    assert len(requisition.items) == 1
    assert requisition.items[0].quantity == pytest.approx(3.0)


def test_menus_bucket_by_meal_type(make_ingredient, make_recipe, make_menu):
    flour = make_ingredient()
    bread = make_recipe(lines=[(flour, 1, 'kg')])
    make_menu([bread], meal_type='lunch')
    make_menu([bread], meal_type='Dinner', menu_name='Dinner')

    results = demand.generate_menu_requisitions(people_count=10)

    assert sorted(req.meal_type for req in results) == ['dinner', 'lunch']


def test_regeneration_upserts_by_date_base_meal(make_ingredient, make_recipe, make_menu):
    flour = make_ingredient()
    make_menu([make_recipe(lines=[(flour, 1, 'kg')])])

    first = demand.generate_menu_requisitions(people_count=10)[0]
    first.status = 'approved'
    db.session.commit()
    second = demand.generate_menu_requisitions(people_count=20)[0]

    assert second.id == first.id
    assert Requisition.query.count() == 1
    assert second.status == 'pending'
    assert len(second.items) == 1
    assert second.items[0].quantity == pytest.approx(2.0)


def test_completed_requisition_is_not_regenerated(make_ingredient, make_recipe, make_menu):
    flour = make_ingredient()
    make_menu([make_recipe(lines=[(flour, 1, 'kg')])])
    requisition = demand.generate_menu_requisitions(people_count=10)[0]
    requisition.status = 'completed'
    db.session.commit()

    again = demand.generate_menu_requisitions(people_count=40)[0]

    assert again.id == requisition.id
    assert again.status == 'completed'
    assert again.items[0].quantity == pytest.approx(1.0)


def test_unknown_ingredient_is_dropped(make_ingredient, make_recipe, make_menu):
    flour = make_ingredient()
    recipe = make_recipe(lines=[(flour, 1, 'kg')])
    recipe.lines.append(RecipeIngredient(ingredient_id=9999, position=1, quantity=1, base_quantity=1))
    db.session.commit()
    make_menu([recipe])

    requisition = demand.generate_menu_requisitions(people_count=10)[0]

    assert [item.ingredient_id for item in requisition.items] == [flour.id]


def test_menu_ids_filter(make_ingredient, make_recipe, make_menu):
    flour = make_ingredient()
    bread = make_recipe(lines=[(flour, 1, 'kg')])
    make_menu([bread], date='2026-03-02')
    wanted = make_menu([bread], date='2026-03-03')

    results = demand.generate_menu_requisitions(people_count=10, menu_ids=[wanted.id])

    assert [req.date for req in results] == ['2026-03-03']


def _plan_fixture(make_ingredient, make_recipe, make_menu):
    flour = make_ingredient()
    sugar = make_ingredient(name='Sugar', supplier='Sweet Ltd')
    lunch = make_menu([make_recipe(name='Bread', lines=[(flour, 2, 'kg')])])
    dinner = make_menu(
        [make_recipe(name='Cake', lines=[(flour, 1, 'kg'), (sugar, 1, 'kg')])],
        meal_type='dinner', menu_name='Dinner'
    )
    return flour, sugar, lunch, dinner


def test_plan_generates_one_aggregated_requisition(make_ingredient, make_recipe, make_menu):
    flour, sugar, lunch, dinner = _plan_fixture(make_ingredient, make_recipe, make_menu)

    plan, requisitions = planning.save_plan('2026-03-04', 'South', {
        'lunch': {'menu': lunch.id, 'qty': 30},
        'dinner': {'menu': dinner.id, 'qty': 20},
    })

    assert len(requisitions) == 1
    requisition = requisitions[0]
    assert requisition.plan_id == plan.id
    assert requisition.people_count == pytest.approx(50)
    quantities = {item.ingredient_id: item.quantity for item in requisition.items}
    assert quantities[flour.id] == pytest.approx(2 * 3 + 1 * 2)
    assert quantities[sugar.id] == pytest.approx(2.0)


def test_plan_regeneration_replaces_open_requisitions(make_ingredient, make_recipe, make_menu):
    flour, _, lunch, _ = _plan_fixture(make_ingredient, make_recipe, make_menu)
    plan, first = planning.save_plan('2026-03-04', 'South', {'lunch': {'menu': lunch.id, 'qty': 10}})
    first_id = first[0].id

    plan, second = planning.save_plan(
        '2026-03-04', 'South', {'lunch': {'menu': lunch.id, 'qty': 40}}, plan_id=plan.id
    )

    assert Requisition.query.filter_by(plan_id=plan.id).count() == 1
    assert db.session.get(Requisition, first_id) is None
    assert second[0].id != first_id
    assert second[0].items[0].quantity == pytest.approx(8.0)
    assert len(plan.blocks) == 1


def test_plan_without_quantities_creates_nothing(make_ingredient, make_recipe, make_menu):
    _, _, lunch, _ = _plan_fixture(make_ingredient, make_recipe, make_menu)

    plan, requisitions = planning.save_plan('2026-03-04', 'South', {'lunch': {'menu': lunch.id, 'qty': 0}})

    assert requisitions == []
    assert Requisition.query.count() == 0


def test_plan_rejects_unknown_block_and_menu(make_ingredient, make_recipe, make_menu):
    _, _, lunch, _ = _plan_fixture(make_ingredient, make_recipe, make_menu)

    with pytest.raises(ValidationError):
        planning.save_plan('2026-03-04', 'South', {'brunch': {'menu': lunch.id, 'qty': 5}})
    with pytest.raises(ValidationError):
        planning.save_plan('2026-03-04', 'South', {'lunch': {'menu': 9999, 'qty': 5}})
    assert Plan.query.count() == 0


def test_delete_plan_keeps_completed_requisitions(make_ingredient, make_recipe, make_menu):
    _, _, lunch, dinner = _plan_fixture(make_ingredient, make_recipe, make_menu)
    plan, generated = planning.save_plan('2026-03-04', 'South', {'lunch': {'menu': lunch.id, 'qty': 10}})
    completed = generated[0]
    completed.status = 'completed'
    db.session.commit()
    plan, reopened = planning.save_plan(
        '2026-03-04', 'South',
        {'lunch': {'menu': lunch.id, 'qty': 10}, 'dinner': {'menu': dinner.id, 'qty': 10}},
        plan_id=plan.id,
    )
    completed_id, open_id, plan_id = completed.id, reopened[0].id, plan.id

    planning.delete_plan(plan_id)

    assert db.session.get(Plan, plan_id) is None
    assert db.session.get(Requisition, open_id) is None
    kept = db.session.get(Requisition, completed_id)
    assert kept is not None
    assert kept.plan_id is None
    with pytest.raises(NotFoundError):
        planning.delete_plan(plan_id)
