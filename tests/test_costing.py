"""Ingredient pricing, recipe costing, scaling and the cost cascade."""

import logging

import pytest

from models import db, Ingredient, Recipe
from services import costing
from services.errors import RecipeLockedError, ValidationError
from services.events import ingredient_price_changed, publish_price_changes


def test_price_per_kg_derived_from_pack(make_ingredient):
    flour = make_ingredient(purchase_unit='kg', purchase_quantity=10, original_price=20)

    assert flour.price_per_kg == pytest.approx(2.0)
    assert len(flour.price_history) == 1
    assert flour.price_history[0].price_per_kg == pytest.approx(2.0)


def test_price_per_kg_uses_unit_factor(make_ingredient):
    oil = make_ingredient(name='Oil', purchase_unit='ml', purchase_quantity=500, original_price=4)
    assert oil.price_per_kg == pytest.approx(8.0)


def test_saving_unchanged_pack_appends_no_history(make_ingredient):
    flour = make_ingredient()

    costing.update_ingredient_pricing(flour.id, purchase_unit='kg', purchase_quantity=10, original_price=20)
    costing.update_ingredient_pricing(flour.id, original_price=20)

    flour = db.session.get(Ingredient, flour.id)
    assert len(flour.price_history) == 1
    assert flour.price_per_kg == pytest.approx(2.0)


def test_price_change_appends_history(make_ingredient):
    flour = make_ingredient()

    costing.update_ingredient_pricing(flour.id, original_price=30)

    flour = db.session.get(Ingredient, flour.id)
    assert flour.price_per_kg == pytest.approx(3.0)
    assert [entry.price_per_kg for entry in flour.price_history] == pytest.approx([2.0, 3.0])


def test_update_pricing_rejects_bad_values(make_ingredient):
    flour = make_ingredient()

    with pytest.raises(ValidationError):
        costing.update_ingredient_pricing(flour.id, purchase_unit='bunch')
    with pytest.raises(ValidationError):
        costing.update_ingredient_pricing(flour.id, purchase_quantity=0)
    with pytest.raises(ValidationError):
        costing.update_ingredient_pricing(flour.id, yield_percent=120)


def test_bread_line_and_portion_cost(make_ingredient, make_recipe):
    flour = make_ingredient()
    bread = make_recipe(lines=[(flour, 4, 'kg')], portions=10)

    costing.recompute_recipe_costs(bread)

    assert bread.lines[0].line_cost == pytest.approx(8.0)
    assert bread.total_cost == pytest.approx(8.0)
    assert bread.cost_per_portion == pytest.approx(0.8)


def test_line_cost_in_grams_and_without_ingredient(make_ingredient, make_recipe):
    flour = make_ingredient()
    recipe = make_recipe(lines=[(flour, 500, 'g')])

    assert costing.line_cost(recipe.lines[0]) == pytest.approx(1.0)

    recipe.lines[0].ingredient = None
    assert costing.line_cost(recipe.lines[0]) == 0.0


def test_zero_portions_cost_nothing_per_portion(make_ingredient, make_recipe):
    flour = make_ingredient()
    recipe = make_recipe(lines=[(flour, 4, 'kg')], portions=0)

    costing.recompute_recipe_costs(recipe)

    assert recipe.total_cost == pytest.approx(8.0)
    assert recipe.cost_per_portion == 0.0


def test_scale_recipe_from_base_quantities(make_ingredient, make_recipe):
    flour = make_ingredient()
    recipe = make_recipe(lines=[(flour, 2, 'kg')], base_portions=10)

    scaled = costing.scale_recipe(recipe, 25)

    assert scaled['ingredients'][0]['quantity'] == pytest.approx(5.0)
    recipe = db.session.get(Recipe, recipe.id)
    assert recipe.lines[0].quantity == pytest.approx(5.0)
    assert recipe.lines[0].base_quantity == pytest.approx(2.0)
    assert recipe.portions == 25
    assert recipe.yield_weight == pytest.approx(5.0)
    assert recipe.total_cost == pytest.approx(10.0)


def test_scale_rejects_non_positive_target(make_ingredient, make_recipe):
    recipe = make_recipe(lines=[(make_ingredient(), 2, 'kg')])
    with pytest.raises(ValidationError):
        costing.scale_recipe(recipe, 0)


def test_locked_recipe_rejects_scaling_unless_privileged(make_ingredient, make_recipe):
    flour = make_ingredient()
    recipe = make_recipe(lines=[(flour, 2, 'kg')], base_portions=10)
    costing.set_recipe_lock(recipe, True, locked_by='head chef', note='signed off')

    with pytest.raises(RecipeLockedError):
        costing.scale_recipe(recipe, 20)

    scaled = costing.scale_recipe(recipe, 20, privileged=True)
    assert scaled['ingredients'][0]['quantity'] == pytest.approx(4.0)


def test_scale_preview_never_writes(make_ingredient, make_recipe):
    flour = make_ingredient()
    recipe = make_recipe(lines=[(flour, 2, 'kg')], base_portions=10)
    costing.set_recipe_lock(recipe, True)

    preview = costing.scale_recipe(recipe, 50, persist=False)

    assert preview['ingredients'][0]['quantity'] == pytest.approx(10.0)
    recipe = db.session.get(Recipe, recipe.id)
    assert recipe.lines[0].quantity == pytest.approx(2.0)
    assert recipe.portions == 10


def test_update_lines_respects_lock(make_ingredient, make_recipe):
    flour = make_ingredient()
    salt = make_ingredient(name='Salt', purchase_quantity=1, original_price=1)
    recipe = make_recipe(lines=[(flour, 2, 'kg')])
    costing.set_recipe_lock(recipe, True)

    with pytest.raises(RecipeLockedError):
        costing.update_recipe_lines(recipe, [{'ingredientId': salt.id, 'quantity': 1}])

    costing.set_recipe_lock(recipe, False)
    recipe = costing.update_recipe_lines(recipe, [
        {'ingredientId': flour.id, 'quantity': 3, 'unit': 'kg'},
        {'ingredientId': salt.id, 'quantity': 0.5, 'unit': 'kg'},
    ])
    assert recipe.total_cost == pytest.approx(6.5)
    assert [line.base_quantity for line in recipe.lines] == pytest.approx([3.0, 0.5])


def test_price_change_cascades_to_every_recipe(make_ingredient, make_recipe):
    flour = make_ingredient()
    recipes = [make_recipe(name=f'Bread {n}', lines=[(flour, 4, 'kg')]) for n in range(3)]
    costing.set_recipe_lock(recipes[0], True)

    costing.update_ingredient_pricing(flour.id, original_price=30)

    for recipe in recipes:
        recipe = db.session.get(Recipe, recipe.id)
        assert recipe.total_cost == pytest.approx(12.0)
        assert recipe.cost_per_portion == pytest.approx(1.2)


def test_cascade_pages_through_recipes(make_ingredient, make_recipe):
    flour = make_ingredient()
    for n in range(3):
        make_recipe(name=f'Roll {n}', lines=[(flour, 1, 'kg')])

    result = costing.recompute_costs_for_ingredient(flour.id, batch_size=1)

    assert result == {'recomputed': 3, 'failed': 0}


def test_cascade_failure_is_isolated(make_ingredient, make_recipe, monkeypatch):
    flour = make_ingredient()
    broken = make_recipe(name='Broken', lines=[(flour, 4, 'kg')])
    healthy = make_recipe(name='Healthy', lines=[(flour, 4, 'kg')])
    broken_id = broken.id

    real_recompute = costing.recompute_recipe_costs

    def flaky_recompute(recipe):
        if recipe.id == broken_id:
            raise ValueError('bad line')
        return real_recompute(recipe)

    monkeypatch.setattr(costing, 'recompute_recipe_costs', flaky_recompute)

    costing.update_ingredient_pricing(flour.id, original_price=30)

    assert db.session.get(Ingredient, flour.id).price_per_kg == pytest.approx(3.0)
    assert db.session.get(Recipe, healthy.id).total_cost == pytest.approx(12.0)
    assert db.session.get(Recipe, broken_id).total_cost == 0.0


def test_price_signal_sent_once_per_ingredient(make_ingredient):
    flour = make_ingredient()
    received = []

    def listener(sender, ingredient_id=None, **extra):
        received.append(ingredient_id)

    ingredient_price_changed.connect(listener)
    try:
        costing.update_ingredient_pricing(flour.id, original_price=25)
        costing.update_ingredient_pricing(flour.id, original_price=25)
    finally:
        ingredient_price_changed.disconnect(listener)

    assert received == [flour.id]


def test_unexpected_cascade_error_does_not_fail_the_price_write(make_ingredient, make_recipe, monkeypatch):
    flour = make_ingredient()
    broken = make_recipe(name='Broken', lines=[(flour, 4, 'kg')])
    healthy = make_recipe(name='Healthy', lines=[(flour, 4, 'kg')])
    broken_id = broken.id
    real_recompute = costing.recompute_recipe_costs

    def flaky_recompute(recipe):
        if recipe.id == broken_id:
            raise KeyError('bad line')
        return real_recompute(recipe)

    monkeypatch.setattr(costing, 'recompute_recipe_costs', flaky_recompute)

    ingredient = costing.update_ingredient_pricing(flour.id, original_price=30)

    assert ingredient.price_per_kg == pytest.approx(3.0)
    assert db.session.get(Recipe, healthy.id).total_cost == pytest.approx(12.0)


def test_aborted_cascade_is_logged_not_raised(make_ingredient, make_recipe, monkeypatch, caplog):
    flour = make_ingredient()
    make_recipe(lines=[(flour, 4, 'kg')])

    def broken_cascade(ingredient_id, batch_size=None):
        raise RuntimeError('database went away')

    monkeypatch.setattr(costing, 'recompute_costs_for_ingredient', broken_cascade)

    with caplog.at_level(logging.ERROR, logger='services.costing'):
        costing.update_ingredient_pricing(flour.id, original_price=30)

    assert db.session.get(Ingredient, flour.id).price_per_kg == pytest.approx(3.0)
    assert 'Cost cascade aborted' in caplog.text


def test_unpublished_commit_does_not_leak_into_next_publication(make_ingredient):
    make_ingredient()
    sugar = make_ingredient(name='Sugar')
    received = []

    def listener(sender, ingredient_id=None, **extra):
        received.append(ingredient_id)

    ingredient_price_changed.connect(listener)
    try:
        costing.update_ingredient_pricing(sugar.id, original_price=15)
        assert publish_price_changes() == []
    finally:
        ingredient_price_changed.disconnect(listener)

    assert received == [sugar.id]
