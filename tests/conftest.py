"""
Pytest configuration and shared fixtures for kitchen ledger tests.
"""
import os
import sys

import pytest

# Flat layout: make the project root importable when running from tests/
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from models import (
    db, Ingredient, Menu, MenuRecipe, Recipe, RecipeIngredient, Requisition, RequisitionItem,
)


@pytest.fixture(scope='function')
def app():
    """Create and configure a new app instance for each test."""
    app = create_app('testing', {
        'SECRET_KEY': 'test-secret-key',
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def admin_headers():
    """Headers for privileged requests."""
    return {'X-Kitchen-Role': 'admin'}


@pytest.fixture
def make_ingredient(app):
    """Factory for committed ingredients priced by their purchase pack."""
    def _make(name='Flour', purchase_unit='kg', purchase_quantity=10.0, original_price=20.0,
              original_unit='kg', yield_percent=100.0, supplier='Mill Co', stock=0.0):
        ingredient = Ingredient(
            name=name,
            supplier=supplier,
            purchase_unit=purchase_unit,
            purchase_quantity=purchase_quantity,
            original_price=original_price,
            original_unit=original_unit,
            yield_percent=yield_percent,
            stock=stock,
        )
        db.session.add(ingredient)
        db.session.commit()
        return ingredient
    return _make


@pytest.fixture
def make_recipe(app):
    """Factory for committed recipes from (ingredient, quantity[, unit]) tuples."""
    def _make(name='Bread', lines=(), portions=10, base_portions=10):
        recipe = Recipe(name=name, portions=portions, base_portions=base_portions)
        for position, line in enumerate(lines):
            ingredient, quantity = line[0], line[1]
            unit = line[2] if len(line) > 2 else None
            recipe.lines.append(RecipeIngredient(
                ingredient=ingredient,
                position=position,
                quantity=quantity,
                base_quantity=quantity,
                unit=unit,
            ))
        db.session.add(recipe)
        db.session.commit()
        return recipe
    return _make


@pytest.fixture
def make_menu(app):
    """Factory for committed menus serving the given recipes."""
    def _make(recipes, date='2026-03-02', base='North', meal_type='lunch', menu_name='Lunch'):
        menu = Menu(menu_name=menu_name, date=date, base=base, meal_type=meal_type)
        for position, recipe in enumerate(recipes):
            menu.entries.append(MenuRecipe(recipe=recipe, position=position))
        db.session.add(menu)
        db.session.commit()
        return menu
    return _make


@pytest.fixture
def make_requisition(app):
    """Factory for committed requisitions from (item, quantity, unit[, ingredient]) tuples."""
    def _make(lines, date='2026-03-02', base='North', status='approved', meal_type=None):
        requisition = Requisition(date=date, base=base, meal_type=meal_type, status=status)
        for line in lines:
            item, quantity, unit = line[0], line[1], line[2]
            ingredient = line[3] if len(line) > 3 else None
            requisition.items.append(RequisitionItem(
                item=item,
                quantity=quantity,
                unit=unit,
                ingredient_id=ingredient.id if ingredient is not None else None,
                supplier=ingredient.supplier if ingredient is not None else '',
                status=status,
            ))
        db.session.add(requisition)
        db.session.commit()
        return requisition
    return _make
