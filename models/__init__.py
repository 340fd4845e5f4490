"""
Models Package

Exports all database models and the db instance for use throughout the application.
"""

from .base import db

from .ingredient import Ingredient, IngredientPriceHistory
from .recipe import Recipe, RecipeIngredient
from .menu import Menu, MenuRecipe
from .plan import Plan, PlanBlock
from .requisition import Requisition, RequisitionItem
from .inventory import StockMovement, StockPosting

__all__ = [
    'db',
    'Ingredient',
    'IngredientPriceHistory',
    'Recipe',
    'RecipeIngredient',
    'Menu',
    'MenuRecipe',
    'Plan',
    'PlanBlock',
    'Requisition',
    'RequisitionItem',
    'StockMovement',
    'StockPosting',
]
