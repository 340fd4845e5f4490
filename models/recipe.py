"""
Recipe Models

Contains the Recipe and RecipeIngredient models for managing
recipes, their scaling anchor and their derived costs.
"""

from .base import db, utcnow


class Recipe(db.Model):
    """Recipe with ordered ingredient lines, scaling anchor and cost figures."""
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    type = db.Column(db.String(50), default='')
    category = db.Column(db.String(50), default='')
    procedure = db.Column(db.Text, default='')
    portions = db.Column(db.Float, nullable=False, default=10)
    # Portion count the base quantities were written for
    base_portions = db.Column(db.Float, nullable=True)
    yield_weight = db.Column(db.Float, default=0.0)

    # Locked recipes reject structural edits from non-privileged callers
    is_locked = db.Column(db.Boolean, default=False, nullable=False)
    locked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    locked_by = db.Column(db.String(100), nullable=True)
    lock_note = db.Column(db.String(500), default='')

    total_cost = db.Column(db.Float, default=0.0, nullable=False)
    cost_per_portion = db.Column(db.Float, default=0.0, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    lines = db.relationship(
        'RecipeIngredient', backref='recipe', lazy=True,
        order_by='RecipeIngredient.position', cascade='all, delete-orphan'
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'portions': self.portions,
            'basePortions': self.base_portions,
            'yieldWeight': self.yield_weight,
            'isLocked': self.is_locked,
            'totalCost': self.total_cost,
            'costPerPortion': self.cost_per_portion,
            'ingredients': [line.to_dict() for line in self.lines],
        }


class RecipeIngredient(db.Model):
    """Ingredient line of a recipe; quantity is always derived from base_quantity when scaling."""
    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey('recipe.id', ondelete='CASCADE'), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id', ondelete='SET NULL'), nullable=True, index=True)
    position = db.Column(db.Integer, default=0, nullable=False)
    quantity = db.Column(db.Float, nullable=False, default=0.0)
    base_quantity = db.Column(db.Float, nullable=True)
    unit = db.Column(db.String(20), nullable=True)
    line_cost = db.Column(db.Float, default=0.0, nullable=False)
    ingredient = db.relationship('Ingredient')

    def to_dict(self):
        return {
            'id': self.id,
            'ingredientId': self.ingredient_id,
            'quantity': self.quantity,
            'baseQuantity': self.base_quantity,
            'unit': self.unit,
            'lineCost': self.line_cost,
        }
