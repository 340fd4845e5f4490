"""
Menu Models

Contains the Menu model and its ordered recipe references.
"""

from .base import db, utcnow


class Menu(db.Model):
    """Recipes served at one base for one meal on one date."""
    id = db.Column(db.Integer, primary_key=True)
    menu_name = db.Column(db.String(200), default='')
    date = db.Column(db.String(10), nullable=False, index=True)  # ISO date, YYYY-MM-DD
    base = db.Column(db.String(100), nullable=False, index=True)
    meal_type = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    entries = db.relationship(
        'MenuRecipe', backref='menu', lazy=True,
        order_by='MenuRecipe.position', cascade='all, delete-orphan'
    )

    @property
    def recipes(self):
        return [entry.recipe for entry in self.entries if entry.recipe is not None]


class MenuRecipe(db.Model):
    """Ordered link between a menu and a recipe."""
    id = db.Column(db.Integer, primary_key=True)
    menu_id = db.Column(db.Integer, db.ForeignKey('menu.id', ondelete='CASCADE'), nullable=False, index=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey('recipe.id', ondelete='CASCADE'), nullable=False, index=True)
    position = db.Column(db.Integer, default=0, nullable=False)
    recipe = db.relationship('Recipe')
