"""
Plan Models

Contains the Plan model for daily production planning and its
meal-block slots.
"""

from .base import db, utcnow


class Plan(db.Model):
    """Production plan for one base on one date."""
    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.String(10), nullable=False, index=True)
    base = db.Column(db.String(100), nullable=False, index=True)
    notes = db.Column(db.Text, default='')
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    blocks = db.relationship('PlanBlock', backref='plan', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'date': self.date,
            'base': self.base,
            'notes': self.notes,
            'blocks': {
                block.block: {'menu': block.menu_id, 'qty': block.quantity}
                for block in self.blocks
            },
        }


class PlanBlock(db.Model):
    """Meal-block slot: which menu to produce and for how many."""
    __table_args__ = (
        db.UniqueConstraint('plan_id', 'block', name='uq_plan_block'),
    )

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(db.Integer, db.ForeignKey('plan.id', ondelete='CASCADE'), nullable=False, index=True)
    block = db.Column(db.String(20), nullable=False)  # 'breakfast', 'lunch', 'snack', 'dinner', 'extra'
    menu_id = db.Column(db.Integer, db.ForeignKey('menu.id', ondelete='SET NULL'), nullable=True)
    quantity = db.Column(db.Float, default=0.0, nullable=False)
    menu = db.relationship('Menu')
