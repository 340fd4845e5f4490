"""
Inventory Models

Contains the StockMovement ledger rows and the StockPosting marker that
makes requisition postings happen at most once.
"""

from .base import db, utcnow


class StockPosting(db.Model):
    """One posted batch of movements per (source_type, source_id)."""
    __table_args__ = (
        db.UniqueConstraint('source_type', 'source_id', name='uq_stock_posting_source'),
    )

    id = db.Column(db.Integer, primary_key=True)
    source_type = db.Column(db.String(20), nullable=False)
    source_id = db.Column(db.String(64), nullable=False)
    line_count = db.Column(db.Integer, default=0, nullable=False)
    posted_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    movements = db.relationship('StockMovement', backref='posting', lazy=True)


class StockMovement(db.Model):
    """
    Append-only ledger row.

    quantity is expressed in the ingredient's original_unit. Corrections
    are made with new 'adjustment' rows, never by editing old ones.
    """
    __table_args__ = (
        db.Index('ix_stock_movement_source', 'base', 'source_type', 'source_id', 'ingredient_id', 'direction'),
    )

    id = db.Column(db.Integer, primary_key=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id'), nullable=False, index=True)
    ingredient_name = db.Column(db.String(200), default='')
    base = db.Column(db.String(100), default='', nullable=False)
    supplier = db.Column(db.String(200), default='')
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(20), nullable=False)
    purchase_price = db.Column(db.Float, default=0.0)
    cost_total = db.Column(db.Float, default=0.0)
    date = db.Column(db.String(10), nullable=False, index=True)
    notes = db.Column(db.Text, default='')
    direction = db.Column(db.String(20), default='inbound', nullable=False)
    source_type = db.Column(db.String(20), default='Manual', nullable=False)
    source_id = db.Column(db.String(64), nullable=True)
    posting_id = db.Column(db.Integer, db.ForeignKey('stock_posting.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    ingredient = db.relationship('Ingredient')

    def to_dict(self):
        return {
            'id': self.id,
            'ingredientId': self.ingredient_id,
            'ingredientName': self.ingredient_name,
            'base': self.base,
            'supplier': self.supplier,
            'quantity': self.quantity,
            'unit': self.unit,
            'purchasePrice': self.purchase_price,
            'costTotal': self.cost_total,
            'date': self.date,
            'notes': self.notes,
            'direction': self.direction,
            'sourceType': self.source_type,
            'sourceId': self.source_id,
        }
