"""
Requisition Models

Contains the Requisition header and RequisitionItem line models for
purchase requests moving through pending -> approved -> completed.
"""

from .base import db, utcnow

requisition_menu = db.Table(
    'requisition_menu',
    db.Column('requisition_id', db.Integer, db.ForeignKey('requisition.id', ondelete='CASCADE'), primary_key=True),
    db.Column('menu_id', db.Integer, db.ForeignKey('menu.id', ondelete='CASCADE'), primary_key=True),
)


class Requisition(db.Model):
    """
    Requisition header.

    Menu-driven requisitions are unique per (date, base, meal_type);
    plan-driven ones carry plan_id and no meal type.
    """
    __table_args__ = (
        db.UniqueConstraint('date', 'base', 'meal_type', name='uq_requisition_date_base_meal'),
        # Ids are never reused: stock postings are keyed by requisition id
        {'sqlite_autoincrement': True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.String(10), nullable=False, index=True)
    base = db.Column(db.String(100), default='', nullable=False, index=True)
    menu_name = db.Column(db.String(200), default='')
    meal_type = db.Column(db.String(20), nullable=True)
    people_count = db.Column(db.Float, nullable=True)
    portion_factor = db.Column(db.Float, nullable=True)
    plan_id = db.Column(db.Integer, db.ForeignKey('plan.id', ondelete='SET NULL'), nullable=True, index=True)
    status = db.Column(db.String(20), default='pending', nullable=False, index=True)
    requested_by = db.Column(db.String(100), default='Auto-System')
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_by = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items = db.relationship(
        'RequisitionItem', backref='requisition', lazy=True,
        order_by='RequisitionItem.id', cascade='all, delete-orphan'
    )
    linked_menus = db.relationship('Menu', secondary=requisition_menu, lazy=True)
    plan = db.relationship('Plan')

    def to_dict(self):
        return {
            'id': self.id,
            'date': self.date,
            'base': self.base,
            'menuName': self.menu_name,
            'mealType': self.meal_type,
            'peopleCount': self.people_count,
            'portionFactor': self.portion_factor,
            'plan': self.plan_id,
            'status': self.status,
            'requestedBy': self.requested_by,
            'linkedMenuIds': [menu.id for menu in self.linked_menus],
            'completedAt': self.completed_at.isoformat() if self.completed_at else None,
            'completedBy': self.completed_by,
            'notes': self.notes,
            'items': [item.to_dict() for item in self.items],
        }


class RequisitionItem(db.Model):
    """Requested line; actual_quantity is what was received."""
    id = db.Column(db.Integer, primary_key=True)
    requisition_id = db.Column(db.Integer, db.ForeignKey('requisition.id', ondelete='CASCADE'), nullable=False, index=True)
    # Optional: lines typed in by hand carry only a name
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id', ondelete='SET NULL'), nullable=True, index=True)
    item = db.Column(db.String(200), default='')
    unit = db.Column(db.String(20), default='')
    quantity = db.Column(db.Float, default=0.0, nullable=False)
    actual_quantity = db.Column(db.Float, nullable=True)
    unit_price = db.Column(db.Float, nullable=True)
    total_price = db.Column(db.Float, nullable=True)
    supplier = db.Column(db.String(200), default='', index=True)
    status = db.Column(db.String(20), default='pending', nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'ingredientId': self.ingredient_id,
            'item': self.item,
            'unit': self.unit,
            'quantity': self.quantity,
            'actualQuantity': self.actual_quantity,
            'unitPrice': self.unit_price,
            'totalPrice': self.total_price,
            'supplier': self.supplier,
            'status': self.status,
        }
