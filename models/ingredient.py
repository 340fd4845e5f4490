"""
Ingredient Models

Contains the Ingredient and IngredientPriceHistory models for managing
purchasable items, their pack pricing and running stock.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from utils.units import compute_price_per_kg
from .base import db, utcnow

PRICING_FIELDS = ('purchase_unit', 'purchase_quantity', 'original_price')

# Session.info keys: repriced ingredients awaiting flush, their ids in the open
# transaction, and the ids repriced by the most recent commit
REPRICED_KEY = 'ingredient_repriced'
REPRICED_IDS_KEY = 'ingredient_repriced_ids'
PRICE_CHANGES_KEY = 'ingredient_price_changes'


class Ingredient(db.Model):
    """
    Purchasable item with pack pricing and a running stock counter.

    price_per_kg is derived from the purchase pack (purchase_unit,
    purchase_quantity, original_price) whenever one of those values
    changes, and every change is recorded in price_history.

    stock is a signed counter in original_unit: outbound movements may
    take it below zero.
    """
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    supplier = db.Column(db.String(200), default='', nullable=False, index=True)
    category = db.Column(db.String(50), default='Other')
    warehouse = db.Column(db.String(20), default='Dry')

    # Purchase pack
    purchase_unit = db.Column(db.String(10), default='kg')
    purchase_quantity = db.Column(db.Float, default=1.0)
    original_price = db.Column(db.Float, default=0.0)

    # Derived from the purchase pack, never set directly
    price_per_kg = db.Column(db.Float, default=0.0, nullable=False)

    # Base/consumption unit; stock and movements are expressed in it
    original_unit = db.Column(db.String(20), nullable=False, default='kg')

    # Usable percentage after trim and prep loss
    yield_percent = db.Column(db.Float, default=100.0, nullable=False)

    kcal = db.Column(db.Float, default=0.0)
    standard_weight = db.Column(db.Float, default=0.0)
    stock = db.Column(db.Float, default=0.0, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    price_history = db.relationship(
        'IngredientPriceHistory', backref='ingredient', lazy=True,
        order_by='IngredientPriceHistory.id', cascade='all, delete-orphan'
    )

    def pricing_modified(self):
        """True when the purchase pack is new or one of its fields changed."""
        state = inspect(self)
        if state.transient or state.pending:
            return True
        return any(state.attrs[field].history.has_changes() for field in PRICING_FIELDS)

    def refresh_price_per_kg(self):
        """
        Recompute price_per_kg from the purchase pack and record it.

        Returns True when a new price-history entry was appended. An
        incomplete pack keeps the previous price, and a pack identical to
        the last recorded one appends nothing.
        """
        price = compute_price_per_kg(self.purchase_unit, self.purchase_quantity, self.original_price)
        if price is None:
            return False

        pack = (self.purchase_unit, self.purchase_quantity, self.original_price)
        if self.price_history:
            last = self.price_history[-1]
            if (last.purchase_unit, last.purchase_quantity, last.original_price) == pack:
                self.price_per_kg = last.price_per_kg
                return False

        self.price_per_kg = price
        self.price_history.append(IngredientPriceHistory(
            price_per_kg=price,
            original_price=self.original_price,
            purchase_unit=self.purchase_unit,
            purchase_quantity=self.purchase_quantity,
        ))
        return True

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'supplier': self.supplier,
            'category': self.category,
            'warehouse': self.warehouse,
            'purchaseUnit': self.purchase_unit,
            'purchaseQuantity': self.purchase_quantity,
            'originalPrice': self.original_price,
            'pricePerKg': self.price_per_kg,
            'originalUnit': self.original_unit,
            'yield': self.yield_percent,
            'stock': self.stock,
        }


class IngredientPriceHistory(db.Model):
    """Append-only record of an ingredient's pack price at a point in time."""
    id = db.Column(db.Integer, primary_key=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id', ondelete='CASCADE'), nullable=False, index=True)
    price_per_kg = db.Column(db.Float, nullable=False)
    original_price = db.Column(db.Float, nullable=False)
    purchase_unit = db.Column(db.String(10), nullable=False)
    purchase_quantity = db.Column(db.Float, nullable=False)
    recorded_at = db.Column(db.DateTime(timezone=True), default=utcnow)


@event.listens_for(Session, 'before_flush')
def _recompute_changed_prices(session, flush_context, instances):
    """Keep price_per_kg and price_history in step with the purchase pack."""
    for obj in list(session.new) + list(session.dirty):
        if not isinstance(obj, Ingredient) or not obj.pricing_modified():
            continue
        if obj.refresh_price_per_kg():
            session.info.setdefault(REPRICED_KEY, []).append(obj)


@event.listens_for(Session, 'after_flush')
def _collect_repriced_ids(session, flush_context):
    ids = session.info.setdefault(REPRICED_IDS_KEY, [])
    for obj in session.info.pop(REPRICED_KEY, []):
        if obj.id not in ids:
            ids.append(obj.id)


@event.listens_for(Session, 'after_commit')
def _hand_over_price_changes(session):
    """Replace the published set with this commit's repriced ids."""
    session.info[PRICE_CHANGES_KEY] = session.info.pop(REPRICED_IDS_KEY, [])


@event.listens_for(Session, 'after_soft_rollback')
def _forget_price_changes(session, previous_transaction):
    session.info.pop(REPRICED_KEY, None)
    session.info.pop(REPRICED_IDS_KEY, None)
