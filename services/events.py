"""
Domain Events

Signals published by the write paths. Subscribers run after the
triggering transaction has committed, so a failing subscriber can never
undo the write that fired it.
"""

import logging

from blinker import Namespace

from models import db
from models.ingredient import PRICE_CHANGES_KEY

logger = logging.getLogger(__name__)

kitchen_signals = Namespace()

# Sent with ingredient_id=<int> after a committed price change
ingredient_price_changed = kitchen_signals.signal('ingredient-price-changed')


def publish_price_changes(session=None):
    """
    Send ingredient_price_changed for every ingredient repriced by the
    most recent commit. Call right after that commit; the next commit
    replaces the set whether or not it was published.
    """
    session = session or db.session
    ingredient_ids = session.info.pop(PRICE_CHANGES_KEY, [])

    for ingredient_id in ingredient_ids:
        logger.info("Ingredient %s repriced; notifying subscribers", ingredient_id)
        ingredient_price_changed.send(__name__, ingredient_id=ingredient_id)

    return ingredient_ids
