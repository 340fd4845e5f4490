"""
Kitchen Ledger application

Flask app factory and the JSON API over the services package.
"""

import logging

from flask import Blueprint, Flask, jsonify, request
from flask_migrate import Migrate

from config import get_config
from logging_config import configure_logging
from models import db
from services import costing, demand, ledger, planning, requisitions
from services.errors import KitchenLedgerError, ValidationError
from utils.units import to_number

logger = logging.getLogger(__name__)

migrate = Migrate()

api = Blueprint('api', __name__, url_prefix='/api')

ADMIN_ROLE = 'admin'


def create_app(env=None, overrides=None):
    app = Flask(__name__)
    app.config.from_object(get_config(env))
    if overrides:
        app.config.update(overrides)

    configure_logging(app)
    db.init_app(app)
    migrate.init_app(app, db)
    app.register_blueprint(api)

    @app.errorhandler(KitchenLedgerError)
    def handle_ledger_error(error):
        if error.status_code >= 500:
            logger.error("Request failed: %s", error.message)
        return jsonify({'message': error.message}), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'message': 'Not found'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({'message': 'Method not allowed'}), 405

    return app


def _payload():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _is_admin():
    return request.headers.get('X-Kitchen-Role', '').strip().lower() == ADMIN_ROLE


# ============================================
# REQUISITION ROUTES
# ============================================

@api.route('/requisitions/generate', methods=['POST'])
def requisitions_generate():
    data = _payload()
    menu_ids = data.get('menuIds')
    if menu_ids is not None and not isinstance(menu_ids, list):
        raise ValidationError('menuIds must be a list')
    results = demand.generate_menu_requisitions(
        people_count=data.get('peopleCount'),
        menu_ids=menu_ids,
        date=data.get('date'),
        base=data.get('base'),
    )
    return jsonify({'requisitions': [req.to_dict() for req in results]}), 201


@api.route('/requisitions', methods=['GET'])
def requisitions_list():
    result = requisitions.list_requisitions(
        request.args,
        page=request.args.get('page', 1),
        limit=request.args.get('limit', 50),
    )
    return jsonify({
        'data': [req.to_dict() for req in result['data']],
        'total': result['total'],
        'page': result['page'],
        'pages': result['pages'],
    })


@api.route('/requisitions', methods=['POST'])
def requisitions_create():
    requisition = requisitions.create_requisition(_payload())
    return jsonify(requisition.to_dict()), 201


@api.route('/requisitions/bulk-approve', methods=['PUT'])
def requisitions_bulk_approve():
    return jsonify(requisitions.bulk_approve(_payload()))


@api.route('/requisitions/<int:id>', methods=['GET'])
def requisition_view(id):
    return jsonify(requisitions.get_requisition(id).to_dict())


@api.route('/requisitions/<int:id>', methods=['DELETE'])
def requisition_delete(id):
    requisitions.delete_requisition(id)
    return jsonify({'message': 'Requisition deleted'})


@api.route('/requisitions/<int:id>/approve', methods=['PUT'])
def requisition_approve(id):
    return jsonify(requisitions.approve_requisition(id).to_dict())


@api.route('/requisitions/<int:id>/reject', methods=['PUT'])
def requisition_reject(id):
    data = _payload()
    return jsonify(requisitions.reject_requisition(id, notes=data.get('notes')).to_dict())


@api.route('/requisitions/<int:id>/complete', methods=['PUT'])
def requisition_complete(id):
    data = _payload()
    actual_quantities = data.get('actualQuantities') or {}
    if not isinstance(actual_quantities, dict):
        raise ValidationError('actualQuantities must be an object keyed by item id')
    result = requisitions.complete_requisition(
        id,
        actual_quantities,
        completed_by=data.get('completedBy'),
        notes=data.get('notes'),
        unit_prices=data.get('unitPrices'),
        totals=data.get('totals'),
    )
    return jsonify({
        'requisition': result['requisition'].to_dict(),
        'outcome': result['outcome'],
        'movements': [movement.to_dict() for movement in result['movements']],
    })


# ============================================
# PLAN ROUTES
# ============================================

def _plan_response(plan, generated, status=200):
    return jsonify({
        'plan': plan.to_dict(),
        'requisitions': [req.to_dict() for req in generated],
    }), status


@api.route('/plans', methods=['POST'])
def plan_create():
    data = _payload()
    plan, generated = planning.save_plan(
        data.get('date'), data.get('base'), data.get('blocks'), notes=data.get('notes')
    )
    return _plan_response(plan, generated, 201)


@api.route('/plans/<int:id>', methods=['PUT'])
def plan_update(id):
    data = _payload()
    plan, generated = planning.save_plan(
        data.get('date'), data.get('base'), data.get('blocks'), notes=data.get('notes'), plan_id=id
    )
    return _plan_response(plan, generated)


@api.route('/plans/<int:id>', methods=['DELETE'])
def plan_delete(id):
    planning.delete_plan(id)
    return jsonify({'message': 'Plan deleted'})


@api.route('/plans/<int:id>/requisitions', methods=['POST'])
def plan_requisitions(id):
    plan = planning.get_plan(id)
    return _plan_response(plan, demand.generate_plan_requisitions(plan), 201)


# ============================================
# INVENTORY ROUTES
# ============================================

@api.route('/inventory', methods=['GET'])
def inventory_list():
    return jsonify([movement.to_dict() for movement in ledger.list_movements(request.args)])


@api.route('/inventory', methods=['POST'])
def inventory_record():
    data = _payload()
    movement = ledger.record_movement(
        data.get('ingredientId'),
        data.get('quantity'),
        data.get('unit'),
        data.get('date'),
        direction=data.get('direction') or 'inbound',
        base=data.get('base'),
        supplier=data.get('supplier'),
        purchase_price=data.get('purchasePrice', 0),
        notes=data.get('notes', ''),
        source_type=data.get('sourceType') or 'Manual',
        source_id=data.get('sourceId'),
    )
    return jsonify(movement.to_dict()), 201


@api.route('/productions', methods=['POST'])
def production_record():
    data = _payload()
    movements = ledger.record_production(
        data.get('recipeId'), data.get('quantity'), data.get('base'), data.get('date')
    )
    return jsonify({'movements': [movement.to_dict() for movement in movements]}), 201


@api.route('/inventory/low-stock', methods=['GET'])
def inventory_low_stock():
    threshold = request.args.get('threshold')
    if threshold is not None:
        threshold = to_number(threshold, default=None)
        if threshold is None:
            raise ValidationError('threshold must be a number')
    return jsonify([ing.to_dict() for ing in ledger.low_stock(threshold)])


# ============================================
# INGREDIENT ROUTES
# ============================================

@api.route('/ingredients/<int:id>/stock', methods=['PATCH'])
def ingredient_stock(id):
    data = _payload()
    ingredient = ledger.adjust_stock(id, data.get('quantity'), data.get('type'))
    return jsonify(ingredient.to_dict())


@api.route('/ingredients/<int:id>/pricing', methods=['PUT'])
def ingredient_pricing(id):
    data = _payload()
    ingredient = costing.update_ingredient_pricing(
        id,
        purchase_unit=data.get('purchaseUnit'),
        purchase_quantity=data.get('purchaseQuantity'),
        original_price=data.get('originalPrice'),
        yield_percent=data.get('yield'),
        supplier=data.get('supplier'),
    )
    return jsonify(ingredient.to_dict())


# ============================================
# RECIPE ROUTES
# ============================================

@api.route('/recipes/<int:id>/scale', methods=['POST'])
def recipe_scale(id):
    data = _payload()
    recipe = costing.get_recipe(id)
    scaled = costing.scale_recipe(
        recipe,
        data.get('targetPortions'),
        privileged=_is_admin(),
        persist=not data.get('preview', False),
    )
    return jsonify(scaled)


@api.route('/recipes/<int:id>/lines', methods=['PUT'])
def recipe_lines(id):
    data = _payload()
    lines = data.get('ingredients')
    if not isinstance(lines, list):
        raise ValidationError('ingredients must be a list')
    recipe = costing.update_recipe_lines(costing.get_recipe(id), lines, privileged=_is_admin())
    return jsonify(recipe.to_dict())


@api.route('/recipes/<int:id>/lock', methods=['PUT'])
def recipe_lock(id):
    if not _is_admin():
        raise KitchenLedgerError('Only admins can lock or unlock recipes', status_code=403)
    data = _payload()
    recipe = costing.set_recipe_lock(
        costing.get_recipe(id),
        data.get('locked', True),
        locked_by=data.get('lockedBy'),
        note=data.get('note', ''),
    )
    return jsonify(recipe.to_dict())

