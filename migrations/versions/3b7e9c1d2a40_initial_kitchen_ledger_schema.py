"""Initial kitchen ledger schema

Revision ID: 3b7e9c1d2a40
Revises:
Create Date: 2026-10-19 09:12:44.118203

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3b7e9c1d2a40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'ingredient',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('supplier', sa.String(length=200), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('warehouse', sa.String(length=20), nullable=True),
        sa.Column('purchase_unit', sa.String(length=10), nullable=True),
        sa.Column('purchase_quantity', sa.Float(), nullable=True),
        sa.Column('original_price', sa.Float(), nullable=True),
        sa.Column('price_per_kg', sa.Float(), nullable=False),
        sa.Column('original_unit', sa.String(length=20), nullable=False),
        sa.Column('yield_percent', sa.Float(), nullable=False),
        sa.Column('kcal', sa.Float(), nullable=True),
        sa.Column('standard_weight', sa.Float(), nullable=True),
        sa.Column('stock', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('ingredient', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_ingredient_name'), ['name'], unique=False)
        batch_op.create_index(batch_op.f('ix_ingredient_supplier'), ['supplier'], unique=False)

    op.create_table(
        'recipe',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('procedure', sa.Text(), nullable=True),
        sa.Column('portions', sa.Float(), nullable=False),
        sa.Column('base_portions', sa.Float(), nullable=True),
        sa.Column('yield_weight', sa.Float(), nullable=True),
        sa.Column('is_locked', sa.Boolean(), nullable=False),
        sa.Column('locked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('locked_by', sa.String(length=100), nullable=True),
        sa.Column('lock_note', sa.String(length=500), nullable=True),
        sa.Column('total_cost', sa.Float(), nullable=False),
        sa.Column('cost_per_portion', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('recipe', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_recipe_name'), ['name'], unique=False)

    op.create_table(
        'menu',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('menu_name', sa.String(length=200), nullable=True),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('base', sa.String(length=100), nullable=False),
        sa.Column('meal_type', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('menu', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_menu_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_menu_base'), ['base'], unique=False)

    op.create_table(
        'plan',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('base', sa.String(length=100), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('plan', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_plan_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_plan_base'), ['base'], unique=False)

    op.create_table(
        'stock_posting',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('source_type', sa.String(length=20), nullable=False),
        sa.Column('source_id', sa.String(length=64), nullable=False),
        sa.Column('line_count', sa.Integer(), nullable=False),
        sa.Column('posted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source_type', 'source_id', name='uq_stock_posting_source')
    )

    op.create_table(
        'ingredient_price_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=False),
        sa.Column('price_per_kg', sa.Float(), nullable=False),
        sa.Column('original_price', sa.Float(), nullable=False),
        sa.Column('purchase_unit', sa.String(length=10), nullable=False),
        sa.Column('purchase_quantity', sa.Float(), nullable=False),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredient.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('ingredient_price_history', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_ingredient_price_history_ingredient_id'), ['ingredient_id'], unique=False)

    op.create_table(
        'recipe_ingredient',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('base_quantity', sa.Float(), nullable=True),
        sa.Column('unit', sa.String(length=20), nullable=True),
        sa.Column('line_cost', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredient.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipe.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('recipe_ingredient', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_recipe_ingredient_recipe_id'), ['recipe_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_recipe_ingredient_ingredient_id'), ['ingredient_id'], unique=False)

    op.create_table(
        'menu_recipe',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('menu_id', sa.Integer(), nullable=False),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['menu_id'], ['menu.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipe.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('menu_recipe', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_menu_recipe_menu_id'), ['menu_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_menu_recipe_recipe_id'), ['recipe_id'], unique=False)

    op.create_table(
        'plan_block',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('plan_id', sa.Integer(), nullable=False),
        sa.Column('block', sa.String(length=20), nullable=False),
        sa.Column('menu_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['menu_id'], ['menu.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['plan_id'], ['plan.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('plan_id', 'block', name='uq_plan_block')
    )
    with op.batch_alter_table('plan_block', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_plan_block_plan_id'), ['plan_id'], unique=False)

    op.create_table(
        'requisition',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('base', sa.String(length=100), nullable=False),
        sa.Column('menu_name', sa.String(length=200), nullable=True),
        sa.Column('meal_type', sa.String(length=20), nullable=True),
        sa.Column('people_count', sa.Float(), nullable=True),
        sa.Column('portion_factor', sa.Float(), nullable=True),
        sa.Column('plan_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('requested_by', sa.String(length=100), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_by', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['plan_id'], ['plan.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('date', 'base', 'meal_type', name='uq_requisition_date_base_meal'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('requisition', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_requisition_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_requisition_base'), ['base'], unique=False)
        batch_op.create_index(batch_op.f('ix_requisition_plan_id'), ['plan_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_requisition_status'), ['status'], unique=False)

    op.create_table(
        'requisition_item',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('requisition_id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=True),
        sa.Column('item', sa.String(length=200), nullable=True),
        sa.Column('unit', sa.String(length=20), nullable=True),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('actual_quantity', sa.Float(), nullable=True),
        sa.Column('unit_price', sa.Float(), nullable=True),
        sa.Column('total_price', sa.Float(), nullable=True),
        sa.Column('supplier', sa.String(length=200), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredient.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['requisition_id'], ['requisition.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('requisition_item', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_requisition_item_requisition_id'), ['requisition_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_requisition_item_ingredient_id'), ['ingredient_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_requisition_item_supplier'), ['supplier'], unique=False)

    op.create_table(
        'requisition_menu',
        sa.Column('requisition_id', sa.Integer(), nullable=False),
        sa.Column('menu_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['menu_id'], ['menu.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['requisition_id'], ['requisition.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('requisition_id', 'menu_id')
    )

    op.create_table(
        'stock_movement',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=False),
        sa.Column('ingredient_name', sa.String(length=200), nullable=True),
        sa.Column('base', sa.String(length=100), nullable=False),
        sa.Column('supplier', sa.String(length=200), nullable=True),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False),
        sa.Column('purchase_price', sa.Float(), nullable=True),
        sa.Column('cost_total', sa.Float(), nullable=True),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('direction', sa.String(length=20), nullable=False),
        sa.Column('source_type', sa.String(length=20), nullable=False),
        sa.Column('source_id', sa.String(length=64), nullable=True),
        sa.Column('posting_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredient.id']),
        sa.ForeignKeyConstraint(['posting_id'], ['stock_posting.id']),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('stock_movement', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_movement_ingredient_id'), ['ingredient_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movement_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movement_posting_id'), ['posting_id'], unique=False)
        batch_op.create_index(
            'ix_stock_movement_source',
            ['base', 'source_type', 'source_id', 'ingredient_id', 'direction'],
            unique=False
        )


def downgrade():
    op.drop_table('stock_movement')
    op.drop_table('requisition_menu')
    op.drop_table('requisition_item')
    op.drop_table('requisition')
    op.drop_table('plan_block')
    op.drop_table('menu_recipe')
    op.drop_table('recipe_ingredient')
    op.drop_table('ingredient_price_history')
    op.drop_table('stock_posting')
    op.drop_table('plan')
    op.drop_table('menu')
    op.drop_table('recipe')
    op.drop_table('ingredient')
