"""Create order, inventory and traffic analytics tables

Revision ID: 001
Revises:
Create Date: 2026-01-05

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Users 테이블 (인증 서비스와 공유)
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='customer'),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.CheckConstraint("role IN ('customer', 'admin')", name='ck_users_check_user_role'),
        sa.CheckConstraint("status IN ('active', 'suspended')", name='ck_users_check_user_status'),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    # 로그인 이력 (IP 해시만 저장)
    op.create_table(
        'login_history',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('ip_hash', sa.String(64), nullable=False),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.Column('logged_in_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_login_history'),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'],
            name='fk_login_history_user_id_users', ondelete='CASCADE',
        ),
    )
    op.create_index('idx_login_history_user_time', 'login_history', ['user_id', 'logged_in_at'])

    # Products 테이블
    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('base_price', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sa.CheckConstraint('base_price >= 0', name='ck_products_check_base_price_non_negative'),
        sa.CheckConstraint('stock >= 0', name='ck_products_check_stock_non_negative'),
    )

    # 장바구니
    op.create_table(
        'carts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_carts'),
        sa.UniqueConstraint('user_id', name='uq_carts_user_id'),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'], name='fk_carts_user_id_users', ondelete='CASCADE',
        ),
    )

    op.create_table(
        'cart_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('cart_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('added_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_cart_items'),
        sa.UniqueConstraint('cart_id', 'product_id', name='uq_cart_product'),
        sa.CheckConstraint('quantity > 0', name='ck_cart_items_check_cart_quantity_positive'),
        sa.ForeignKeyConstraint(
            ['cart_id'], ['carts.id'], name='fk_cart_items_cart_id_carts', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['product_id'], ['products.id'],
            name='fk_cart_items_product_id_products', ondelete='CASCADE',
        ),
    )

    # Orders 테이블
    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(30), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('delivery_charge', sa.DECIMAL(10, 2), nullable=False, server_default='60'),
        sa.Column('total_amount', sa.DECIMAL(12, 2), nullable=False),
        sa.Column('payment_method', sa.String(30), nullable=False, server_default='Cash on Delivery'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('payment_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('is_stock_deducted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('shipping_full_name', sa.String(100), nullable=False),
        sa.Column('shipping_phone', sa.String(30), nullable=False),
        sa.Column('shipping_address', sa.Text(), nullable=False),
        sa.Column('shipping_city', sa.String(100), nullable=False),
        sa.Column('shipping_postal_code', sa.String(20), nullable=False),
        sa.Column('shipping_country', sa.String(100), nullable=False),
        sa.Column('fraud_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('fraud_reason', sa.String(100), nullable=False, server_default='Low risk'),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_orders'),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'], name='fk_orders_user_id_users', ondelete='SET NULL',
        ),
        sa.CheckConstraint('total_amount >= delivery_charge', name='ck_orders_check_total_covers_delivery'),
        sa.CheckConstraint('delivery_charge >= 0', name='ck_orders_check_delivery_non_negative'),
        sa.CheckConstraint('fraud_score >= 0 AND fraud_score <= 1', name='ck_orders_check_fraud_score_range'),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'shipped', 'delivered', 'cancelled')",
            name='ck_orders_check_order_status',
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed')",
            name='ck_orders_check_payment_status',
        ),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])
    op.create_index('idx_orders_ip_address', 'orders', ['ip_address'])

    # 주문 항목 (주문 시점 상품명/가격 스냅샷)
    op.create_table(
        'order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('size', sa.String(50), nullable=True),
        sa.Column('color', sa.String(50), nullable=True),
        sa.Column('material', sa.String(100), nullable=True),
        sa.Column('custom_design', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_order_items'),
        sa.ForeignKeyConstraint(
            ['order_id'], ['orders.id'], name='fk_order_items_order_id_orders', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['product_id'], ['products.id'], name='fk_order_items_product_id_products',
        ),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_check_order_item_quantity_positive'),
        sa.CheckConstraint('unit_price >= 0', name='ck_order_items_check_order_item_price_non_negative'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    # 랜딩 페이지 (콘텐츠는 외부 서비스, 집계 카운터만 사용)
    op.create_table(
        'landing_pages',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('conversions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_landing_pages'),
        sa.UniqueConstraint('slug', name='uq_landing_pages_slug'),
    )

    # 방문 세션
    op.create_table(
        'visitor_sessions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.String(128), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('ip_hash', sa.String(64), nullable=False),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.Column('device', sa.String(20), nullable=False, server_default='desktop'),
        sa.Column('browser', sa.String(50), nullable=True),
        sa.Column('os', sa.String(50), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('last_activity', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('is_bot', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('module', sa.String(20), nullable=False, server_default='public'),
        sa.PrimaryKeyConstraint('id', name='pk_visitor_sessions'),
        sa.UniqueConstraint('session_id', name='uq_visitor_sessions_session_id'),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'], name='fk_visitor_sessions_user_id_users', ondelete='SET NULL',
        ),
    )
    op.create_index('idx_visitor_sessions_ip_start', 'visitor_sessions', ['ip_hash', 'start_time'])

    # 공개 사이트 이벤트
    op.create_table(
        'analytics_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.String(128), nullable=False),
        sa.Column('event_type', sa.String(30), nullable=False),
        sa.Column('url', sa.String(2000), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_analytics_events'),
    )
    op.create_index('ix_analytics_events_session_id', 'analytics_events', ['session_id'])
    op.create_index('idx_analytics_events_type_time', 'analytics_events', ['event_type', 'timestamp'])

    # 랜딩 페이지 이벤트
    op.create_table(
        'landing_page_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('landing_page_id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.String(128), nullable=False),
        sa.Column('event_type', sa.String(30), nullable=False),
        sa.Column('campaign', sa.String(200), nullable=True),
        sa.Column('source', sa.String(200), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_landing_page_events'),
    )
    op.create_index('ix_landing_page_events_landing_page_id', 'landing_page_events', ['landing_page_id'])
    op.create_index('ix_landing_page_events_session_id', 'landing_page_events', ['session_id'])

    # 트래픽 플래그 (추가 전용)
    op.create_table(
        'traffic_flags',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('ip_hash', sa.String(64), nullable=False),
        sa.Column('session_id', sa.String(128), nullable=True),
        sa.Column('reason', sa.String(255), nullable=False),
        sa.Column('severity', sa.String(20), nullable=False, server_default='low'),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_traffic_flags'),
    )
    op.create_index('ix_traffic_flags_ip_hash', 'traffic_flags', ['ip_hash'])
    op.create_index('ix_traffic_flags_timestamp', 'traffic_flags', ['timestamp'])


def downgrade() -> None:
    op.drop_table('traffic_flags')
    op.drop_table('landing_page_events')
    op.drop_table('analytics_events')
    op.drop_table('visitor_sessions')
    op.drop_table('landing_pages')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('cart_items')
    op.drop_table('carts')
    op.drop_table('products')
    op.drop_table('login_history')
    op.drop_table('users')
