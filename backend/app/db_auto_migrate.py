import logging

from app.db import get_db

logger = logging.getLogger("storefront.migrations")

# Idempotent DDL, safe to run on every boot. user ids are the hosted auth
# provider's uuids, stored as TEXT so local Postgres works too.
MIGRATIONS = [
    "CREATE EXTENSION IF NOT EXISTS pgcrypto;",
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT UNIQUE NOT NULL,
        display_name TEXT,
        avatar_url TEXT,
        bio TEXT,
        role TEXT NOT NULL DEFAULT 'user',
        is_creator BOOLEAN NOT NULL DEFAULT FALSE,
        creator_tier TEXT DEFAULT 'tier1',
        commission_rate NUMERIC(5, 4) DEFAULT 0.10,
        coupon_code TEXT,
        referral_code TEXT UNIQUE,
        referred_by TEXT,
        referrals_count INTEGER DEFAULT 0,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        title TEXT NOT NULL,
        brand TEXT NOT NULL,
        category TEXT,
        description TEXT,
        price NUMERIC(10, 2) NOT NULL,
        stock INTEGER NOT NULL DEFAULT 0,
        infinite_stock BOOLEAN NOT NULL DEFAULT FALSE,
        limited BOOLEAN NOT NULL DEFAULT FALSE,
        availability TEXT DEFAULT 'In Stock',
        size_type TEXT DEFAULT 'US',
        materials TEXT,
        care_instructions TEXT,
        shipping_time TEXT DEFAULT '5-9 days',
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS product_media (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        product_id UUID NOT NULL REFERENCES products(id) ON DELETE CASCADE,
        url TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'gallery',
        position INTEGER NOT NULL DEFAULT 0
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS carts (
        user_id TEXT PRIMARY KEY,
        items JSONB NOT NULL DEFAULT '[]'::jsonb,
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        creator_id TEXT,
        coupon_code TEXT,
        subtotal NUMERIC(10, 2) NOT NULL DEFAULT 0,
        discount_total NUMERIC(10, 2) NOT NULL DEFAULT 0,
        credits_applied INTEGER NOT NULL DEFAULT 0,
        tax NUMERIC(10, 2) NOT NULL DEFAULT 0,
        order_total NUMERIC(10, 2) NOT NULL,
        commission_rate_at_purchase NUMERIC(5, 4),
        commission_amount_at_purchase NUMERIC(10, 2),
        currency TEXT NOT NULL DEFAULT 'USD',
        status TEXT NOT NULL DEFAULT 'pending',
        payment_token TEXT,
        payment_reference TEXT,
        shipping_address JSONB,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
        paid_at TIMESTAMP WITH TIME ZONE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS order_items (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        order_id UUID NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
        product_id UUID NOT NULL,
        quantity INTEGER NOT NULL,
        price_per_item NUMERIC(10, 2) NOT NULL,
        size TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS coupon_codes (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        code TEXT UNIQUE NOT NULL,
        creator_id TEXT UNIQUE NOT NULL,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        total_uses INTEGER NOT NULL DEFAULT 0,
        total_used_amount NUMERIC(12, 2) NOT NULL DEFAULT 0,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS creator_invites (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        email TEXT NOT NULL,
        display_name TEXT,
        tier TEXT NOT NULL DEFAULT 'tier1',
        coupon_code TEXT NOT NULL,
        starting_credits INTEGER NOT NULL DEFAULT 0,
        tiktok_username TEXT,
        followers INTEGER,
        notes TEXT,
        invite_token TEXT UNIQUE NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        accepted_by TEXT,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS social_verification_requests (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        platform TEXT NOT NULL,
        username TEXT NOT NULL,
        follower_count INTEGER,
        screenshot_url TEXT,
        status TEXT NOT NULL DEFAULT 'pending',
        rejection_reason TEXT,
        verified_follower_count INTEGER,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS social_connections (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        platform TEXT NOT NULL,
        username TEXT NOT NULL,
        follower_count INTEGER NOT NULL DEFAULT 0,
        is_verified BOOLEAN NOT NULL DEFAULT FALSE,
        verified_at TIMESTAMP WITH TIME ZONE,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
        UNIQUE (user_id, platform)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS user_credits (
        user_id TEXT PRIMARY KEY,
        current_balance INTEGER NOT NULL DEFAULT 0,
        total_earned INTEGER NOT NULL DEFAULT 0,
        total_spent INTEGER NOT NULL DEFAULT 0,
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS credits_ledger (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        amount INTEGER NOT NULL,
        type TEXT NOT NULL,
        notes TEXT,
        admin_id TEXT,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS wallet_transactions (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        amount NUMERIC(10, 2) NOT NULL,
        credits_added INTEGER NOT NULL,
        transaction_type TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        payment_method_id UUID,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS payment_methods (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        card_last_four TEXT NOT NULL,
        card_brand TEXT NOT NULL,
        is_default BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS creator_earnings (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        creator_id TEXT NOT NULL,
        order_id UUID UNIQUE NOT NULL,
        order_total NUMERIC(10, 2) NOT NULL,
        commission_rate_at_purchase NUMERIC(5, 4) NOT NULL,
        commission_amount NUMERIC(10, 2) NOT NULL,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS referrals (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        referrer_user_id TEXT NOT NULL,
        referred_user_id TEXT UNIQUE NOT NULL,
        referral_code TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        credits_earned INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
        completed_at TIMESTAMP WITH TIME ZONE
    );
    """,
    """
    ALTER TABLE profiles ADD COLUMN IF NOT EXISTS accepted_terms BOOLEAN DEFAULT FALSE;
    """,
    """
    CREATE INDEX IF NOT EXISTS orders_creator_status_idx ON orders (creator_id, status);
    """,
    """
    CREATE INDEX IF NOT EXISTS orders_user_idx ON orders (user_id);
    """,
]


def run_migrations():
    conn = None
    try:
        conn = get_db()
        cur = conn.cursor()
        for sql in MIGRATIONS:
            cur.execute(sql)
        conn.commit()
        cur.close()
    except Exception as e:
        logger.error(f"❌ DB migration error: {e}")
        if conn:
            conn.rollback()
    finally:
        if conn:
            conn.close()
