#!/usr/bin/env python3
"""Create the Cueboard tables in the Supabase Postgres database."""

import os
import psycopg2
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")

SQL = """
-- 1. companies (tenants)
CREATE TABLE IF NOT EXISTS companies (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    address TEXT,
    phone TEXT,
    timezone TEXT,
    active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- 2. profiles (one per Supabase auth user)
CREATE TABLE IF NOT EXISTS profiles (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL UNIQUE REFERENCES auth.users(id) ON DELETE CASCADE,
    email TEXT,
    first_name TEXT,
    last_name TEXT,
    role TEXT NOT NULL DEFAULT 'USER'
        CHECK (role IN ('GUEST', 'USER', 'STAFF', 'ADMIN', 'SUPERADMIN')),
    company_id UUID REFERENCES companies(id) ON DELETE RESTRICT,
    active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_profiles_company_id ON profiles(company_id);

-- 3. company_join_requests
CREATE TABLE IF NOT EXISTS company_join_requests (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    message TEXT,
    status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'approved', 'rejected')),
    reviewed_by UUID,
    reviewed_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_join_requests_company_status ON company_join_requests(company_id, status);

-- 4. tables and sessions
CREATE TABLE IF NOT EXISTS tables (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    status TEXT DEFAULT 'AVAILABLE',
    hourly_rate NUMERIC(10, 2),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_tables_company_id ON tables(company_id);

CREATE TABLE IF NOT EXISTS table_sessions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    table_id UUID NOT NULL REFERENCES tables(id) ON DELETE CASCADE,
    staff_id UUID REFERENCES profiles(id) ON DELETE SET NULL,
    started_at TIMESTAMPTZ NOT NULL,
    ended_at TIMESTAMPTZ,
    duration_min INTEGER,
    total_cost NUMERIC(10, 2),
    status TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_table_sessions_one_open
    ON table_sessions(table_id) WHERE ended_at IS NULL;

CREATE TABLE IF NOT EXISTS table_activity_log (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    user_id UUID,
    action TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id UUID,
    metadata JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_activity_company_created ON table_activity_log(company_id, created_at DESC);

CREATE TABLE IF NOT EXISTS table_reservations (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    table_id UUID NOT NULL REFERENCES tables(id) ON DELETE CASCADE,
    customer_name TEXT NOT NULL,
    customer_phone TEXT,
    reserved_from TIMESTAMPTZ NOT NULL,
    reserved_to TIMESTAMPTZ NOT NULL CHECK (reserved_to > reserved_from),
    status TEXT NOT NULL DEFAULT 'PENDING' CHECK (status IN ('PENDING', 'CONFIRMED', 'CANCELLED')),
    created_by UUID REFERENCES profiles(id) ON DELETE SET NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_reservations_table_window ON table_reservations(table_id, reserved_from, reserved_to);

CREATE TABLE IF NOT EXISTS table_maintenance (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    table_id UUID NOT NULL REFERENCES tables(id) ON DELETE CASCADE,
    description TEXT,
    maintenance_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    cost NUMERIC(10, 2),
    created_by UUID REFERENCES profiles(id) ON DELETE SET NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_maintenance_company_at ON table_maintenance(company_id, maintenance_at DESC);

-- 5. inventory
CREATE TABLE IF NOT EXISTS inventory_categories (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    description TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS inventory_items (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    category_id UUID REFERENCES inventory_categories(id) ON DELETE SET NULL,
    name TEXT NOT NULL,
    sku TEXT,
    quantity INTEGER NOT NULL DEFAULT 0 CHECK (quantity >= 0),
    critical_threshold INTEGER NOT NULL DEFAULT 5,
    price NUMERIC(10, 2),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (company_id, sku)
);

-- 6. point of sale
CREATE TABLE IF NOT EXISTS pos_orders (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    order_number TEXT NOT NULL,
    staff_id UUID REFERENCES profiles(id) ON DELETE SET NULL,
    table_session_id UUID REFERENCES table_sessions(id) ON DELETE SET NULL,
    total_amount NUMERIC(10, 2),
    paid_amount NUMERIC(10, 2),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (company_id, order_number)
);

CREATE TABLE IF NOT EXISTS pos_order_items (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    order_id UUID NOT NULL REFERENCES pos_orders(id) ON DELETE CASCADE,
    item_id UUID NOT NULL REFERENCES inventory_items(id),
    quantity INTEGER NOT NULL,
    unit_price NUMERIC(10, 2) NOT NULL,
    line_total NUMERIC(10, 2) NOT NULL
);

CREATE TABLE IF NOT EXISTS inventory_transactions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    item_id UUID NOT NULL REFERENCES inventory_items(id) ON DELETE CASCADE,
    pos_order_item_id UUID UNIQUE REFERENCES pos_order_items(id) ON DELETE SET NULL,
    transaction_type TEXT NOT NULL CHECK (transaction_type IN ('INCOMING', 'OUTGOING', 'ADJUSTMENT')),
    quantity_delta INTEGER NOT NULL,
    note TEXT,
    staff_id UUID REFERENCES profiles(id) ON DELETE SET NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- 7. finance
CREATE TABLE IF NOT EXISTS finance_categories (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    category_type TEXT NOT NULL CHECK (category_type IN ('INCOME', 'EXPENSE')),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS finance_transactions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    category_id UUID NOT NULL REFERENCES finance_categories(id),
    amount NUMERIC(10, 2) NOT NULL,
    transaction_date DATE NOT NULL,
    description TEXT,
    staff_id UUID REFERENCES profiles(id) ON DELETE SET NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_finance_tx_company_date ON finance_transactions(company_id, transaction_date);

-- 8. observability
CREATE TABLE IF NOT EXISTS observability_metric_snapshots (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    source TEXT NOT NULL,
    request_id TEXT,
    counters JSONB NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

# Stock-changing writes run inside one function call so a failure rolls back
# the whole sale or adjustment. Stock only moves through a guarded decrement.
FUNCTIONS_SQL = """
CREATE OR REPLACE FUNCTION create_pos_order(
    p_company_id UUID,
    p_staff_id UUID,
    p_table_session_id UUID,
    p_order_number TEXT,
    p_paid_amount NUMERIC,
    p_lines JSONB
) RETURNS JSONB
LANGUAGE plpgsql
AS $$
DECLARE
    v_order pos_orders%ROWTYPE;
    v_item inventory_items%ROWTYPE;
    v_line_row pos_order_items%ROWTYPE;
    v_line JSONB;
    v_item_id UUID;
    v_quantity INTEGER;
    v_lines JSONB := '[]'::JSONB;
    v_total NUMERIC(10, 2) := 0;
BEGIN
    INSERT INTO pos_orders (company_id, order_number, staff_id, table_session_id, total_amount, paid_amount)
    VALUES (p_company_id, p_order_number, p_staff_id, p_table_session_id, 0, p_paid_amount)
    RETURNING * INTO v_order;

    FOR v_line IN SELECT * FROM jsonb_array_elements(p_lines) LOOP
        v_item_id := (v_line->>'item_id')::UUID;
        v_quantity := (v_line->>'quantity')::INTEGER;

        UPDATE inventory_items
           SET quantity = quantity - v_quantity, updated_at = NOW()
         WHERE id = v_item_id AND company_id = p_company_id AND quantity >= v_quantity
        RETURNING * INTO v_item;

        IF NOT FOUND THEN
            IF EXISTS (SELECT 1 FROM inventory_items WHERE id = v_item_id AND company_id = p_company_id) THEN
                RAISE EXCEPTION 'Insufficient stock' USING ERRCODE = 'CB409', DETAIL = v_item_id::TEXT;
            END IF;
            RAISE EXCEPTION 'Item not found' USING ERRCODE = 'CB404', DETAIL = v_item_id::TEXT;
        END IF;

        INSERT INTO pos_order_items (order_id, item_id, quantity, unit_price, line_total)
        VALUES (
            v_order.id,
            v_item_id,
            v_quantity,
            ROUND(COALESCE(v_item.price, 0), 2),
            ROUND(COALESCE(v_item.price, 0), 2) * v_quantity
        )
        RETURNING * INTO v_line_row;

        INSERT INTO inventory_transactions
            (company_id, item_id, pos_order_item_id, transaction_type, quantity_delta, note, staff_id)
        VALUES
            (p_company_id, v_item_id, v_line_row.id, 'OUTGOING', -v_quantity, 'POS order ' || p_order_number, p_staff_id);

        v_total := v_total + v_line_row.line_total;
        v_lines := v_lines || to_jsonb(v_line_row);
    END LOOP;

    UPDATE pos_orders SET total_amount = v_total WHERE id = v_order.id RETURNING * INTO v_order;
    RETURN to_jsonb(v_order) || jsonb_build_object('items', v_lines);
END;
$$;

CREATE OR REPLACE FUNCTION adjust_inventory_stock(
    p_company_id UUID,
    p_item_id UUID,
    p_quantity_delta INTEGER,
    p_transaction_type TEXT,
    p_note TEXT,
    p_staff_id UUID
) RETURNS JSONB
LANGUAGE plpgsql
AS $$
DECLARE
    v_item inventory_items%ROWTYPE;
    v_transaction inventory_transactions%ROWTYPE;
BEGIN
    UPDATE inventory_items
       SET quantity = quantity + p_quantity_delta, updated_at = NOW()
     WHERE id = p_item_id AND company_id = p_company_id AND quantity + p_quantity_delta >= 0
    RETURNING * INTO v_item;

    IF NOT FOUND THEN
        IF EXISTS (SELECT 1 FROM inventory_items WHERE id = p_item_id AND company_id = p_company_id) THEN
            RAISE EXCEPTION 'Insufficient stock' USING ERRCODE = 'CB409', DETAIL = p_item_id::TEXT;
        END IF;
        RAISE EXCEPTION 'Item not found' USING ERRCODE = 'CB404', DETAIL = p_item_id::TEXT;
    END IF;

    INSERT INTO inventory_transactions (company_id, item_id, transaction_type, quantity_delta, note, staff_id)
    VALUES (p_company_id, p_item_id, p_transaction_type, p_quantity_delta, p_note, p_staff_id)
    RETURNING * INTO v_transaction;

    RETURN jsonb_build_object('item', to_jsonb(v_item), 'transaction', to_jsonb(v_transaction));
END;
$$;
"""


def main():
    print("Connecting to database...")
    conn = psycopg2.connect(DATABASE_URL)
    conn.autocommit = True
    cur = conn.cursor()

    print("Creating tables...")
    cur.execute(SQL)

    print("Creating stock functions...")
    cur.execute(FUNCTIONS_SQL)

    cur.execute("SELECT table_name FROM information_schema.tables WHERE table_schema = 'public' ORDER BY table_name;")
    tables = cur.fetchall()
    print(f"\nTables created: {[t[0] for t in tables]}")

    cur.close()
    conn.close()
    print("\nDone!")


if __name__ == "__main__":
    main()
