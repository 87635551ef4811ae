from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import psycopg2
import psycopg2.extras
from psycopg2.extras import Json
from psycopg2.pool import SimpleConnectionPool

from trustify.storage import normalize_product

logger = logging.getLogger("trustify")


class SqlStore:
    """PostgreSQL-backed store with the same interface as JsonStore."""

    mode = "sql"

    def __init__(self, dsn: str, minconn: int = 1, maxconn: int = 10) -> None:
        if not dsn:
            raise RuntimeError("DATABASE_URL must be set when USE_SQL=true.")
        self.pool = SimpleConnectionPool(minconn=minconn, maxconn=maxconn, dsn=dsn)
        self.init_db()

    @contextmanager
    def get_cursor(self):
        """
        Yield a real-dict cursor inside a transaction.
        Rolls back on error and always returns the connection to the pool.
        """
        conn = self.pool.getconn()
        cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
        try:
            yield conn, cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cur.close()
            self.pool.putconn(conn)

    def init_db(self) -> None:
        """Create tables if they do not already exist."""
        with self.get_cursor() as (_, cur):
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    role TEXT NOT NULL DEFAULT 'customer',
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                );
                """
            )
            cur.execute(
                """
                CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email_lower
                ON users ((lower(email)));
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS products (
                    gtin TEXT PRIMARY KEY,
                    name TEXT NOT NULL DEFAULT '',
                    brand TEXT NOT NULL DEFAULT '',
                    batch TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT '',
                    trust_score INTEGER NOT NULL DEFAULT 0
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS images (
                    id BIGSERIAL PRIMARY KEY,
                    product_gtin TEXT NOT NULL,
                    image_url TEXT NOT NULL,
                    angle TEXT,
                    uploaded_at TEXT NOT NULL
                );
                """
            )
            cur.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_images_gtin
                ON images (product_gtin, uploaded_at);
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS scans (
                    id TEXT PRIMARY KEY,
                    gtin TEXT,
                    confidence INTEGER,
                    label TEXT,
                    ok BOOLEAN,
                    created_at TEXT NOT NULL
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS reports (
                    id TEXT PRIMARY KEY,
                    gtin TEXT,
                    reason TEXT,
                    email TEXT,
                    created_at TEXT NOT NULL
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS push_subs (
                    endpoint TEXT PRIMARY KEY,
                    keys JSONB DEFAULT '{}'::jsonb,
                    created_at TEXT NOT NULL
                );
                """
            )
        logger.info("SQL tables ready")

    # ----------------------------- users -----------------------------
    def find_user(self, email: str) -> Optional[Dict[str, Any]]:
        with self.get_cursor() as (_, cur):
            cur.execute(
                "SELECT id, email, password_hash, role FROM users WHERE lower(email) = lower(%s) LIMIT 1",
                (email,),
            )
            row = cur.fetchone()
        return dict(row) if row else None

    def add_user(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self.get_cursor() as (_, cur):
            cur.execute(
                "SELECT 1 FROM users WHERE lower(email) = lower(%s) LIMIT 1",
                (record["email"],),
            )
            if cur.fetchone():
                raise ValueError("user_exists")
            cur.execute(
                """
                INSERT INTO users (id, email, password_hash, role)
                VALUES (%s, %s, %s, %s)
                """,
                (record["id"], record["email"], record["password_hash"], record["role"]),
            )
        return record

    # ---------------------------- products ---------------------------
    def get_product(self, gtin: str) -> Optional[Dict[str, Any]]:
        with self.get_cursor() as (_, cur):
            cur.execute("SELECT * FROM products WHERE gtin = %s LIMIT 1", (str(gtin),))
            row = cur.fetchone()
        return dict(row) if row else None

    def list_products(self) -> List[Dict[str, Any]]:
        with self.get_cursor() as (_, cur):
            cur.execute("SELECT * FROM products ORDER BY gtin")
            return [dict(r) for r in cur.fetchall()]

    def upsert_product(self, record: Dict[str, Any]) -> Dict[str, Any]:
        product = normalize_product(record)
        with self.get_cursor() as (_, cur):
            cur.execute(
                """
                INSERT INTO products (gtin, name, brand, batch, status, trust_score)
                VALUES (%(gtin)s, %(name)s, %(brand)s, %(batch)s, %(status)s, %(trust_score)s)
                ON CONFLICT (gtin) DO UPDATE
                SET name = EXCLUDED.name,
                    brand = EXCLUDED.brand,
                    batch = EXCLUDED.batch,
                    status = EXCLUDED.status,
                    trust_score = EXCLUDED.trust_score
                """,
                product,
            )
        return product

    def insert_product_if_missing(self, record: Dict[str, Any]) -> bool:
        product = normalize_product(record)
        with self.get_cursor() as (_, cur):
            cur.execute(
                """
                INSERT INTO products (gtin, name, brand, batch, status, trust_score)
                VALUES (%(gtin)s, %(name)s, %(brand)s, %(batch)s, %(status)s, %(trust_score)s)
                ON CONFLICT (gtin) DO NOTHING
                """,
                product,
            )
            return cur.rowcount == 1

    # ----------------------------- images ----------------------------
    def list_images(self, gtin: str) -> List[Dict[str, Any]]:
        with self.get_cursor() as (_, cur):
            cur.execute(
                """
                SELECT product_gtin, image_url, angle, uploaded_at
                FROM images WHERE product_gtin = %s ORDER BY id
                """,
                (str(gtin),),
            )
            return [dict(r) for r in cur.fetchall()]

    def add_image(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self.get_cursor() as (_, cur):
            cur.execute(
                """
                INSERT INTO images (product_gtin, image_url, angle, uploaded_at)
                VALUES (%(product_gtin)s, %(image_url)s, %(angle)s, %(uploaded_at)s)
                """,
                record,
            )
        return record

    # ------------------------------ scans ----------------------------
    def add_scan(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self.get_cursor() as (_, cur):
            cur.execute(
                """
                INSERT INTO scans (id, gtin, confidence, label, ok, created_at)
                VALUES (%(id)s, %(gtin)s, %(confidence)s, %(label)s, %(ok)s, %(created_at)s)
                """,
                record,
            )
        return record

    def list_scans(self, gtin: Optional[str] = None) -> List[Dict[str, Any]]:
        with self.get_cursor() as (_, cur):
            if gtin:
                cur.execute("SELECT * FROM scans WHERE gtin = %s ORDER BY created_at", (str(gtin),))
            else:
                cur.execute("SELECT * FROM scans ORDER BY created_at")
            return [dict(r) for r in cur.fetchall()]

    # ----------------------------- reports ---------------------------
    def add_report(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self.get_cursor() as (_, cur):
            cur.execute(
                """
                INSERT INTO reports (id, gtin, reason, email, created_at)
                VALUES (%(id)s, %(gtin)s, %(reason)s, %(email)s, %(created_at)s)
                """,
                record,
            )
        return record

    def list_reports(self) -> List[Dict[str, Any]]:
        with self.get_cursor() as (_, cur):
            cur.execute("SELECT * FROM reports ORDER BY created_at")
            return [dict(r) for r in cur.fetchall()]

    # ------------------------------ push -----------------------------
    def add_push_subscription(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self.get_cursor() as (_, cur):
            cur.execute(
                """
                INSERT INTO push_subs (endpoint, keys, created_at)
                VALUES (%s, %s, %s)
                ON CONFLICT (endpoint) DO UPDATE
                SET keys = EXCLUDED.keys, created_at = EXCLUDED.created_at
                """,
                (record["endpoint"], Json(record.get("keys") or {}), record["created_at"]),
            )
        return record

    def list_push_subscriptions(self) -> List[Dict[str, Any]]:
        with self.get_cursor() as (_, cur):
            cur.execute("SELECT endpoint, keys, created_at FROM push_subs ORDER BY created_at")
            return [dict(r) for r in cur.fetchall()]
