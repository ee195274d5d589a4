"""
PostgreSQL adapters - Implement the domain's persistence ports.

This module provides PostgreSQL implementations of the account,
directory, verification-code, audit and mirror ports using psycopg3 with
raw SQL.

Identifier races:
-----------------
Accounts carry two unique constraints, accounts_pkey on (owner, name)
and accounts_owner_id_key on (owner, id). Concurrent signups under the
incremental identifier rule may compute the same id; the second INSERT
fails on accounts_owner_id_key and is reported as
AddAccountResult.DUPLICATE_ID, which the orchestrator surfaces as a
retryable AllocationConflict.

Verification codes:
-------------------
One row per destination. Issuing a new code upserts the row; disabling
sets is_used and is a no-op when no row exists.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from src.domain.models import Account, Application, Organization, Record, SignupItem, VerificationRecord, split_key
from src.domain.ports import AddAccountResult

logger = logging.getLogger(__name__)

_ACCOUNT_ID_CONSTRAINT = "accounts_owner_id_key"

_ACCOUNT_COLUMNS = (
    "owner, name, id, created_time, type, password, display_name, first_name, last_name, "
    "avatar, email, phone, affiliation, id_card, region, tag, address, properties, score, "
    "karma, is_admin, is_global_admin, is_forbidden, is_deleted, signup_application"
)

# Columns reset_email_or_phone is allowed to touch
_UPDATABLE_FIELDS = {"email", "phone"}


def _row_to_account(row: dict) -> Account:
    return Account(
        owner=row["owner"],
        name=row["name"],
        id=row["id"],
        created_time=row["created_time"],
        type=row["type"],
        password=row["password"],
        display_name=row["display_name"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        avatar=row["avatar"],
        email=row["email"],
        phone=row["phone"],
        affiliation=row["affiliation"],
        id_card=row["id_card"],
        region=row["region"],
        tag=row["tag"],
        address=list(row["address"] or []),
        properties=dict(row["properties"] or {}),
        score=row["score"],
        karma=row["karma"],
        is_admin=row["is_admin"],
        is_global_admin=row["is_global_admin"],
        is_forbidden=row["is_forbidden"],
        is_deleted=row["is_deleted"],
        signup_application=row["signup_application"],
    )


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def get(self, owner: str, name: str) -> Account | None:
        sql = f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE owner = %s AND name = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (owner, name))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_field(self, owner: str, value: str) -> Account | None:
        if not value:
            return None
        sql = f"""
            SELECT {_ACCOUNT_COLUMNS} FROM accounts
            WHERE owner = %s AND (name = %s OR email = %s OR phone = %s)
            LIMIT 1
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (owner, value, value, value))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    def get_last(self, owner: str) -> Account | None:
        sql = f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE owner = %s ORDER BY seq DESC LIMIT 1"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (owner,))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    def add(self, account: Account) -> AddAccountResult:
        """
        Insert the account, mapping constraint violations to results.

        Returns:
            ADDED, DUPLICATE_NAME, DUPLICATE_ID, or REJECTED for any other
            integrity/data error
        """
        sql = f"""
            INSERT INTO accounts ({_ACCOUNT_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            account.owner,
            account.name,
            account.id,
            account.created_time,
            account.type,
            account.password,
            account.display_name,
            account.first_name,
            account.last_name,
            account.avatar,
            account.email,
            account.phone,
            account.affiliation,
            account.id_card,
            account.region,
            account.tag,
            Jsonb(account.address),
            Jsonb(account.properties),
            account.score,
            account.karma,
            account.is_admin,
            account.is_global_admin,
            account.is_forbidden,
            account.is_deleted,
            account.signup_application,
        )

        try:
            with self._pool.connection() as conn:
                conn.execute(sql, params)
                conn.commit()
        except psycopg.errors.UniqueViolation as e:
            if e.diag.constraint_name == _ACCOUNT_ID_CONSTRAINT:
                logger.warning("Identifier conflict for %s in %s", account.id, account.owner)
                return AddAccountResult.DUPLICATE_ID
            return AddAccountResult.DUPLICATE_NAME
        except (psycopg.IntegrityError, psycopg.DataError) as e:
            logger.warning("Account %s rejected by database: %s", account.key, e)
            return AddAccountResult.REJECTED
        return AddAccountResult.ADDED

    def update_field(self, account: Account, field: str, value: str) -> None:
        if field not in _UPDATABLE_FIELDS:
            raise ValueError(f"Field {field} cannot be updated")
        sql = f"UPDATE accounts SET {field} = %s WHERE owner = %s AND name = %s"
        with self._pool.connection() as conn:
            conn.execute(sql, (value, account.owner, account.name))
            conn.commit()


class PostgresAccountMirror:
    """Implements AccountMirror protocol against the original_users table."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def mirror(self, account: Account) -> bool:
        sql = """
            INSERT INTO original_users (owner, name, id, display_name, email, phone, created_time)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (owner, name) DO NOTHING
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    account.owner,
                    account.name,
                    account.id,
                    account.display_name,
                    account.email,
                    account.phone,
                    account.created_time,
                ),
            )
            conn.commit()
            return cursor.rowcount == 1


class PostgresDirectory:
    """Implements DirectoryRepository protocol (read-only)."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def get_organization(self, key: str) -> Organization | None:
        owner, name = split_key(key)
        sql = """
            SELECT owner, name, display_name, default_avatar, phone_prefix, tags, master_password
            FROM organizations WHERE owner = %s AND name = %s
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (owner, name))
            row = cursor.fetchone()
        if row is None:
            return None
        return Organization(
            owner=row["owner"],
            name=row["name"],
            display_name=row["display_name"],
            default_avatar=row["default_avatar"],
            phone_prefix=row["phone_prefix"],
            tags=list(row["tags"] or []),
            master_password=row["master_password"],
        )

    def get_application(self, key: str) -> Application | None:
        owner, name = split_key(key)
        sql = """
            SELECT owner, name, organization, enable_signup, homepage_url, signup_items
            FROM applications WHERE owner = %s AND name = %s
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (owner, name))
            row = cursor.fetchone()
        if row is None:
            return None
        return Application(
            owner=row["owner"],
            name=row["name"],
            organization=row["organization"],
            enable_signup=row["enable_signup"],
            homepage_url=row["homepage_url"],
            signup_items=[SignupItem(**item) for item in row["signup_items"] or []],
        )


class PostgresVerificationCodeStore:
    """Implements VerificationCodeStore protocol; one row per destination."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def save(self, record: VerificationRecord) -> None:
        sql = """
            INSERT INTO verification_codes (destination, code, created_at, expires_at, is_used)
            VALUES (%s, %s, %s, %s, FALSE)
            ON CONFLICT (destination) DO UPDATE
            SET code = EXCLUDED.code,
                created_at = EXCLUDED.created_at,
                expires_at = EXCLUDED.expires_at,
                is_used = FALSE
        """
        with self._pool.connection() as conn:
            conn.execute(sql, (record.destination, record.code, record.created_at, record.expires_at))
            conn.commit()

    def get(self, destination: str) -> VerificationRecord | None:
        sql = """
            SELECT destination, code, created_at, expires_at, is_used
            FROM verification_codes WHERE destination = %s
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (destination,))
            row = cursor.fetchone()
        if row is None:
            return None
        return VerificationRecord(
            destination=row["destination"],
            code=row["code"],
            created_at=row["created_at"].astimezone(UTC),
            expires_at=row["expires_at"].astimezone(UTC),
            is_used=row["is_used"],
        )

    def disable(self, destination: str) -> None:
        sql = "UPDATE verification_codes SET is_used = TRUE WHERE destination = %s AND is_used = FALSE"
        with self._pool.connection() as conn:
            conn.execute(sql, (destination,))
            conn.commit()


class PostgresAuditWriter:
    """Implements AuditWriter protocol via the records table."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def add_record(self, record: Record) -> None:
        sql = """
            INSERT INTO records (name, owner, created_time, organization, user_name,
                                 client_ip, method, request_uri, action, stored_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        with self._pool.connection() as conn:
            conn.execute(
                sql,
                (
                    record.name,
                    record.owner,
                    record.created_time,
                    record.organization,
                    record.user,
                    record.client_ip,
                    record.method,
                    record.request_uri,
                    record.action,
                    datetime.now(UTC),
                ),
            )
            conn.commit()


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
