# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for the four tables the service owns:
# - accounts: registered users and their one-shot tokens/codes
# - admins: allow-list of admin emails
# - verification_codes: 6-digit codes exchanged for a download link
# - orders: photo orders moving pending -> paid -> approved -> completed
#
# It implements the singleton pattern to reuse a single client connection.
# Every method returns plain dicts (rows) or None; failures are raised as
# SupabaseClientError.
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   account = SupabaseClient.find_account_by_email("a@b.com")
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Iterable
from uuid import UUID

from supabase import create_client, Client

from app.config import settings
from lib.utils import normalize_email, normalize_uuid, utc_now_iso

# Set up logging for this module
logger = logging.getLogger(__name__)

ACCOUNTS_TABLE = "accounts"
ADMINS_TABLE = "admins"
CODES_TABLE = "verification_codes"
ORDERS_TABLE = "orders"

# Columns safe to hand to the admin panel (no hashes, tokens or codes)
ACCOUNT_PUBLIC_COLUMNS = (
    "id, email, email_verified, admin_approved, created_at, "
    "display_name, auth_provider"
)


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Provides actionable error messages: "Errors should tell HOW to fix,
    not just WHAT failed."
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.

    Example:
        account = SupabaseClient.find_account_by_email("a@b.com")
        if account and SupabaseClient.is_admin(account["email"]):
            ...
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS).
        This is appropriate for server-side operations.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
                raise SupabaseClientError(
                    message="Supabase credentials are not configured",
                    code="CLIENT_NOT_CONFIGURED",
                    suggestion="Set SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        """Convert UUID to string for queries."""
        return normalize_uuid(uuid_value)

    @classmethod
    def _fetch_one(cls, query, error_code: str, details: dict[str, Any]) -> dict[str, Any] | None:
        """
        Execute a `.single()` query, mapping "no rows" to None.
        """
        try:
            response = query.single().execute()
            return response.data
        except Exception as e:
            if "PGRST116" in str(e):  # PostgREST code for no rows
                return None
            if "22P02" in str(e):  # malformed id, e.g. not a uuid
                return None
            raise SupabaseClientError(
                message=f"Query failed: {e}",
                code=error_code,
                details=details,
            )

    @classmethod
    def _first(cls, response) -> dict[str, Any] | None:
        rows = response.data or []
        return rows[0] if rows else None

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    @classmethod
    def find_account_by_email(cls, email: str) -> dict[str, Any] | None:
        """
        Fetch an account by (case-folded) email.

        Returns:
            Account row, or None if no account uses this email
        """
        client = cls.get_client()
        email = normalize_email(email)
        query = client.table(ACCOUNTS_TABLE).select("*").eq("email", email)
        return cls._fetch_one(query, "FETCH_ACCOUNT_FAILED", {"email": email})

    @classmethod
    def find_account_by_reset_token(cls, token: str) -> dict[str, Any] | None:
        """Fetch the account holding a password-reset token."""
        client = cls.get_client()
        query = client.table(ACCOUNTS_TABLE).select("*").eq("reset_token", token)
        return cls._fetch_one(query, "FETCH_ACCOUNT_FAILED", {"by": "reset_token"})

    @classmethod
    def find_account_by_verification_token(cls, token: str) -> dict[str, Any] | None:
        """Fetch the account holding an email-verification token."""
        client = cls.get_client()
        query = client.table(ACCOUNTS_TABLE).select("*").eq("email_verification_token", token)
        return cls._fetch_one(query, "FETCH_ACCOUNT_FAILED", {"by": "email_verification_token"})

    @classmethod
    def create_account(
        cls,
        email: str,
        password_hash: str | None,
        *,
        email_verified: bool = False,
        admin_approved: bool = False,
        verification_token: str | None = None,
        display_name: str | None = None,
        profile_picture: str | None = None,
        auth_provider: str = "email",
    ) -> dict[str, Any]:
        """
        Insert a new account.

        Password-less accounts (password_hash=None) belong to external
        identities such as Google Sign-In.

        Returns:
            Inserted account row

        Raises:
            SupabaseClientError: If insert fails
        """
        client = cls.get_client()
        data = {
            "email": normalize_email(email),
            "password": password_hash,
            "email_verified": email_verified,
            "email_verification_token": verification_token,
            "admin_approved": admin_approved,
            "display_name": display_name,
            "profile_picture": profile_picture,
            "auth_provider": auth_provider,
        }

        try:
            response = client.table(ACCOUNTS_TABLE).insert(data).execute()
            account = cls._first(response)
            if account is None:
                raise SupabaseClientError(message="Insert returned no data", code="INSERT_NO_DATA")
            logger.info(f"Created {auth_provider} account: {data['email']}")
            return account

        except SupabaseClientError:
            raise
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create account: {e}",
                code="CREATE_ACCOUNT_FAILED",
                details={"email": data["email"]}
            )

    @classmethod
    def update_account(cls, email: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        """
        Update columns on an account.

        Returns:
            Updated row, or None if no account matched
        """
        client = cls.get_client()
        email = normalize_email(email)

        try:
            response = (
                client.table(ACCOUNTS_TABLE)
                .update(fields)
                .eq("email", email)
                .execute()
            )
            return cls._first(response)

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update account: {e}",
                code="UPDATE_ACCOUNT_FAILED",
                details={"email": email, "fields": sorted(fields)}
            )

    @classmethod
    def delete_account(cls, email: str) -> bool:
        """Delete an account. Returns True if a row was removed."""
        client = cls.get_client()
        email = normalize_email(email)

        try:
            response = client.table(ACCOUNTS_TABLE).delete().eq("email", email).execute()
            return bool(response.data)

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to delete account: {e}",
                code="DELETE_ACCOUNT_FAILED",
                details={"email": email}
            )

    @classmethod
    def list_accounts(
        cls,
        approved: bool | None = None,
        columns: str = ACCOUNT_PUBLIC_COLUMNS,
    ) -> list[dict[str, Any]]:
        """
        List accounts, newest first.

        Args:
            approved: filter on admin_approved (None = all accounts)
            columns: select list (defaults to the secret-free columns)
        """
        client = cls.get_client()

        try:
            query = client.table(ACCOUNTS_TABLE).select(columns)
            if approved is not None:
                query = query.eq("admin_approved", approved)
            response = query.order("created_at", desc=True).execute()
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to list accounts: {e}",
                code="LIST_ACCOUNTS_FAILED",
                details={"approved": approved}
            )

    @classmethod
    def count_accounts(cls) -> int:
        """Total number of registered accounts."""
        client = cls.get_client()

        try:
            response = client.table(ACCOUNTS_TABLE).select("id", count="exact").execute()
            if response.count is not None:
                return response.count
            return len(response.data or [])

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to count accounts: {e}",
                code="COUNT_ACCOUNTS_FAILED",
            )

    # -------------------------------------------------------------------------
    # Admins
    # -------------------------------------------------------------------------

    @classmethod
    def is_admin(cls, email: str) -> bool:
        """
        Check the admin allow-list.

        Never cached: the list can change while sessions are live.
        """
        client = cls.get_client()
        email = normalize_email(email)
        if not email:
            return False

        try:
            response = (
                client.table(ADMINS_TABLE)
                .select("id")
                .eq("email", email)
                .limit(1)
                .execute()
            )
            return bool(response.data)

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to check admin list: {e}",
                code="ADMIN_CHECK_FAILED",
                details={"email": email}
            )

    # -------------------------------------------------------------------------
    # Verification Codes
    # -------------------------------------------------------------------------

    @classmethod
    def list_codes(cls) -> list[dict[str, Any]]:
        """All verification codes, newest first."""
        client = cls.get_client()

        try:
            response = (
                client.table(CODES_TABLE)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to list codes: {e}",
                code="LIST_CODES_FAILED",
            )

    @classmethod
    def list_code_values(cls) -> set[str]:
        """Every code string currently in the table (used or not)."""
        client = cls.get_client()

        try:
            response = client.table(CODES_TABLE).select("code").execute()
            return {row["code"] for row in (response.data or []) if row.get("code")}

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to read existing codes: {e}",
                code="LIST_CODES_FAILED",
            )

    @classmethod
    def find_code(cls, code: str) -> dict[str, Any] | None:
        """Fetch a verification code row by exact code match."""
        client = cls.get_client()
        query = client.table(CODES_TABLE).select("*").eq("code", code)
        return cls._fetch_one(query, "FETCH_CODE_FAILED", {"code": code})

    @classmethod
    def insert_code(cls, code: str, dropbox_link: str) -> dict[str, Any]:
        """
        Store a freshly minted, unused code.

        Raises:
            SupabaseClientError: If insert fails
        """
        client = cls.get_client()
        data = {"code": code, "dropbox_link": dropbox_link, "used_by_email": None}

        try:
            response = client.table(CODES_TABLE).insert(data).execute()
            row = cls._first(response)
            if row is None:
                raise SupabaseClientError(message="Insert returned no data", code="INSERT_NO_DATA")
            return row

        except SupabaseClientError:
            raise
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to insert code: {e}",
                code="INSERT_CODE_FAILED",
                details={"code": code}
            )

    @classmethod
    def mark_code_used(cls, code_id: Any, email: str) -> dict[str, Any] | None:
        """
        Mark a code as redeemed, only if nobody has redeemed it yet.

        This is a single conditional UPDATE (... WHERE used_by_email IS NULL),
        so two concurrent redemptions cannot both succeed.

        Returns:
            The updated row, or None if the code was already used
        """
        client = cls.get_client()

        try:
            response = (
                client.table(CODES_TABLE)
                .update({"used_by_email": normalize_email(email), "used_at": utc_now_iso()})
                .eq("id", code_id)
                .is_("used_by_email", "null")
                .execute()
            )
            return cls._first(response)

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to mark code used: {e}",
                code="MARK_CODE_USED_FAILED",
                details={"code_id": code_id}
            )

    @classmethod
    def delete_all_codes(cls) -> None:
        """Delete every verification code row."""
        client = cls.get_client()

        try:
            # id is never null, so this matches all rows
            client.table(CODES_TABLE).delete().not_.is_("id", "null").execute()
            logger.info("Deleted all verification codes")

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to clear codes: {e}",
                code="CLEAR_CODES_FAILED",
            )

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    @classmethod
    def insert_order(cls, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a new order row.

        Raises:
            SupabaseClientError: If insert fails
        """
        client = cls.get_client()

        try:
            response = client.table(ORDERS_TABLE).insert(data).execute()
            order = cls._first(response)
            if order is None:
                raise SupabaseClientError(message="Insert returned no data", code="INSERT_NO_DATA")
            return order

        except SupabaseClientError:
            raise
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create order: {e}",
                code="CREATE_ORDER_FAILED",
                details={"user_email": data.get("user_email")}
            )

    @classmethod
    def find_order(cls, order_id: str | UUID) -> dict[str, Any] | None:
        """Fetch an order by id."""
        client = cls.get_client()
        order_id_str = cls._normalize_uuid(order_id)
        query = client.table(ORDERS_TABLE).select("*").eq("id", order_id_str)
        return cls._fetch_one(query, "FETCH_ORDER_FAILED", {"order_id": order_id_str})

    @classmethod
    def find_latest_order(
        cls,
        user_email: str,
        status: str | None = None,
        exclude_status: str | None = None,
    ) -> dict[str, Any] | None:
        """
        Newest order for a user, optionally restricted by status.

        Args:
            user_email: Owner of the order
            status: only consider orders in this status
            exclude_status: ignore orders in this status
        """
        client = cls.get_client()
        user_email = normalize_email(user_email)

        try:
            query = client.table(ORDERS_TABLE).select("*").eq("user_email", user_email)
            if status:
                query = query.eq("status", status)
            if exclude_status:
                query = query.neq("status", exclude_status)
            response = query.order("created_at", desc=True).limit(1).execute()
            return cls._first(response)

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch latest order: {e}",
                code="FETCH_ORDER_FAILED",
                details={"user_email": user_email, "status": status}
            )

    @classmethod
    def list_orders_for_user(
        cls,
        user_email: str,
        limit: int | None = 10,
        columns: str = "*",
    ) -> list[dict[str, Any]]:
        """A user's orders, newest first. limit=None returns all of them."""
        client = cls.get_client()
        user_email = normalize_email(user_email)

        try:
            query = (
                client.table(ORDERS_TABLE)
                .select(columns)
                .eq("user_email", user_email)
                .order("created_at", desc=True)
            )
            if limit is not None:
                query = query.limit(limit)
            return query.execute().data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to list orders: {e}",
                code="LIST_ORDERS_FAILED",
                details={"user_email": user_email, "limit": limit}
            )

    @classmethod
    def list_orders(cls, status: str | None = None, limit: int = 100) -> list[dict[str, Any]]:
        """All orders (admin view), newest first."""
        client = cls.get_client()

        try:
            query = client.table(ORDERS_TABLE).select("*")
            if status:
                query = query.eq("status", status)
            response = query.order("created_at", desc=True).limit(limit).execute()
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to list orders: {e}",
                code="LIST_ORDERS_FAILED",
                details={"status": status}
            )

    @classmethod
    def transition_order(
        cls,
        order_id: str | UUID,
        from_statuses: Iterable[str],
        to_status: str,
        fields: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """
        Move an order to `to_status` only if it is currently in one of
        `from_statuses`.

        The status guard is part of the UPDATE itself, so a concurrent
        transition cannot move the order backwards.

        Returns:
            Updated row, or None if the order was not in an allowed status
        """
        client = cls.get_client()
        order_id_str = cls._normalize_uuid(order_id)
        data = {"status": to_status, **(fields or {})}

        try:
            response = (
                client.table(ORDERS_TABLE)
                .update(data)
                .eq("id", order_id_str)
                .in_("status", list(from_statuses))
                .execute()
            )
            return cls._first(response)

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update order status: {e}",
                code="TRANSITION_ORDER_FAILED",
                details={"order_id": order_id_str, "to_status": to_status}
            )

    @classmethod
    def update_order(cls, order_id: str | UUID, fields: dict[str, Any]) -> dict[str, Any] | None:
        """Update non-status columns on an order."""
        client = cls.get_client()
        order_id_str = cls._normalize_uuid(order_id)

        try:
            response = (
                client.table(ORDERS_TABLE)
                .update(fields)
                .eq("id", order_id_str)
                .execute()
            )
            return cls._first(response)

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update order: {e}",
                code="UPDATE_ORDER_FAILED",
                details={"order_id": order_id_str}
            )

    @classmethod
    def delete_orders(cls, order_ids: list[Any]) -> int:
        """Delete orders by id. Returns how many ids were requested."""
        if not order_ids:
            return 0
        client = cls.get_client()

        try:
            client.table(ORDERS_TABLE).delete().in_("id", order_ids).execute()
            return len(order_ids)

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to delete orders: {e}",
                code="DELETE_ORDERS_FAILED",
                details={"count": len(order_ids)}
            )
