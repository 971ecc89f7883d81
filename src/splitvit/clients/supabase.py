"""Supabase data (PostgREST) API client."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx

from ..editor import ExpensePayload
from ..exceptions import GroupNotFoundError, SupabaseAPIError
from ..models import Expense, Group, Member

logger = logging.getLogger(__name__)

GROUP_SELECT = "*,members(*),expenses(*)"


def parse_member(row: dict[str, Any]) -> Member:
    return Member(id=str(row["id"]), name=row["name"])


def parse_expense(row: dict[str, Any]) -> Expense:
    return Expense(
        id=str(row["id"]),
        title=row.get("title") or "",
        amount=Decimal(str(row["amount"])),
        paid_by=row["paid_by"],
        split_between=list(row.get("split_between") or []),
    )


def parse_group(row: dict[str, Any]) -> Group:
    """Build a Group from a row with embedded members and expenses."""
    created_at = row.get("created_at")
    return Group(
        id=str(row["id"]),
        name=row.get("name") or "",
        owner_id=str(row["owner_id"]) if row.get("owner_id") else None,
        share_token=row.get("share_token"),
        created_at=(
            datetime.fromisoformat(created_at.replace("Z", "+00:00"))
            if created_at
            else None
        ),
        members=[parse_member(m) for m in row.get("members") or []],
        expenses=[parse_expense(e) for e in row.get("expenses") or []],
    )


class SupabaseClient:
    """Client for the Supabase REST API v1.

    Without an access token requests run as the anonymous role, which is
    enough to read a group through its share token.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        access_token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the Supabase client."""
        self.url = url.rstrip("/")
        self.client = httpx.Client(
            base_url=f"{self.url}/rest/v1",
            headers={
                "apikey": anon_key,
                "Authorization": f"Bearer {access_token or anon_key}",
                "Content-Type": "application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body (or None)."""
        response = self.client.request(method, path, **kwargs)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            try:
                detail = response.json().get("message", response.text)
            except ValueError:
                detail = response.text
            raise SupabaseAPIError(
                f"{method} {path} failed: {detail}", status_code=response.status_code
            ) from e
        if not response.content:
            return None
        return response.json()

    def _insert(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        rows = self._request(
            "POST",
            f"/{table}",
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise SupabaseAPIError(f"Insert into {table} returned no row")
        row: dict[str, Any] = rows[0]
        return row

    # ========================================================================
    # Groups
    # ========================================================================

    def list_groups(self, owner_id: str) -> list[Group]:
        """
        Get all groups owned by a user, newest first.

        Args:
            owner_id: The owning user's ID

        Returns:
            Groups with their members and expenses embedded
        """
        rows = self._request(
            "GET",
            "/groups",
            params={
                "select": GROUP_SELECT,
                "owner_id": f"eq.{owner_id}",
                "order": "created_at.desc",
            },
        )
        groups = [parse_group(row) for row in rows or []]
        logger.info(f"Fetched {len(groups)} groups")
        return groups

    def _get_single_group(self, column: str, value: str) -> Group:
        rows = self._request(
            "GET",
            "/groups",
            params={"select": GROUP_SELECT, column: f"eq.{value}", "limit": 1},
        )
        if not rows:
            raise GroupNotFoundError(value)
        return parse_group(rows[0])

    def get_group(self, group_id: str) -> Group:
        """Get one group by ID."""
        return self._get_single_group("id", group_id)

    def get_group_by_share_token(self, share_token: str) -> Group:
        """Get the group a share token points at."""
        return self._get_single_group("share_token", share_token)

    def create_group(self, name: str, owner_id: str) -> Group:
        """
        Create an empty group.

        The backend assigns the ID and the share token.
        """
        row = self._insert("groups", {"name": name, "owner_id": owner_id})
        group = parse_group(row)
        logger.info(f"Created group '{name}' ({group.id})")
        return group

    def delete_group(self, group_id: str) -> None:
        """Delete a group. Members and expenses go with it."""
        self._request("DELETE", "/groups", params={"id": f"eq.{group_id}"})
        logger.info(f"Deleted group {group_id}")

    # ========================================================================
    # Members
    # ========================================================================

    def add_member(self, group_id: str, name: str) -> Member:
        row = self._insert("members", {"group_id": group_id, "name": name})
        logger.info(f"Added member '{name}' to group {group_id}")
        return parse_member(row)

    def delete_member(self, member_id: str) -> None:
        self._request("DELETE", "/members", params={"id": f"eq.{member_id}"})
        logger.info(f"Deleted member {member_id}")

    # ========================================================================
    # Expenses
    # ========================================================================

    @staticmethod
    def _expense_row(group_id: str, payload: ExpensePayload) -> dict[str, Any]:
        return {
            "group_id": group_id,
            "title": payload.title,
            "amount": str(payload.amount),
            "paid_by": payload.paid_by,
            "split_between": list(payload.split_between),
        }

    def insert_expense(self, group_id: str, payload: ExpensePayload) -> Expense:
        """
        Store a new expense.

        Args:
            group_id: The owning group
            payload: Validated expense fields (title, amount, paid_by,
                split_between)

        Returns:
            The stored expense with its new ID
        """
        row = self._insert("expenses", self._expense_row(group_id, payload))
        logger.info(f"Inserted expense '{payload.title}' in group {group_id}")
        return parse_expense(row)

    def update_expense(
        self, expense_id: str, group_id: str, payload: ExpensePayload
    ) -> Expense:
        """Replace the fields of an existing expense."""
        rows = self._request(
            "PATCH",
            "/expenses",
            params={"id": f"eq.{expense_id}"},
            json=self._expense_row(group_id, payload),
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise SupabaseAPIError(f"Expense {expense_id} not found", status_code=404)
        logger.info(f"Updated expense {expense_id}")
        return parse_expense(rows[0])

    def delete_expense(self, expense_id: str) -> None:
        self._request("DELETE", "/expenses", params={"id": f"eq.{expense_id}"})
        logger.info(f"Deleted expense {expense_id}")
