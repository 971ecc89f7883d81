"""Service layer that composes backend calls with editor state and settlements.

Every mutation goes to the backend first; on success the returned record is
folded into a new ``EditorState`` and the caller recomputes the settlement
from scratch.
"""

import logging

from . import editor
from .clients.supabase import SupabaseClient
from .config import Settings
from .editor import EditorState
from .exceptions import AuthenticationError, InvalidInputError, SupabaseAPIError
from .models import AuthSession, Group, GroupSummary
from .settlement import calc_settlements, total_spent

logger = logging.getLogger(__name__)


def summarize_group(group: Group) -> GroupSummary:
    """
    Build the dashboard summary for a group.

    This is a pure function; the pending count comes from a full settlement
    run over the group's current members and expenses.
    """
    result = calc_settlements(group.member_names(), group.expenses)
    return GroupSummary(
        group=group,
        member_count=len(group.members),
        expense_count=len(group.expenses),
        total=total_spent(group.expenses),
        pending_transfers=len(result.settlements),
    )


def build_share_url(base_url: str, share_token: str) -> str:
    """Read-only link with the share token in the URL fragment."""
    return f"{base_url.split('#')[0]}#{share_token}"


class GroupService:
    """Service for managing groups, members and expenses."""

    def __init__(self, settings: Settings, session: AuthSession | None = None):
        """
        Initialize the group service.

        Args:
            settings: Application settings
            session: Signed-in session; only shared-group reads work without it
        """
        self.settings = settings
        self.session = session

    def _require_session(self) -> AuthSession:
        if self.session is None:
            raise AuthenticationError("Not signed in. Run 'splitvit login' first.")
        return self.session

    def _client(self, anonymous: bool = False) -> SupabaseClient:
        access_token = None
        if not anonymous:
            access_token = self._require_session().access_token
        return SupabaseClient(
            self.settings.supabase_url,
            self.settings.supabase_anon_key,
            access_token=access_token,
        )

    # ========================================================================
    # Reads
    # ========================================================================

    def list_groups(self) -> list[GroupSummary]:
        """Fetch the signed-in user's groups, newest first, with summaries."""
        owner_id = self._require_session().user.id
        with self._client() as client:
            groups = client.list_groups(owner_id)

        summaries = [summarize_group(g) for g in groups]
        logger.info(
            f"Loaded {len(summaries)} groups "
            f"({sum(1 for s in summaries if not s.is_settled)} with pending transfers)"
        )
        return summaries

    def get_group(self, group_id: str) -> Group:
        with self._client() as client:
            return client.get_group(group_id)

    def get_shared_group(self, share_token: str) -> Group:
        """Fetch a group through its share token, without signing in."""
        with self._client(anonymous=True) as client:
            group = client.get_group_by_share_token(share_token)
        logger.info(f"Opened shared group '{group.name}'")
        return group

    def open_editor(self, group_id: str | None = None, name: str = "") -> EditorState:
        """Load an existing group into the editor, or start a new one."""
        if group_id is None:
            return editor.open_editor(None, name=name)
        return editor.open_editor(self.get_group(group_id))

    # ========================================================================
    # Mutations
    # ========================================================================

    def ensure_group(self, state: EditorState) -> EditorState:
        """Create the group in the backend if it does not exist yet."""
        if state.group_id is not None:
            return state

        name = state.group_name.strip()
        if not name:
            raise InvalidInputError("Group name is required")

        owner_id = self._require_session().user.id
        with self._client() as client:
            group = client.create_group(name, owner_id)
        return editor.with_group(state, group)

    def add_member(self, state: EditorState, raw_name: str) -> EditorState:
        name = editor.normalize_member_name(state, raw_name)
        state = self.ensure_group(state)
        assert state.group_id is not None

        with self._client() as client:
            member = client.add_member(state.group_id, name)
        return editor.with_member_added(state, member)

    def remove_member(self, state: EditorState, name: str) -> EditorState:
        """Remove a member. Expenses that mention them are left as they are."""
        if name not in state.members:
            raise InvalidInputError(f"'{name}' is not a member")

        member_id = state.member_ids.get(name)
        if member_id is not None:
            with self._client() as client:
                client.delete_member(member_id)
        return editor.with_member_removed(state, name)

    def save_expense(self, state: EditorState) -> EditorState:
        """
        Validate the form and store the expense.

        Updates the expense at ``state.edit_index`` when editing, otherwise
        inserts a new one.

        Raises:
            InvalidInputError: If the form is incomplete or names someone who
                is not a member
        """
        payload = state.form.to_payload()
        unknown = [
            name
            for name in [payload.paid_by, *payload.split_between]
            if name not in state.members
        ]
        if unknown:
            raise InvalidInputError(f"Not members of this group: {', '.join(unknown)}")

        state = self.ensure_group(state)
        assert state.group_id is not None

        with self._client() as client:
            existing_id = None
            if state.edit_index is not None:
                existing_id = state.expenses[state.edit_index].id
            if existing_id is not None:
                expense = client.update_expense(existing_id, state.group_id, payload)
            else:
                expense = client.insert_expense(state.group_id, payload)

        return editor.with_expense_saved(state, expense)

    def delete_expense(self, state: EditorState, index: int) -> EditorState:
        if not 0 <= index < len(state.expenses):
            raise InvalidInputError(f"No expense at position {index + 1}")

        expense_id = state.expenses[index].id
        if expense_id is not None:
            with self._client() as client:
                client.delete_expense(expense_id)
        return editor.with_expense_deleted(state, index)

    def delete_group(self, group_id: str) -> None:
        with self._client() as client:
            client.delete_group(group_id)

    def share_url(self, state: EditorState) -> tuple[EditorState, str]:
        """
        Get the read-only link for a group, creating the group if needed.

        Returns:
            Tuple of (possibly updated state, share URL)
        """
        state = self.ensure_group(state)
        if not state.share_token:
            raise SupabaseAPIError(f"Group {state.group_id} has no share token")
        return state, build_share_url(self.settings.share_base_url, state.share_token)
