"""
Account Repository.

Wraps the two account-level RPCs.  Both identify the user from the JWT of
the current session, so neither takes parameters.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from journal.errors import DataAccessError, ProtocolError
from journal.models.journal_models import DeleteAccountResponse, ExportDataResponse
from journal.repositories.base_repository import BaseRepository
from journal.session_guard import require_session

EXPORT_RPC: str = "export_journal_entries"
DELETE_RPC: str = "delete_my_account"


def _single_object(body: Any) -> Any:
    """Normalise an RPC body (dict, one-row list or JSON string) to a dict."""
    if isinstance(body, (str, bytes)):
        body = json.loads(body)
    if isinstance(body, list):
        body = body[0] if body else None
    return body


class AccountRepository(BaseRepository):
    """Data export and account deletion."""

    @require_session
    async def export_journal_entries(self) -> ExportDataResponse:
        body = await self._call(EXPORT_RPC)
        try:
            return ExportDataResponse.model_validate(_single_object(body))
        except (ValidationError, ValueError, TypeError) as exc:
            raise ProtocolError("invalid response format", original_error=exc) from exc

    @require_session
    async def delete_my_account(self) -> DeleteAccountResponse:
        """Irreversibly delete the user's account and all their data."""
        body = await self._call(DELETE_RPC)
        try:
            return DeleteAccountResponse.model_validate(_single_object(body))
        except (ValidationError, ValueError, TypeError) as exc:
            raise ProtocolError("invalid response format", original_error=exc) from exc

    async def _call(self, rpc_name: str) -> Any:
        async def _query() -> Any:
            response = await self.supabase.rpc(rpc_name, {}).execute()
            return response.data

        body = await self._execute(_query, operation_name=f"rpc {rpc_name}")
        if body is None or body == "" or body == []:
            raise DataAccessError(f"{rpc_name} returned an empty response.")
        return body
