"""
Google Play Developer API client.

All listing reads and writes happen inside an edit. `edit()` opens one,
commits it when the block succeeds (if requested) and deletes it otherwise.
"""

import json
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from ..core.exceptions import StoreApiError
from .auth import TokenCache
from .base_client import StoreHttpClient


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://androidpublisher.googleapis.com"

TOKEN_LIFETIME_SECONDS = 3600


class PlayStoreClient(StoreHttpClient):
    """Client for the androidpublisher v3 edits API."""

    store = "play_store"
    error_prefix = "Google Play request failed"

    def __init__(
        self,
        token_cache: TokenCache,
        base_url: Optional[str] = None,
        timeout: int = 30,
        session=None,
    ):
        super().__init__(base_url or DEFAULT_BASE_URL, token_cache, timeout=timeout, session=session)

    def _error_detail(self, text: str) -> str:
        try:
            payload = json.loads(text)
        except ValueError:
            return text
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return text

    @staticmethod
    def edits_path(package_name: str, edit_id: Optional[str] = None) -> str:
        path = f"/androidpublisher/v3/applications/{package_name}/edits"
        if edit_id:
            path = f"{path}/{edit_id}"
        return path

    def create_edit(self, package_name: str) -> str:
        result = self.post(self.edits_path(package_name), body={})
        edit_id = result.get("id")
        if not edit_id:
            raise StoreApiError("Failed to create edit: no id returned", store=self.store)
        return str(edit_id)

    def commit_edit(self, package_name: str, edit_id: str) -> None:
        self.post(f"{self.edits_path(package_name, edit_id)}:commit")

    def delete_edit(self, package_name: str, edit_id: str) -> None:
        self.delete(self.edits_path(package_name, edit_id))

    @contextmanager
    def edit(self, package_name: str, commit: bool = True) -> Iterator[str]:
        """
        Open an edit for the duration of the block.

        Args:
            package_name: Android package name
            commit: Commit when the block succeeds; when False the edit is
                always discarded (read-only use)

        Yields:
            The edit id
        """
        edit_id = self.create_edit(package_name)
        committed = False
        try:
            yield edit_id
            if commit:
                self.commit_edit(package_name, edit_id)
                committed = True
        finally:
            if not committed:
                try:
                    self.delete_edit(package_name, edit_id)
                except StoreApiError as e:
                    logger.warning(f"Failed to discard edit {edit_id} for {package_name}: {e}")
