"""PureCloud user operations."""
from __future__ import annotations
from typing import Iterable

from .client import PureCloudClient


class UserService:
    """Service for reading platform users."""

    def __init__(self, client: PureCloudClient):
        self.client = client

    def get_me(self, expand: Iterable[str] = ("authorization",)) -> dict:
        """Return the user the current token belongs to.

        Args:
            expand: Extra user sections to expand (e.g. authorization)

        Returns:
            User representation
        """
        params = {"expand": ",".join(expand)} if expand else None
        return self.client.get("/api/v2/users/me", params=params).json()
