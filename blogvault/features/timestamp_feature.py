"""Timestamp feature for automatic timestamp management"""

from datetime import UTC, datetime
from typing import Any

from blogvault.features.base_feature import RepositoryFeature


class TimestampFeature(RepositoryFeature):
    """
    Populates ``created_at`` and ``updated_at`` on create, and refreshes
    ``updated_at`` on every update.
    """

    @staticmethod
    def _get_current_timestamp() -> datetime:
        """Get current UTC timestamp as a datetime object"""
        return datetime.now(UTC)

    def before_create(self, data: dict[str, Any]) -> dict[str, Any]:
        """Inject created_at and updated_at timestamps"""
        timestamp = self._get_current_timestamp()
        data["created_at"] = timestamp
        data["updated_at"] = timestamp
        return data

    def before_update(
        self, data: dict[str, Any], current: dict[str, Any]
    ) -> dict[str, Any]:
        """Inject updated_at timestamp"""
        data["updated_at"] = self._get_current_timestamp()
        return data
