"""Base feature interface for repository features"""

from typing import Any


class RepositoryFeature:
    """
    Base class for repository features.

    Features hook into the writes of the shared ``posts`` row (timestamps,
    publish stamping). Satellite and child rows never pass through them.
    """

    def before_create(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Hook called before inserting a post row.

        Args:
            data: Column values about to be inserted

        Returns:
            Modified data dictionary
        """
        return data

    def before_update(
        self, data: dict[str, Any], current: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Hook called before a partial update of a post row.

        Args:
            data: Columns about to be set (only the ones being changed)
            current: The stored row as read at the start of the update

        Returns:
            Modified data dictionary
        """
        return data
