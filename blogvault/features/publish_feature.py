from datetime import UTC, datetime
from typing import Any

from blogvault.features.base_feature import RepositoryFeature


class PublishFeature(RepositoryFeature):
    """Stamps ``published_at`` the first time a post is published.

    An explicit ``published_at`` always wins, and an existing one is never
    cleared or moved, whatever status the post goes to afterwards.
    """

    def before_create(self, data: dict[str, Any]) -> dict[str, Any]:
        if data.get("status") == "published" and data.get("published_at") is None:
            data["published_at"] = datetime.now(UTC)
        return data

    def before_update(
        self, data: dict[str, Any], current: dict[str, Any]
    ) -> dict[str, Any]:
        if (
            data.get("status") == "published"
            and "published_at" not in data
            and current.get("published_at") is None
        ):
            data["published_at"] = datetime.now(UTC)
        return data
