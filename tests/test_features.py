"""Tests for the post row feature hooks"""

from datetime import UTC, datetime

from blogvault.features import PublishFeature, RepositoryFeature, TimestampFeature
from blogvault.repository import RepositoryConfig

EARLIER = datetime(2024, 1, 1, tzinfo=UTC)


class TestTimestampFeature:
    def test_create_sets_both_timestamps(self):
        data = TimestampFeature().before_create({"title": "T"})

        assert data["created_at"] == data["updated_at"]
        assert data["created_at"].tzinfo is not None

    def test_update_only_touches_updated_at(self):
        data = TimestampFeature().before_update({"title": "T"}, {"published_at": None})

        assert "created_at" not in data
        assert data["updated_at"] > EARLIER


class TestPublishFeature:
    def test_published_create_is_stamped(self):
        data = PublishFeature().before_create({"status": "published", "published_at": None})
        assert data["published_at"] is not None

    def test_explicit_published_at_wins(self):
        data = PublishFeature().before_create({"status": "published", "published_at": EARLIER})
        assert data["published_at"] == EARLIER

    def test_draft_create_is_not_stamped(self):
        data = PublishFeature().before_create({"status": "draft", "published_at": None})
        assert data["published_at"] is None

    def test_first_publish_on_update_is_stamped(self):
        data = PublishFeature().before_update({"status": "published"}, {"published_at": None})
        assert data["published_at"] is not None

    def test_republish_keeps_original_stamp(self):
        data = PublishFeature().before_update({"status": "published"}, {"published_at": EARLIER})
        assert "published_at" not in data

    def test_unpublishing_never_clears_the_stamp(self):
        data = PublishFeature().before_update({"status": "draft"}, {"published_at": EARLIER})
        assert data == {"status": "draft"}


def test_base_feature_is_a_no_op():
    feature = RepositoryFeature()
    data = {"title": "T"}

    assert feature.before_create(data) is data
    assert feature.before_update(data, {}) is data


def test_default_features_order():
    features = RepositoryConfig().features

    assert [type(feature) for feature in features] == [TimestampFeature, PublishFeature]
