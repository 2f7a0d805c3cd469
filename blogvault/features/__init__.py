"""Repository features package"""

from blogvault.features.base_feature import RepositoryFeature
from blogvault.features.publish_feature import PublishFeature
from blogvault.features.timestamp_feature import TimestampFeature

__all__ = ["RepositoryFeature", "TimestampFeature", "PublishFeature"]
