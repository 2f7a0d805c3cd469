"""
Framework-free service layer.

Each method takes already-decoded request data (query dict, JSON body,
path values) and returns an ``ApiResponse``; a transport only has to send
``status_code`` and ``body``.
"""

from typing import Any

from blogvault.about_me_repository import AboutMeRepository
from blogvault.config import Settings, get_settings
from blogvault.db_context import Database
from blogvault.post_repository import PostRepository
from blogvault.repository import RepositoryConfig
from blogvault.responses import ApiResponse, respond, success


class PostService:
    def __init__(self, repository: PostRepository, settings: Settings | None = None):
        self.repository = repository
        self.settings = settings or get_settings()

    @classmethod
    def from_database(cls, db: Database, settings: Settings | None = None) -> "PostService":
        settings = settings or get_settings()
        config = RepositoryConfig(slug_probe_limit=settings.slug_probe_limit)
        return cls(PostRepository(db, config), settings)

    async def _respond(self, operation, failure_message: str) -> ApiResponse:
        return await respond(
            operation, failure_message, expose_traceback=not self.settings.is_production
        )

    async def list_posts(self, query: dict[str, Any] | None = None) -> ApiResponse:
        async def operation():
            page = await self.repository.list_posts(query or {})
            return success(
                "Posts fetched successfully",
                [post.to_json() for post in page.posts],
                currentPage=page.page,
                totalPages=page.total_pages,
                totalItems=len(page.posts),
                totalCount=page.total_count,
                hasMorePages=page.has_more,
            )

        return await self._respond(operation, "Failed to fetch posts")

    async def get_post(self, id_or_slug: str) -> ApiResponse:
        async def operation():
            post = await self.repository.get(id_or_slug)
            return success("Post fetched successfully", post.to_json())

        return await self._respond(operation, "Failed to fetch post")

    async def create_post(self, body: dict[str, Any]) -> ApiResponse:
        async def operation():
            post_id = await self.repository.create(body)
            return success("Post created successfully", {"id": str(post_id)}, 201)

        return await self._respond(operation, "Failed to create post")

    async def update_post(self, post_id: str, body: dict[str, Any]) -> ApiResponse:
        async def operation():
            updated_id = await self.repository.update(post_id, body)
            return success("Post updated successfully", {"id": str(updated_id)})

        return await self._respond(operation, "Failed to update post")

    async def delete_post(self, post_id: str) -> ApiResponse:
        async def operation():
            deleted_id = await self.repository.delete(post_id)
            return success("Post deleted successfully", {"id": str(deleted_id)})

        return await self._respond(operation, "Failed to delete post")

    async def attach_media(self, post_id: str, items: list[dict[str, Any]]) -> ApiResponse:
        async def operation():
            result = await self.repository.attach_media(post_id, items)
            message = (
                "Images attached successfully"
                if result.persisted
                else "Upload stored; this post type has no image field"
            )
            return success(message, result.to_json())

        return await self._respond(operation, "Failed to attach images")


class AboutMeService:
    def __init__(self, repository: AboutMeRepository, settings: Settings | None = None):
        self.repository = repository
        self.settings = settings or get_settings()

    @classmethod
    def from_database(cls, db: Database, settings: Settings | None = None) -> "AboutMeService":
        return cls(AboutMeRepository(db), settings)

    async def _profile(self, call, message: str, failure_message: str) -> ApiResponse:
        async def operation():
            profile = await call()
            return success(message, profile.to_json())

        return await respond(
            operation, failure_message, expose_traceback=not self.settings.is_production
        )

    async def get(self) -> ApiResponse:
        return await self._profile(
            self.repository.get, "AboutMe fetched successfully", "Failed to fetch About Me"
        )

    async def update(self, body: dict[str, Any]) -> ApiResponse:
        return await self._profile(
            lambda: self.repository.update(body),
            "AboutMe updated successfully",
            "Failed to update About Me",
        )

    async def add_skill(self, skill: str) -> ApiResponse:
        return await self._profile(
            lambda: self.repository.add_skill(skill), "Skill added successfully", "Failed to add skill"
        )

    async def remove_skill(self, skill: str) -> ApiResponse:
        return await self._profile(
            lambda: self.repository.remove_skill(skill),
            "Skill removed successfully",
            "Failed to remove skill",
        )

    async def add_interest(self, interest: str) -> ApiResponse:
        return await self._profile(
            lambda: self.repository.add_interest(interest),
            "Interest added successfully",
            "Failed to add interest",
        )

    async def remove_interest(self, interest: str) -> ApiResponse:
        return await self._profile(
            lambda: self.repository.remove_interest(interest),
            "Interest removed successfully",
            "Failed to remove interest",
        )

    async def add_social(self, social: dict[str, Any]) -> ApiResponse:
        return await self._profile(
            lambda: self.repository.add_social(social),
            "Social added successfully",
            "Failed to add social",
        )

    async def remove_social(self, label: str) -> ApiResponse:
        return await self._profile(
            lambda: self.repository.remove_social(label),
            "Social removed successfully",
            "Failed to remove social",
        )
