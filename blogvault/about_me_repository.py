import logging
from typing import Any
from uuid import UUID, uuid4

from blogvault.db_context import transactional
from blogvault.entities import AboutMe, Social
from blogvault.errors import NotFoundError
from blogvault.payloads import (
    AboutMeUpdate,
    SocialInput,
    validate_about_me,
    validate_social,
)
from blogvault.query_builder import QueryBuilder
from blogvault.repository import Repository

logger = logging.getLogger(__name__)

PROFILE_TABLE = "about_me"

# list name -> (table, value columns)
PROFILE_LISTS: dict[str, tuple[str, tuple[str, ...]]] = {
    "skills": ("about_me_skills", ("skill",)),
    "interests": ("about_me_interests", ("interest",)),
    "socials": ("about_me_socials", ("icon", "href", "label")),
}

_NOT_FOUND = "About Me not found"


class AboutMeRepository(Repository):
    """The single about-me profile and its three ordered lists"""

    @transactional()
    async def get(self) -> AboutMe:
        return await self._load(await self._profile_id())

    @transactional()
    async def update(self, data: AboutMeUpdate | dict[str, Any]) -> AboutMe:
        """Replace the profile; creates it on first use"""
        if not isinstance(data, AboutMeUpdate):
            data = validate_about_me(data)

        values = {
            "name": data.name,
            "title": data.title,
            "location": data.location,
            "bio": data.bio,
            "email": data.email,
            "image_url": data.image,
            "quote": data.quote,
        }

        profile_id = await self._find_profile_id()
        if profile_id is None:
            profile_id = uuid4()
            await self._insert(
                PROFILE_TABLE, self._apply_create_features({"id": profile_id, **values})
            )
            logger.info("Created about-me profile %s", profile_id)
        else:
            await self._update(
                PROFILE_TABLE, self._apply_update_features(values, {}), profile_id
            )

        for name, (table, columns) in PROFILE_LISTS.items():
            entries = getattr(data, name)
            if entries is None:
                continue
            await self._delete(table, profile_id, key_column="about_me_id")
            rows = [
                [profile_id, *self._list_values(name, entry), position]
                for position, entry in enumerate(entries, start=1)
            ]
            await self._insert_many(table, ["about_me_id", *columns, "sort_order"], rows)

        return await self._load(profile_id)

    async def add_skill(self, skill: str) -> AboutMe:
        return await self._append("skills", skill)

    async def remove_skill(self, skill: str) -> AboutMe:
        return await self._remove("skills", "skill", skill)

    async def add_interest(self, interest: str) -> AboutMe:
        return await self._append("interests", interest)

    async def remove_interest(self, interest: str) -> AboutMe:
        return await self._remove("interests", "interest", interest)

    async def add_social(self, social: SocialInput | dict[str, Any]) -> AboutMe:
        if not isinstance(social, SocialInput):
            social = validate_social(social)
        return await self._append("socials", social)

    async def remove_social(self, label: str) -> AboutMe:
        return await self._remove("socials", "label", label)

    @staticmethod
    def _list_values(name: str, entry: Any) -> list[Any]:
        if name == "socials":
            return [entry.icon, entry.href, entry.label]
        return [entry]

    @transactional()
    async def _append(self, name: str, entry: Any) -> AboutMe:
        """Add an entry after the list's current last position"""
        profile_id = await self._profile_id()
        table, columns = PROFILE_LISTS[name]
        query, params = (
            QueryBuilder(table)
            .select("COALESCE(MAX(sort_order), 0) + 1")
            .where("about_me_id", profile_id)
            .build()
        )
        position = await self.db_ops.fetch_value(query, params)
        row = {"about_me_id": profile_id, **dict(zip(columns, self._list_values(name, entry)))}
        await self._insert(table, {**row, "sort_order": position})
        return await self._load(profile_id)

    @transactional()
    async def _remove(self, name: str, column: str, value: str) -> AboutMe:
        profile_id = await self._profile_id()
        table, _ = PROFILE_LISTS[name]
        await self.db_ops.execute_query(
            f"DELETE FROM {table} WHERE about_me_id = $1 AND {column} = $2",
            [profile_id, value],
        )
        return await self._load(profile_id)

    async def _find_profile_id(self) -> UUID | None:
        query, params = (
            QueryBuilder(PROFILE_TABLE).select("id").order_by("created_at").limit(1).build()
        )
        return await self.db_ops.fetch_value(query, params)

    async def _profile_id(self) -> UUID:
        profile_id = await self._find_profile_id()
        if profile_id is None:
            raise NotFoundError(_NOT_FOUND, summary=None)
        return profile_id

    async def _load(self, profile_id: UUID) -> AboutMe:
        query, params = QueryBuilder(PROFILE_TABLE).where("id", profile_id).build()
        row = await self.db_ops.fetch_one(query, params)
        if row is None:
            raise NotFoundError(_NOT_FOUND, summary=None)

        lists: dict[str, list[Any]] = {}
        for name, (table, columns) in PROFILE_LISTS.items():
            query, params = (
                QueryBuilder(table)
                .select(*columns)
                .where("about_me_id", profile_id)
                .order_by("sort_order")
                .build()
            )
            rows = await self.db_ops.fetch_all(query, params)
            if name == "socials":
                lists[name] = [Social(icon=r["icon"], href=r["href"], label=r["label"]) for r in rows]
            else:
                lists[name] = [r[columns[0]] for r in rows]

        return AboutMe(
            id=row["id"],
            name=row["name"],
            title=row["title"],
            location=row["location"],
            bio=row["bio"],
            email=row["email"],
            image=row["image_url"],
            quote=row["quote"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            **lists,
        )
