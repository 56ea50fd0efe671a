"""
Read-only queries against the business directory tables.

The directory itself (browse, favorites, recommendations, onboarding) is
managed elsewhere; the assistant only needs the handful of reads below.
"""

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from collective_chat.infra.database import Database
from collective_chat.models.domain import Business, Category, Favorite, Profile
from collective_chat.utils.errors import PersistenceError


@dataclass(frozen=True)
class ProfileSummary:
    full_name: Optional[str]
    neighborhood_id: Optional[str]
    neighborhood_name: Optional[str]


@dataclass(frozen=True)
class BusinessSummary:
    id: str
    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class CategorySummary:
    id: str
    name: str
    emoji: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.emoji} {self.name}" if self.emoji else self.name


class DirectoryStore:
    """Directory lookups used by the classifier and the context builder"""

    def __init__(self, database: Database):
        self.database = database

    def owns_business(self, user_id: str) -> bool:
        """True if the user owns at least one business record."""
        stmt = select(Business.id).where(Business.user_id == user_id).limit(1)
        try:
            with self.database.session_scope() as session:
                return session.scalars(stmt).first() is not None
        except SQLAlchemyError as e:
            raise PersistenceError(f"owns_business failed: {e}") from e

    def get_profile(self, user_id: str) -> Optional[ProfileSummary]:
        stmt = (
            select(Profile)
            .options(joinedload(Profile.neighborhood))
            .where(Profile.id == user_id)
        )
        try:
            with self.database.session_scope() as session:
                profile = session.scalars(stmt).first()
                if profile is None:
                    return None
                neighborhood = profile.neighborhood
                return ProfileSummary(
                    full_name=profile.full_name,
                    neighborhood_id=neighborhood.id if neighborhood else None,
                    neighborhood_name=neighborhood.name if neighborhood else None,
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"get_profile failed: {e}") from e

    def recent_favorites(self, user_id: str, limit: int) -> List[BusinessSummary]:
        """Most recently favorited businesses, newest first."""
        stmt = (
            select(Favorite)
            .options(joinedload(Favorite.business))
            .where(Favorite.user_id == user_id)
            .order_by(Favorite.created_at.desc())
            .limit(limit)
        )
        try:
            with self.database.session_scope() as session:
                return [
                    BusinessSummary(
                        id=fav.business.id,
                        name=fav.business.name,
                        description=fav.business.description,
                    )
                    for fav in session.scalars(stmt)
                    if fav.business is not None
                ]
        except SQLAlchemyError as e:
            raise PersistenceError(f"recent_favorites failed: {e}") from e

    def list_categories(self, limit: int) -> List[CategorySummary]:
        stmt = select(Category).order_by(Category.name).limit(limit)
        try:
            with self.database.session_scope() as session:
                return [
                    CategorySummary(id=c.id, name=c.name, emoji=c.emoji)
                    for c in session.scalars(stmt)
                ]
        except SQLAlchemyError as e:
            raise PersistenceError(f"list_categories failed: {e}") from e
