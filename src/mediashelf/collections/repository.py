"""Repository for collections and their series membership."""

from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from ..db.models import utcnow
from ..db.repositories import BaseRepository, chunked
from .models import Collection, CollectionSeries


class CollectionRepository(BaseRepository):
    """Storage for collections."""

    def insert(self, collection: Collection, session: Optional[Session] = None) -> Collection:
        return self._add_all([collection], session)[0]

    def add_series(
        self, collection_id: str, series_id: str, session: Optional[Session] = None
    ) -> CollectionSeries:
        """Append a series at the end of a collection."""

        def _add(s: Session) -> CollectionSeries:
            last = s.execute(
                select(func.max(CollectionSeries.number)).where(
                    CollectionSeries.collection_id == collection_id
                )
            ).scalar()
            membership = CollectionSeries(
                collection_id=collection_id,
                series_id=series_id,
                number=(last or 0) + 1,
            )
            s.add(membership)
            s.flush()
            return membership

        return self._run(_add, session)

    def find_series_ids(self, collection_id: str, session: Optional[Session] = None) -> list[str]:
        stmt = (
            select(CollectionSeries.series_id)
            .where(CollectionSeries.collection_id == collection_id)
            .order_by(CollectionSeries.number)
        )
        return self._run(lambda s: list(s.execute(stmt).scalars().all()), session)

    def find_all_by_series_id(
        self, series_id: str, session: Optional[Session] = None
    ) -> list[Collection]:
        """Get the collections a series belongs to."""
        stmt = (
            select(Collection)
            .join(CollectionSeries, CollectionSeries.collection_id == Collection.id)
            .where(CollectionSeries.series_id == series_id)
            .order_by(Collection.name)
        )
        return self._run(lambda s: list(s.execute(stmt).scalars().all()), session)

    def remove_series_from_all(
        self, series_ids: list[str], session: Optional[Session] = None
    ) -> int:
        """Drop the series from every collection containing them."""

        def _remove(s: Session) -> int:
            count = 0
            for ids in chunked(series_ids):
                affected = select(CollectionSeries.collection_id).where(
                    CollectionSeries.series_id.in_(ids)
                )
                s.execute(
                    update(Collection)
                    .where(Collection.id.in_(affected))
                    .values(last_modified=utcnow()),
                    execution_options={"synchronize_session": False},
                )
                stmt = delete(CollectionSeries).where(CollectionSeries.series_id.in_(ids))
                count += s.execute(stmt, execution_options={"synchronize_session": False}).rowcount
            return count

        return self._run(_remove, session)
