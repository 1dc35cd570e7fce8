"""Repositories for series, series metadata, aggregations and thumbnails."""

from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..db.models import utcnow
from ..db.repositories import BaseRepository, chunked
from ..errors import NotFoundError
from .models import BookMetadataAggregation, Series, SeriesMetadata, SeriesThumbnail


class SeriesRepository(BaseRepository):
    """Storage for series."""

    def insert(self, series: Series, session: Optional[Session] = None) -> Series:
        return self._add_all([series], session)[0]

    def find_by_id_or_none(
        self, series_id: str, session: Optional[Session] = None
    ) -> Optional[Series]:
        return self._run(lambda s: s.get(Series, series_id), session)

    def find_by_id(self, series_id: str, session: Optional[Session] = None) -> Series:
        series = self.find_by_id_or_none(series_id, session)
        if series is None:
            raise NotFoundError("Series", series_id)
        return series

    def find_all_by_ids(
        self, series_ids: list[str], session: Optional[Session] = None
    ) -> list[Series]:
        def _get(s: Session) -> list[Series]:
            rows = []
            for ids in chunked(series_ids):
                rows.extend(s.execute(select(Series).where(Series.id.in_(ids))).scalars().all())
            return rows

        return self._run(_get, session)

    def find_all(
        self,
        library_id: Optional[str] = None,
        include_deleted: bool = False,
        session: Optional[Session] = None,
    ) -> list[Series]:
        """List series by name; soft-deleted series are excluded by default."""
        stmt = select(Series)
        if library_id is not None:
            stmt = stmt.where(Series.library_id == library_id)
        if not include_deleted:
            stmt = stmt.where(Series.deleted_date.is_(None))
        stmt = stmt.order_by(Series.name, Series.id)
        return self._run(lambda s: list(s.execute(stmt).scalars().all()), session)

    def update(self, series: list[Series], session: Optional[Session] = None) -> list[Series]:
        return self._add_all(series, session)

    def lock(self, series_id: str, session: Session) -> bool:
        """Take the write lock on a series row for the rest of the transaction.

        Touches ``last_modified`` so the database holds a write lock on the
        row (or, on SQLite, the whole database) until commit. Concurrent
        renumbering or thumbnail changes on the same series queue up behind
        it instead of racing.

        Returns:
            False if the series does not exist
        """
        stmt = update(Series).where(Series.id == series_id).values(last_modified=utcnow())
        return session.execute(stmt, execution_options={"synchronize_session": False}).rowcount > 0

    def delete(self, series_ids: list[str], session: Optional[Session] = None) -> int:
        def _delete(s: Session) -> int:
            count = 0
            for ids in chunked(series_ids):
                stmt = delete(Series).where(Series.id.in_(ids))
                count += s.execute(stmt, execution_options={"synchronize_session": False}).rowcount
            return count

        return self._run(_delete, session)


class SeriesMetadataRepository(BaseRepository):
    """Storage for series metadata."""

    def insert(
        self, metadata: SeriesMetadata, session: Optional[Session] = None
    ) -> SeriesMetadata:
        return self._add_all([metadata], session)[0]

    def find_by_id_or_none(
        self, series_id: str, session: Optional[Session] = None
    ) -> Optional[SeriesMetadata]:
        return self._run(lambda s: s.get(SeriesMetadata, series_id), session)

    def delete(self, series_ids: list[str], session: Optional[Session] = None) -> int:
        def _delete(s: Session) -> int:
            count = 0
            for ids in chunked(series_ids):
                stmt = delete(SeriesMetadata).where(SeriesMetadata.series_id.in_(ids))
                count += s.execute(stmt, execution_options={"synchronize_session": False}).rowcount
            return count

        return self._run(_delete, session)


class BookMetadataAggregationRepository(BaseRepository):
    """Storage for per-series book metadata rollups."""

    def insert(
        self, aggregation: BookMetadataAggregation, session: Optional[Session] = None
    ) -> BookMetadataAggregation:
        return self._add_all([aggregation], session)[0]

    def find_by_id_or_none(
        self, series_id: str, session: Optional[Session] = None
    ) -> Optional[BookMetadataAggregation]:
        return self._run(lambda s: s.get(BookMetadataAggregation, series_id), session)

    def delete(self, series_ids: list[str], session: Optional[Session] = None) -> int:
        def _delete(s: Session) -> int:
            count = 0
            for ids in chunked(series_ids):
                stmt = delete(BookMetadataAggregation).where(
                    BookMetadataAggregation.series_id.in_(ids)
                )
                count += s.execute(stmt, execution_options={"synchronize_session": False}).rowcount
            return count

        return self._run(_delete, session)


class SeriesThumbnailRepository(BaseRepository):
    """Storage for series thumbnails."""

    def insert(
        self, thumbnail: SeriesThumbnail, session: Optional[Session] = None
    ) -> SeriesThumbnail:
        return self._add_all([thumbnail], session)[0]

    def find_by_id_or_none(
        self, thumbnail_id: str, session: Optional[Session] = None
    ) -> Optional[SeriesThumbnail]:
        return self._run(lambda s: s.get(SeriesThumbnail, thumbnail_id), session)

    def find_all_by_series_id(
        self, series_id: str, session: Optional[Session] = None
    ) -> list[SeriesThumbnail]:
        """Get all thumbnails of a series, oldest first."""
        stmt = (
            select(SeriesThumbnail)
            .where(SeriesThumbnail.series_id == series_id)
            .order_by(SeriesThumbnail.created_at, SeriesThumbnail.id)
        )
        return self._run(lambda s: list(s.execute(stmt).scalars().all()), session)

    def find_selected_by_series_id_or_none(
        self, series_id: str, session: Optional[Session] = None
    ) -> Optional[SeriesThumbnail]:
        stmt = (
            select(SeriesThumbnail)
            .where(SeriesThumbnail.series_id == series_id, SeriesThumbnail.selected == True)  # noqa: E712
            .order_by(SeriesThumbnail.created_at, SeriesThumbnail.id)
            .limit(1)
        )
        return self._run(lambda s: s.execute(stmt).scalar_one_or_none(), session)

    def mark_selected(self, thumbnail: SeriesThumbnail, session: Optional[Session] = None) -> None:
        """Make a thumbnail the only selected one of its series."""

        def _mark(s: Session) -> None:
            s.execute(
                update(SeriesThumbnail)
                .where(
                    SeriesThumbnail.series_id == thumbnail.series_id,
                    SeriesThumbnail.id != thumbnail.id,
                )
                .values(selected=False)
            )
            s.execute(
                update(SeriesThumbnail)
                .where(SeriesThumbnail.id == thumbnail.id)
                .values(selected=True)
            )

        self._run(_mark, session)

    def delete(self, thumbnail_id: str, session: Optional[Session] = None) -> int:
        stmt = delete(SeriesThumbnail).where(SeriesThumbnail.id == thumbnail_id)
        return self._run(lambda s: s.execute(stmt).rowcount, session)

    def delete_by_series_ids(
        self, series_ids: list[str], session: Optional[Session] = None
    ) -> int:
        def _delete(s: Session) -> int:
            count = 0
            for ids in chunked(series_ids):
                stmt = delete(SeriesThumbnail).where(SeriesThumbnail.series_id.in_(ids))
                count += s.execute(stmt, execution_options={"synchronize_session": False}).rowcount
            return count

        return self._run(_delete, session)
