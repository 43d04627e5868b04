"""Durable storage of generated study materials."""

import asyncio
import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import ConfigurationError
from app.core.exceptions import PersistenceError
from app.models.db_models import Base
from app.models.db_models import StudyMaterial
from app.models.material_models import GeneratedMaterial
from app.models.material_models import MaterialType

logger = logging.getLogger(__name__)


class ResultStore:
    """Appends one ``study_materials`` row per successful generation.

    Every write uses its own session, so concurrent requests only ever issue
    independent single-row inserts.
    """

    def __init__(self, database_url: str):
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
        self._session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def init_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error("Could not initialise database schema: %s", e, exc_info=True)
            raise ConfigurationError("Database is not reachable or schema could not be created.") from e
        logger.info("Database schema ready at %s", self.engine.url.render_as_string(hide_password=True))

    def dispose(self) -> None:
        self.engine.dispose()

    def _insert(self, filename: str, material_type: MaterialType, generated_content: str) -> GeneratedMaterial:
        session: Session = self._session_factory()
        try:
            row = StudyMaterial(
                filename=filename,
                material_type=material_type.value,
                generated_content=generated_content,
            )
            session.add(row)
            session.commit()
            # created_at is assigned by the database
            session.refresh(row)
            return GeneratedMaterial.model_validate(row)
        except SQLAlchemyError:
            session.rollback()
            raise
        finally:
            session.close()

    async def save(
        self,
        filename: str,
        material_type: MaterialType,
        generated_content: str,
        request_id: str = "-",
    ) -> GeneratedMaterial:
        """Persist one generated material and return it with its assigned id.

        ``filename`` is the client's original upload name, not the transient on-disk name.
        """
        try:
            material = await asyncio.to_thread(self._insert, filename, material_type, generated_content)
        except SQLAlchemyError as e:
            logger.error("[%s] Failed to persist generated material for %s: %s", request_id, filename, e, exc_info=True)
            raise PersistenceError("Could not save the generated material.") from e

        logger.info("[%s] Saved generated material, ID: %d", request_id, material.id)
        return material

    def _select(self, material_id: int) -> GeneratedMaterial | None:
        with self._session_factory() as session:
            row = session.get(StudyMaterial, material_id)
            return GeneratedMaterial.model_validate(row) if row is not None else None

    async def get(self, material_id: int) -> GeneratedMaterial | None:
        try:
            return await asyncio.to_thread(self._select, material_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load generated material %d: %s", material_id, e, exc_info=True)
            raise PersistenceError("Could not load the generated material.") from e
