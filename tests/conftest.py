"""
Global test configuration for mediaimport.

This module provides global pytest configuration and fixtures: a file backed
SQLite library per test, repositories over it, and factories for imports and
incoming items.
"""

from __future__ import annotations

from datetime import date

import pytest

from mediaimport.domain.items import MediaItem
from mediaimport.domain.media_import import MediaImport, MediaImportSettings, MediaImportSource
from mediaimport.infra import db as db_module
from mediaimport.infra import uow
from mediaimport.infra.library_repository import LibraryRepository
from mediaimport.infra.logging import configure_logging
from mediaimport.shared.types import MediaType

SOURCE = "upnp://server-1/"


@pytest.fixture(scope="session", autouse=True)
def _configure_logging():
    """Route structured events through stdlib logging so pytest captures them."""
    configure_logging("DEBUG")


@pytest.fixture
def engine(tmp_path):
    """A fresh library database for every test."""
    engine = db_module.get_engine(db_url=f"sqlite:///{tmp_path / 'library.db'}")
    db_module.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return db_module.get_sessionmaker(bind=engine)


@pytest.fixture(autouse=True)
def _force_test_db(monkeypatch, session_factory):
    """Point the module-level session factory at the test database."""
    monkeypatch.setattr(db_module, "SessionLocal", session_factory)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def repository(db):
    return LibraryRepository(db)


@pytest.fixture
def library(session_factory):
    """
    Run a callable against a repository in its own committed unit of work.

    Usage:
        movies = library(lambda repo: repo.get_items(ItemFilter(MediaType.MOVIE)))
    """

    def run(operation):
        with uow.session_scope(session_factory) as session:
            return operation(LibraryRepository(session))

    return run


@pytest.fixture
def make_import():
    def factory(*media_types: MediaType, source: str = SOURCE, **settings) -> MediaImport:
        media_import = MediaImport(
            media_types=media_types or (MediaType.MOVIE,),
            source=MediaImportSource(identifier=source, friendly_name="Test server"),
            settings=MediaImportSettings(),
        )
        for name, value in settings.items():
            setattr(media_import.settings, name, value)
        return media_import

    return factory


@pytest.fixture
def movie():
    def factory(title: str, **fields) -> MediaItem:
        fields.setdefault("path", f"{SOURCE}movies/{title}.mkv")
        fields.setdefault("year", 2001)
        return MediaItem(media_type=MediaType.MOVIE, title=title, **fields)

    return factory


@pytest.fixture
def tvshow():
    def factory(title: str, **fields) -> MediaItem:
        fields.setdefault("path", f"{SOURCE}shows/{title}/")
        return MediaItem(media_type=MediaType.TVSHOW, title=title, show_title=title, **fields)

    return factory


@pytest.fixture
def season():
    def factory(show_title: str, number: int, **fields) -> MediaItem:
        fields.setdefault("path", f"{SOURCE}shows/{show_title}/Season {number}/")
        return MediaItem(
            media_type=MediaType.SEASON,
            title=f"Season {number}",
            show_title=show_title,
            season=number,
            **fields,
        )

    return factory


@pytest.fixture
def episode():
    def factory(show_title: str, number: int, episode_number: int, **fields) -> MediaItem:
        fields.setdefault(
            "path",
            f"{SOURCE}shows/{show_title}/Season {number}/S{number:02d}E{episode_number:02d}.mkv",
        )
        fields.setdefault("aired", date(2020, 1, episode_number))
        return MediaItem(
            media_type=MediaType.EPISODE,
            title=f"Episode {episode_number}",
            show_title=show_title,
            season=number,
            episode=episode_number,
            **fields,
        )

    return factory
