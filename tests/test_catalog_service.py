"""
Unit tests for CatalogService

Covers deduplication of provider and manual items and the normalization of
empty fields before a Thing is stored.
"""

from uuid import uuid4
from unittest.mock import patch
from sqlalchemy.exc import OperationalError
from sqlmodel import Session
import pytest

from config.database import engine, create_db_and_tables
from models.thing import Thing, RawItem, ThingCategory, ThingSource
from services.catalog.catalog_service import CatalogService, ThingNotFoundError, identity_key_for
from tests.factories import new_user_id


def setup_module():
    create_db_and_tables()


def make_book(isbn: str, source_id: str = None, title: str = "Middlemarch") -> RawItem:
    return RawItem(
        title=title,
        category=ThingCategory.BOOK,
        source=ThingSource.GOOGLE_BOOKS,
        source_id=source_id or uuid4().hex,
        details={"isbn": isbn, "author": "George Eliot"},
    )


def test_identity_key_uses_provider_field():
    assert identity_key_for(make_book("9780141439549")) == "isbn:9780141439549"

    manual = RawItem(title="Grandma's soup", category=ThingCategory.MANUAL)
    assert identity_key_for(manual) is None

    film = RawItem(
        title="Heat",
        category=ThingCategory.FILM,
        source=ThingSource.TMDB,
        source_id="949",
        details={"tmdb_id": "movie/949"},
    )
    assert identity_key_for(film) == "tmdb_id:movie/949"


def test_same_isbn_resolves_to_one_thing():
    isbn = str(uuid4().int)[:13]
    service = CatalogService(providers=[])

    with Session(engine) as session:
        first = service.resolve_thing(session, make_book(isbn), new_user_id())
        # different volume id, same ISBN
        second = service.resolve_thing(session, make_book(isbn), new_user_id())

        assert first == second


def test_source_id_fallback_when_identity_missing():
    source_id = uuid4().hex
    service = CatalogService(providers=[])

    with Session(engine) as session:
        first = service.resolve_thing(
            session,
            RawItem(title="Untitled", category=ThingCategory.BOOK, source=ThingSource.GOOGLE_BOOKS, source_id=source_id),
            new_user_id(),
        )
        second = service.resolve_thing(
            session,
            RawItem(title="Untitled", category=ThingCategory.BOOK, source=ThingSource.GOOGLE_BOOKS, source_id=source_id),
            new_user_id(),
        )

        assert first == second


def test_manual_items_match_on_exact_title_and_category():
    title = f"Corner taqueria {uuid4()}"
    service = CatalogService(providers=[])

    with Session(engine) as session:
        first = service.resolve_thing(session, RawItem(title=title, category=ThingCategory.PLACE), new_user_id())
        again = service.resolve_thing(session, RawItem(title=f"  {title} ", category=ThingCategory.PLACE), new_user_id())
        other_category = service.resolve_thing(session, RawItem(title=title, category=ThingCategory.BOOK), new_user_id())
        other_case = service.resolve_thing(session, RawItem(title=title.upper(), category=ThingCategory.PLACE), new_user_id())

        assert first == again
        assert first != other_category
        assert first != other_case


def test_empty_fields_are_not_persisted():
    service = CatalogService(providers=[])
    user_id = new_user_id()

    with Session(engine) as session:
        thing_id = service.resolve_thing(
            session,
            RawItem(
                title=f"Sparse {uuid4()}",
                category=ThingCategory.MANUAL,
                description="   ",
                image=None,
                details={"author": None, "nested": {"empty": ""}, "year": 1999},
            ),
            user_id,
        )

        thing = session.get(Thing, thing_id)
        assert thing.description is None
        assert thing.image is None
        assert thing.details == {"year": 1999}
        assert thing.created_by == user_id
        assert thing.source == ThingSource.MANUAL.value


def test_blank_title_rejected():
    with Session(engine) as session:
        with pytest.raises(ValueError):
            CatalogService(providers=[]).resolve_thing(
                session, RawItem(title="  ", category=ThingCategory.MANUAL), new_user_id()
            )


def test_lookup_failure_falls_through_to_create():
    service = CatalogService(providers=[])
    isbn = str(uuid4().int)[:13]

    with Session(engine) as session:
        original_exec = session.exec
        calls = {"count": 0}

        def flaky_exec(statement, *args, **kwargs):
            calls["count"] += 1
            if calls["count"] == 1:
                raise OperationalError("SELECT", {}, Exception("database is locked"))
            return original_exec(statement, *args, **kwargs)

        with patch.object(session, "exec", side_effect=flaky_exec):
            thing_id = service.resolve_thing(session, make_book(isbn), new_user_id())

        assert session.get(Thing, thing_id) is not None


def test_get_thing_missing_raises():
    with Session(engine) as session:
        with pytest.raises(ThingNotFoundError):
            CatalogService(providers=[]).get_thing(session, uuid4())


def test_get_things_returns_mapping():
    service = CatalogService(providers=[])

    with Session(engine) as session:
        first = service.resolve_thing(session, make_book(str(uuid4().int)[:13]), new_user_id())
        second = service.resolve_thing(session, make_book(str(uuid4().int)[:13]), new_user_id())

        things = service.get_things(session, [first, second, uuid4()])
        assert set(things.keys()) == {first, second}


class StubProvider:
    def __init__(self, candidates):
        self.candidates = candidates

    def search(self, query):
        return self.candidates


def test_universal_search_hides_candidates_already_in_catalog():
    isbn = str(uuid4().int)[:13]
    title = f"Searchable {uuid4().hex[:8]}"
    known = make_book(isbn, title=title)
    fresh = make_book(str(uuid4().int)[:13], title=f"{title} volume two")

    with Session(engine) as session:
        CatalogService(providers=[]).resolve_thing(session, known, new_user_id())

        results = CatalogService(providers=[StubProvider([known, fresh])]).universal_search(session, title)

        assert [thing.title for thing in results["things"]] == [title]
        assert results["candidates"] == [fresh]
