"""Tests for core domain models."""

from datetime import date, datetime, timezone

from filmorate.api.schemas import FilmRequest, ReviewRequest
from filmorate.models.entities import Classification, FeedEvent, Film, Genre, Person, Review
from filmorate.models.enums import (
    TAG_KINDS,
    SINGLE_VALUED_KINDS,
    FeedEventType,
    FeedOperation,
    RelationKind,
    VotePolarity,
)


class TestEnums:
    def test_tag_kinds(self):
        assert TAG_KINDS == {RelationKind.GENRE, RelationKind.CLASSIFICATION, RelationKind.DIRECTOR}
        assert SINGLE_VALUED_KINDS <= TAG_KINDS

    def test_vote_polarity_values(self):
        assert VotePolarity.LIKE.value == 1
        assert VotePolarity.DISLIKE.value == -1
        assert VotePolarity(0) is VotePolarity.NONE


class TestWireFormat:
    def test_film_camel_case(self):
        film = Film(
            id=1,
            name="Alien",
            release_date=date(1979, 5, 25),
            duration=117,
            mpa=Classification(id=4, name="R"),
            genres=[Genre(id=2, name="Horror")],
        )
        data = film.model_dump(by_alias=True, mode="json")
        assert data["releaseDate"] == "1979-05-25"
        assert data["mpa"] == {"id": 4, "name": "R"}
        assert data["directors"] == []
        assert data["likes"] == 0

    def test_review_aliases(self):
        review = Review(review_id=3, content="ok", is_positive=True, user_id=1, film_id=2)
        data = review.model_dump(by_alias=True)
        assert data["reviewId"] == 3
        assert data["isPositive"] is True
        assert data["useful"] == 0

    def test_feed_timestamp_is_epoch_millis(self):
        event = FeedEvent(
            event_id=1,
            user_id=1,
            entity_id=2,
            event_type=FeedEventType.LIKE,
            operation=FeedOperation.ADD,
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        data = event.model_dump(by_alias=True, mode="json")
        assert data["timestamp"] == 1704067200000
        assert data["eventType"] == "LIKE"

    def test_naive_timestamp_treated_as_utc(self):
        event = FeedEvent(
            event_id=1, user_id=1, entity_id=2,
            event_type=FeedEventType.FRIEND, operation=FeedOperation.REMOVE,
            timestamp=datetime(2024, 1, 1),
        )
        assert event.model_dump(mode="json")["timestamp"] == 1704067200000

    def test_person_from_attributes(self):
        class Row:
            id = 5
            email = "a@b.c"
            login = "abc"
            name = "A"
            birthday = None

        assert Person.model_validate(Row()).login == "abc"


class TestRequests:
    def test_film_request_ids(self):
        req = FilmRequest.model_validate({
            "name": "Alien",
            "releaseDate": "1979-05-25",
            "duration": 117,
            "mpa": {"id": 4},
            "genres": [{"id": 2}, {"id": 1, "name": "Comedy"}],
        })
        assert req.mpa_id == 4
        assert req.genre_ids == [2, 1]
        assert req.director_ids == []

    def test_film_request_without_mpa(self):
        req = FilmRequest.model_validate({"name": "Alien"})
        assert req.mpa_id is None
        assert req.genres == []

    def test_review_request_aliases(self):
        req = ReviewRequest.model_validate({"content": "x", "isPositive": False, "userId": 1, "filmId": 2})
        assert (req.user_id, req.film_id, req.is_positive) == (1, 2, False)
