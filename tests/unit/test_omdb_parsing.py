"""Unit tests for OMDb payload parsing."""

from feelflick.integrations.omdb import parse_omdb_ratings
from feelflick.recommender.quality import ExternalRatings


def _payload(**overrides):
    data = {
        "Title": "Alien",
        "imdbRating": "8.5",
        "imdbVotes": "1,012,345",
        "Ratings": [
            {"Source": "Internet Movie Database", "Value": "8.5/10"},
            {"Source": "Rotten Tomatoes", "Value": "93%"},
            {"Source": "Metacritic", "Value": "89/100"},
        ],
        "Response": "True",
    }
    data.update(overrides)
    return data


class TestParseOmdbRatings:
    def test_all_sources(self):
        assert parse_omdb_ratings(_payload()) == ExternalRatings(
            imdb_rating=8.5,
            imdb_votes=1012345,
            rt_rating="93%",
            metacritic_score=89,
        )

    def test_not_available_values(self):
        ratings = parse_omdb_ratings(_payload(imdbRating="N/A", imdbVotes="N/A", Ratings=[]))
        assert ratings.is_empty()
        assert ratings.imdb_votes is None

    def test_missing_ratings_list(self):
        payload = _payload()
        del payload["Ratings"]
        ratings = parse_omdb_ratings(payload)
        assert ratings.rt_rating is None
        assert ratings.metacritic_score is None
        assert ratings.imdb_rating == 8.5

    def test_garbage_numbers(self):
        ratings = parse_omdb_ratings(_payload(imdbRating="great", imdbVotes="lots"))
        assert ratings.imdb_rating is None
        assert ratings.imdb_votes is None
