import math

import pytest

from bookswap.book import Book
from bookswap.matching import (
    Candidate, EARTH_RADIUS_KM, annotate_candidate, distance_between, haversine_km,
    is_double_match, is_wishlist_match, match_score, rank_candidates, titles_match,
)
from bookswap.profile import Profile


def reference_haversine(lat1, lon1, lat2, lon2):
    # asin biçimi; atan2 biçimiyle aynı sonucu vermeli
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dp, dl = math.radians(lat2 - lat1), math.radians(lon2 - lon1)
    h = math.sin(dp / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * 6371.0 * math.asin(math.sqrt(h))


def _candidate(title, distance=None, wishlist=False, double=False, owner="owner"):
    return Candidate(book=Book(title, "Author", owner), distance_km=distance,
                     is_wishlist_match=wishlist, is_double_match=double)


# ------------------------- distance ------------------------- #
@pytest.mark.parametrize("lat,lon", [(0, 0), (32.31, 34.87), (-90, 180), (51.5, -0.12)])
def test_distance_to_self_is_zero(lat, lon):
    assert haversine_km(lat, lon, lat, lon) == 0


def test_distance_is_symmetric():
    a, b = (32.31, 34.87), (40.7128, -74.006)
    assert haversine_km(*a, *b) == pytest.approx(haversine_km(*b, *a))


def test_triangle_inequality_within_epsilon():
    a, b, c = (32.31, 34.87), (48.8566, 2.3522), (-33.8688, 151.2093)
    assert haversine_km(*a, *b) <= haversine_km(*a, *c) + haversine_km(*c, *b) + 1e-9


def test_antipodal_points_are_half_circumference():
    assert haversine_km(0, 0, 0, 180) == pytest.approx(math.pi * EARTH_RADIUS_KM)
    assert haversine_km(0, 0, 0, 180) == pytest.approx(20015, abs=1)


def test_netanya_to_tel_aviv():
    distance = haversine_km(32.31, 34.87, 32.08, 34.78)
    assert distance == pytest.approx(reference_haversine(32.31, 34.87, 32.08, 34.78))
    assert 26 <= distance <= 28


def test_out_of_range_coordinates_rejected():
    with pytest.raises(ValueError):
        haversine_km(91, 0, 0, 0)
    with pytest.raises(ValueError):
        haversine_km(0, 0, 0, -181)


def test_distance_between_missing_coordinates_is_unknown():
    located = Profile("a", latitude=32.31, longitude=34.87)
    assert distance_between(located, Profile("b")) is None
    assert distance_between(located, Profile("b", latitude=32.0)) is None
    assert distance_between(None, located) is None


def test_distance_between_profiles():
    a = Profile("a", latitude=32.31, longitude=34.87)
    b = Profile("b", latitude=32.08, longitude=34.78)
    assert distance_between(a, b) == pytest.approx(haversine_km(32.31, 34.87, 32.08, 34.78))


# ------------------------- title matching ------------------------- #
@pytest.mark.parametrize("mode", ["token", "substring"])
def test_titles_match_case_insensitive_and_bidirectional(mode):
    assert titles_match("The Hobbit", "hobbit", mode)
    assert titles_match("HOBBIT", "The Hobbit", mode)
    assert not titles_match("Dune", "The Hobbit", mode)


def test_token_mode_respects_word_boundaries():
    assert not titles_match("Fit for a King", "IT", "token")
    assert titles_match("Fit for a King", "IT", "substring")
    assert titles_match("Harry Potter and the Philosopher's Stone", "harry potter", "token")
    assert not titles_match("Harry Potter", "Potter Harry", "token")


@pytest.mark.parametrize("mode", ["token", "substring"])
def test_blank_titles_never_match(mode):
    assert not titles_match("", "Dune", mode)
    assert not titles_match("Dune", "   ", mode)
    assert not titles_match(None, "Dune", mode)


def test_unknown_match_mode():
    with pytest.raises(ValueError):
        titles_match("Dune", "Dune", "fuzzy")


def test_wishlist_and_double_match():
    assert is_wishlist_match("Dune Messiah", ["Neuromancer", "dune"], "token")
    assert not is_wishlist_match("Dune", [], "token")
    assert is_double_match(["The Hobbit", "Emma"], ["Hobbit"], "token")
    assert not is_double_match([], ["Hobbit"], "token")
    assert not is_double_match(["Emma"], ["Hobbit"], "token")


# ------------------------- scoring ------------------------- #
def test_match_score_tiers():
    assert match_score(False, False, 0) == 0
    assert match_score(True, False) == 100
    assert match_score(True, True) == 1000
    assert match_score(False, False) == 0
    assert match_score(True, False, 12.5) == pytest.approx(87.5)


def test_far_double_match_outranks_near_plain_match():
    assert match_score(True, True, 500) == 500
    assert match_score(True, True, 500) > match_score(True, False, 0)


def test_rank_orders_by_tier_then_distance():
    ranked = rank_candidates([
        _candidate("plain near", distance=1),
        _candidate("match far", distance=50, wishlist=True),
        _candidate("double far", distance=500, wishlist=True, double=True),
        _candidate("match near", distance=2, wishlist=True),
    ])
    assert [c.book.title for c in ranked] == ["double far", "match near", "match far", "plain near"]
    assert ranked[0].match_score == 500


def test_rank_equal_scores_prefers_known_smaller_distance():
    ranked = rank_candidates([
        _candidate("unknown", wishlist=True),                      # 100
        _candidate("double 900", distance=900, wishlist=True, double=True),  # 100
        _candidate("plain match here", distance=0, wishlist=True),  # 100
    ])
    assert [c.book.title for c in ranked] == ["plain match here", "double 900", "unknown"]


def test_rank_is_stable_when_distances_unknown():
    titles = ["first", "second", "third", "fourth"]
    ranked = rank_candidates([_candidate(t) for t in titles])
    assert [c.book.title for c in ranked] == titles


def test_rank_does_not_mutate_input():
    original = _candidate("Dune", distance=3, wishlist=True)
    ranked = rank_candidates([original])
    assert original.match_score == 0.0
    assert ranked[0].match_score == 97


def test_annotate_candidate():
    book = Book("The Hobbit", "J.R.R. Tolkien", "owner")
    owner = Profile("owner", latitude=32.08, longitude=34.78)
    requester = Profile("me", latitude=32.31, longitude=34.87)
    candidate = annotate_candidate(book, owner, requester, ["hobbit"], "token")
    assert candidate.is_wishlist_match
    assert not candidate.is_double_match
    assert 26 <= candidate.distance_km <= 28


def test_candidate_to_dict_rounds_distance():
    owner = Profile("owner", display_name="Sarah")
    data = Candidate(book=Book("Dune", "Frank Herbert", "owner"), owner=owner,
                     distance_km=26.9481, is_wishlist_match=True, match_score=73.05).to_dict()
    assert data["distance_km"] == 26.9
    assert data["owner_display_name"] == "Sarah"
    assert data["title"] == "Dune"
