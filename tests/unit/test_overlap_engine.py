from datetime import UTC, datetime, timedelta

import pytest

from loccal.models.domain.social_domain import FriendSnapshot, MonthlySnapshot, SocialUser
from loccal.services.social.overlap_engine import (
    build_friend_overlaps,
    canonical_location,
    compute_overlap,
    friend_availability,
    is_snapshot_stale,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


def friend(user_id, name, days, share_mode="friends"):
    user = SocialUser(id=user_id, email=f"{user_id}@example.com", name=name, share_mode=share_mode)
    snapshot = None
    if days is not None:
        snapshot = MonthlySnapshot(user_id=user_id, month="2024-06", time_zone="UTC", generated_at=NOW, days=days)
    return FriendSnapshot(user=user, snapshot=snapshot)


def test_canonical_location():
    assert canonical_location("  Austin,   TX,\tUSA ") == "austin, tx, usa"


def test_case_insensitive_match_uses_owner_casing(make_day_entry):
    own = {"2024-06-10": [make_day_entry("Austin, TX, USA")]}
    theirs = {"2024-06-10": [make_day_entry("austin, tx, usa")]}

    overlaps = build_friend_overlaps(own, [friend("friend-1", "Riley", theirs)])

    assert {key: value.to_dict() for key, value in overlaps.items()} == {
        "2024-06-10": {
            "friendIds": ["friend-1"],
            "friendNames": ["Riley"],
            "cities": ["Austin, TX, USA"],
        }
    }


def test_days_present_on_one_side_only(make_day_entry):
    own = {
        "2024-06-10": [make_day_entry("Austin, TX, USA")],
        "2024-06-11": [make_day_entry("Austin, TX, USA")],
    }
    theirs = {
        "2024-06-11": [make_day_entry("Paris, France")],
        "2024-06-12": [make_day_entry("Austin, TX, USA")],
    }

    assert compute_overlap(own, theirs) == {}


def test_cities_keep_owner_order(make_day_entry):
    own = {"2024-06-10": [make_day_entry("Paris, France"), make_day_entry("London, UK")]}
    theirs = {"2024-06-10": [make_day_entry("london, uk"), make_day_entry("PARIS, FRANCE")]}

    # friend order drives discovery; owner labels are reported
    assert compute_overlap(own, theirs) == {"2024-06-10": ["London, UK", "Paris, France"]}


def test_private_friend_is_excluded(make_day_entry):
    own = {"2024-06-10": [make_day_entry("Austin, TX, USA")]}
    theirs = {"2024-06-10": [make_day_entry("Austin, TX, USA")]}

    overlaps = build_friend_overlaps(own, [friend("friend-1", "Riley", theirs, share_mode="private")])

    assert overlaps == {}


def test_multiple_friends_union_on_same_day(make_day_entry):
    own = {
        "2024-06-10": [make_day_entry("Austin, TX, USA"), make_day_entry("Paris, France")],
        "2024-06-09": [make_day_entry("Austin, TX, USA")],
    }
    friends = [
        friend("friend-1", "Riley", {"2024-06-10": [make_day_entry("Austin, TX, USA")]}),
        friend("friend-2", "Sam", {
            "2024-06-10": [make_day_entry("Paris, France")],
            "2024-06-09": [make_day_entry("austin, tx, usa")],
        }),
        friend("friend-3", "Quinn", None),
    ]

    overlaps = build_friend_overlaps(own, friends)

    assert list(overlaps) == ["2024-06-09", "2024-06-10"]
    assert overlaps["2024-06-10"].to_dict() == {
        "friendIds": ["friend-1", "friend-2"],
        "friendNames": ["Riley", "Sam"],
        "cities": ["Austin, TX, USA", "Paris, France"],
    }
    assert overlaps["2024-06-09"].friend_ids == ["friend-2"]


class TestStaleness:
    def test_missing_snapshot_is_stale(self):
        assert is_snapshot_stale(None, now=NOW) is True

    def test_fresh_snapshot(self):
        assert is_snapshot_stale(NOW - timedelta(hours=71), now=NOW) is False

    def test_old_snapshot(self):
        assert is_snapshot_stale(NOW - timedelta(hours=73), now=NOW) is True

    @pytest.mark.parametrize("threshold", [0, -5])
    def test_non_positive_threshold_uses_default(self, threshold):
        assert is_snapshot_stale(NOW - timedelta(hours=71), threshold, now=NOW) is False
        assert is_snapshot_stale(NOW - timedelta(hours=73), threshold, now=NOW) is True

    def test_custom_threshold(self):
        assert is_snapshot_stale(NOW - timedelta(hours=2), 1, now=NOW) is True

    def test_naive_timestamp_treated_as_utc(self):
        assert is_snapshot_stale(datetime(2024, 6, 15, 11, 0), now=NOW) is False


def test_friend_availability(make_day_entry):
    days = {"2024-06-10": [make_day_entry("Austin, TX, USA")]}

    assert friend_availability(friend("a", "A", days)) == "available"
    assert friend_availability(friend("b", "B", days, share_mode="private")) == "hidden"
    assert friend_availability(friend("c", "C", None)) == "no_data"
    assert friend_availability(friend("d", "D", {})) == "no_data"
