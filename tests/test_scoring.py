"""Tests for category scoring across the three audit tiers."""

from dataclasses import replace

import pytest

from presence_audit.errors import InvalidInputError
from presence_audit.models.analysis import Benchmark, MetricTriple, NapCheck, Verification
from presence_audit.models.profile import OpeningHours, Photo, PlaceProfile, Review
from presence_audit.modules.local_presence.checklist import (
    PhotoCountRange,
    PostFrequency,
    RatingRange,
    ReviewCountRange,
    SelfAuditChecklist,
    checklist_from_place,
    photo_range_for,
    rating_range_for,
    review_range_for,
)
from presence_audit.modules.local_presence.scoring import (
    CITATIONS_CONSISTENCY,
    COMPETITOR_GAP,
    LOCAL_SEO,
    MAX_NOTES,
    NOTE_DESCRIPTION_UNAVAILABLE,
    NOTE_POSTS_QA,
    NOTE_REVIEWS_SUBSET,
    POSTING_ACTIVITY,
    PROFILE_COMPLETENESS,
    REVIEW_PERFORMANCE,
    VISUAL_ASSETS,
    LiveProfileStrategy,
    PointTableStrategy,
    ProfileChecklistStrategy,
    Scorer,
    ScoringContext,
    score_checklist,
    score_competitor_gap,
    score_local_seo,
    score_profile_completeness,
    score_review_performance,
    score_visual_assets,
)

from conftest import FIXED_NOW

NOW = FIXED_NOW.timestamp()
DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
LONG_DESCRIPTION = (
    "Licensed plumber serving Denver homes and businesses since 1998. We handle "
    "drain cleaning, water heaters, leak detection, repiping and emergency repairs "
    "with upfront pricing and same-day service across the metro area."
)

ALL_BEST = SelfAuditChecklist(
    has_hours=True,
    has_phone=True,
    has_website=True,
    has_description_optimized=True,
    has_services_listed=True,
    has_primary_category_set=True,
    has_secondary_categories=True,
    photo_count_range=PhotoCountRange.FIFTY_PLUS,
    review_count_range=ReviewCountRange.HUNDRED_PLUS,
    rating_range=RatingRange.FROM_4_9,
    post_frequency=PostFrequency.WEEKLY,
    posted_last_30_days=True,
    nap_consistent=True,
    website_consistent=True,
    duplicates_cleaned=True,
    citations_updated_recently=True,
)


def _place(**overrides) -> PlaceProfile:
    defaults = dict(
        place_id="ChMe",
        name="Acme Plumbing",
        formatted_address="1234 Market Street, Denver, CO 80202, USA",
        types=("plumber", "contractor", "store", "point_of_interest", "establishment"),
        rating=5.0,
        review_count=40,
        phone="(303) 555-0142",
        website="https://acme.example",
        opening_hours=OpeningHours(weekday_text=tuple(f"{d}: 8-6" for d in DAYS)),
        description=LONG_DESCRIPTION,
        photos=tuple(Photo() for _ in range(20)),
        reviews=(Review(timestamp=int(NOW - 86400)), Review(timestamp=int(NOW - 2 * 86400))),
    )
    defaults.update(overrides)
    return PlaceProfile(**defaults)


def _benchmark(rating=4.5, reviews=40, photos=10, gaps=(0, 0, 0)) -> Benchmark:
    return Benchmark(
        competitor_count=3,
        medians=MetricTriple(rating=rating, review_count=reviews, photo_count=photos),
        rank=MetricTriple(1, 1, 1),
        gaps=MetricTriple(*gaps),
    )


# ===========================================================================
# Self-audit point table
# ===========================================================================
class TestPointTable:

    def test_all_false_scores_zero(self):
        card = score_checklist(SelfAuditChecklist())
        assert card.overall_score == 0
        assert card.grade == "F"
        assert all(c.score == 0 for c in card.categories)

    def test_all_best_scores_hundred(self):
        card = score_checklist(ALL_BEST)
        assert card.overall_score == 100
        assert card.grade == "A"
        assert card.scores() == {
            PROFILE_COMPLETENESS: 30,
            VISUAL_ASSETS: 25,
            REVIEW_PERFORMANCE: 25,
            POSTING_ACTIVITY: 10,
            CITATIONS_CONSISTENCY: 10,
        }

    def test_category_maxima_sum_to_hundred(self):
        card = score_checklist(SelfAuditChecklist())
        assert [c.max_score for c in card.categories] == [30, 25, 25, 10, 10]

    def test_posting_bonus_is_capped(self):
        monthly = replace(ALL_BEST, post_frequency=PostFrequency.MONTHLY)
        assert score_checklist(monthly).scores()[POSTING_ACTIVITY] == 8
        assert score_checklist(ALL_BEST).scores()[POSTING_ACTIVITY] == 10

    def test_mixed_answers(self):
        checklist = SelfAuditChecklist(
            has_hours=True,
            has_phone=True,
            photo_count_range=PhotoCountRange.FROM_10,
            review_count_range=ReviewCountRange.FROM_26,
            rating_range=RatingRange.FROM_4_4,
            nap_consistent=True,
        )
        card = score_checklist(checklist)
        # 10 profile + 12 photos + 19 reviews + 0 posting + 4 citations
        assert card.overall_score == 45
        assert card.grade == "F"

    def test_point_table_needs_checklist(self):
        with pytest.raises(ValueError):
            Scorer(PointTableStrategy()).score(ScoringContext())


class TestChecklistFromDict:

    def test_parses_ranges_and_flags(self):
        checklist = SelfAuditChecklist.from_dict({
            "has_hours": 1,
            "photo_count_range": "20-49",
            "rating_range": "4.7-4.8",
            "post_frequency": "weekly",
            "unknown_field": True,
        })
        assert checklist.has_hours is True
        assert checklist.photo_count_range is PhotoCountRange.FROM_20
        assert checklist.rating_range is RatingRange.FROM_4_7
        assert checklist.post_frequency is PostFrequency.WEEKLY
        assert checklist.review_count_range is None

    @pytest.mark.parametrize("raw,expected", [
        ("false", False), ("0", False), ("no", False), ("", False), (0, False),
        ("true", True), (" Yes ", True), ("1", True), (True, True),
    ])
    def test_parses_string_flags(self, raw, expected):
        checklist = SelfAuditChecklist.from_dict({"has_phone": raw, "nap_consistent": raw})
        assert checklist.has_phone is expected
        assert checklist.nap_consistent is expected

    @pytest.mark.parametrize("raw", ["maybe", 2, [True]])
    def test_rejects_unreadable_flag(self, raw):
        with pytest.raises(InvalidInputError) as exc_info:
            SelfAuditChecklist.from_dict({"has_website": raw})
        assert exc_info.value.code == "INVALID_INPUT"
        assert "has_website" in str(exc_info.value)

    def test_rejects_unknown_range(self):
        with pytest.raises(InvalidInputError) as exc_info:
            SelfAuditChecklist.from_dict({"photo_count_range": "lots"})
        assert "photo_count_range" in str(exc_info.value)


# ===========================================================================
# Range mapping and inferred checklist (Pro)
# ===========================================================================
@pytest.mark.parametrize("count,expected", [
    (0, PhotoCountRange.UNDER_10),
    (9, PhotoCountRange.UNDER_10),
    (10, PhotoCountRange.FROM_10),
    (20, PhotoCountRange.FROM_20),
    (50, PhotoCountRange.FIFTY_PLUS),
])
def test_photo_range_for(count, expected):
    assert photo_range_for(count) is expected


@pytest.mark.parametrize("count,expected", [
    (10, ReviewCountRange.UP_TO_10),
    (11, ReviewCountRange.FROM_11),
    (50, ReviewCountRange.FROM_26),
    (51, ReviewCountRange.FROM_51),
    (100, ReviewCountRange.HUNDRED_PLUS),
])
def test_review_range_for(count, expected):
    assert review_range_for(count) is expected


@pytest.mark.parametrize("rating,expected", [
    (0.0, RatingRange.UNDER_4),
    (4.0, RatingRange.FROM_4_0),
    (4.6, RatingRange.FROM_4_4),
    (4.7, RatingRange.FROM_4_7),
    (4.9, RatingRange.FROM_4_9),
])
def test_rating_range_for(rating, expected):
    assert rating_range_for(rating) is expected


class TestProfileChecklist:

    def _strong_place(self):
        return _place(
            types=("plumber", "contractor", "store", "home_goods_store"),
            photos=tuple(Photo() for _ in range(25)),
            review_count=120,
            rating=4.8,
        )

    def test_inferred_answers(self):
        checklist = checklist_from_place(self._strong_place(), now=NOW)
        assert checklist.has_description_optimized
        assert checklist.has_secondary_categories
        assert checklist.photo_count_range is PhotoCountRange.FROM_20
        assert checklist.post_frequency is PostFrequency.MONTHLY
        assert checklist.nap_consistent
        assert not checklist.duplicates_cleaned

    def test_strategy_scores_inferred_answers(self):
        card = Scorer(ProfileChecklistStrategy()).score(
            ScoringContext(place=self._strong_place(), now=NOW)
        )
        # 30 profile + 20 photos + 24 reviews + 8 posting + 7 citations
        assert card.overall_score == 89
        assert card.grade == "B"
        assert card.checklist is not None

    def test_phone_mismatch_drops_nap_points(self):
        nap = NapCheck(phone=Verification.INCONSISTENT, website_fetched=True)
        card = Scorer(ProfileChecklistStrategy()).score(
            ScoringContext(place=self._strong_place(), nap=nap, now=NOW)
        )
        assert card.scores()[CITATIONS_CONSISTENCY] == 3
        assert card.overall_score == 85

    def test_address_mismatch_drops_website_points(self):
        nap = NapCheck(address=Verification.INCONSISTENT, website_fetched=True)
        checklist = checklist_from_place(self._strong_place(), nap=nap, now=NOW)
        assert checklist.nap_consistent
        assert not checklist.website_consistent

    def test_unknown_nap_changes_nothing(self):
        place = self._strong_place()
        assert checklist_from_place(place, NapCheck(), NOW) == checklist_from_place(place, None, NOW)


# ===========================================================================
# Standard tier categories
# ===========================================================================
class TestProfileCompleteness:

    def test_complete_profile(self):
        result = score_profile_completeness(_place(), industry="plumber", now=NOW)
        assert result.score == 90
        assert result.notes == (NOTE_POSTS_QA,)

    def test_empty_profile(self):
        result = score_profile_completeness(PlaceProfile(), now=NOW)
        assert result.score == 0
        assert NOTE_DESCRIPTION_UNAVAILABLE in result.notes
        assert NOTE_REVIEWS_SUBSET in result.notes

    def test_partial_hours_and_short_description(self):
        place = _place(
            opening_hours=OpeningHours(weekday_text=DAYS[:5]),
            description="Plumbing and drains in Denver.",
            types=("plumber",),
            photos=(),
            reviews=(),
        )
        # 6 hours + 10 phone + 10 website + 2 description + 3 types
        assert score_profile_completeness(place, now=NOW).score == 31


class TestVisualAssets:

    @pytest.mark.parametrize("photos,median_photos,expected", [
        (10, 10, 85),
        (20, 10, 100),
        (5, 10, 43),
        (0, 0, 0),
        (5, 0, 85),
    ])
    def test_ratio_scoring(self, photos, median_photos, expected):
        place = _place(photos=tuple(Photo() for _ in range(photos)))
        result = score_visual_assets(place, _benchmark(photos=median_photos))
        assert result.score == expected


class TestReviewPerformance:

    def test_top_marks(self):
        assert score_review_performance(_place(), _benchmark(reviews=40), NOW).score == 100

    def test_partial(self):
        place = _place(rating=4.0, review_count=20, reviews=(Review(timestamp=int(NOW - 3600)),))
        # 32 rating + 20 volume + 10 recency
        assert score_review_performance(place, _benchmark(reviews=40), NOW).score == 62


class TestLocalSeo:

    def test_full_marks_with_keyword(self):
        assert score_local_seo(_place(), industry="Plumber").score == 100

    def test_long_description_without_keyword(self):
        place = _place(description="x" * 220)
        # 25 primary + 25 secondary + 12 description + 25 basics
        assert score_local_seo(place, industry="roofer").score == 87

    def test_bare_profile(self):
        assert score_local_seo(PlaceProfile()).score == 0


class TestCompetitorGap:

    def test_at_median_is_fifty(self):
        assert score_competitor_gap(_benchmark()).score == 50

    def test_bounded(self):
        ahead = _benchmark(gaps=(3, 500, 500))
        behind = _benchmark(gaps=(-3, -500, -500))
        assert score_competitor_gap(ahead).score == 100
        assert score_competitor_gap(behind).score == 0


class TestLiveProfileStrategy:

    def test_overall_is_median_of_categories(self):
        card = Scorer(LiveProfileStrategy()).score(ScoringContext(
            place=_place(), benchmark=_benchmark(), industry="plumber", now=NOW,
        ))
        scores = card.scores()
        assert list(scores) == [
            PROFILE_COMPLETENESS, VISUAL_ASSETS, REVIEW_PERFORMANCE, LOCAL_SEO, COMPETITOR_GAP,
        ]
        # 90, 100, 100, 100, 50
        assert card.overall_score == 100
        assert card.grade == "A"

    def test_scores_stay_in_bounds(self):
        card = Scorer(LiveProfileStrategy()).score(ScoringContext(
            place=PlaceProfile(place_id="x"), benchmark=_benchmark(photos=0, reviews=0), now=NOW,
        ))
        for category in card.categories:
            assert 0 <= category.score <= 100
        assert 0 <= card.overall_score <= 100
        assert len(card.notes) <= MAX_NOTES
        assert len(card.notes) == len(set(card.notes))

    def test_requires_benchmark(self):
        with pytest.raises(ValueError):
            Scorer(LiveProfileStrategy()).score(ScoringContext(place=_place()))
