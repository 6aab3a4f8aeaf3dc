"""End-to-end tests for the three audit tiers with a scripted place provider."""

import json
import re

import pytest

from presence_audit.errors import (
    ConfigurationError,
    InvalidInputError,
    InvalidReferenceError,
    MissingLocationError,
    NotFoundError,
    RateLimitExceeded,
)
from presence_audit.integrations.website_fetcher import WebsiteTextFetcher
from presence_audit.models.analysis import AuditTier, Priority, Verification
from presence_audit.models.profile import PlacePrediction
from presence_audit.modules.local_presence.auditor import (
    PresenceAuditor,
    ProAuditRequest,
    StandardAuditRequest,
)
from presence_audit.modules.local_presence.checklist import SelfAuditChecklist, SelfAuditInputs
from presence_audit.modules.local_presence.recommendations import OWNER_CHECKLIST

from conftest import FIXED_NOW, FakePlaceProvider, make_raw_place

CONSULT_TITLE = "Book a quick consult to close the local gap"
MATCHING_HTML = (
    "<html><body><h1>Acme Plumbing</h1>"
    "<p>1234 Market Street, Denver, CO 80202</p>"
    "<p>Call (303) 555-0142 for same-day service across the metro area.</p>"
    "</body></html>"
)


class FakeFetcher(WebsiteTextFetcher):

    def __init__(self, html=None):
        self.html = html
        self.urls = []

    async def fetch(self, url):
        self.urls.append(url)
        return self.html


@pytest.fixture()
def auditor(fake_provider, governor, fixed_clock):
    return PresenceAuditor(
        fake_provider, governor, fetcher=FakeFetcher(MATCHING_HTML), clock=fixed_clock,
    )


# ===========================================================================
# Lookups
# ===========================================================================
class TestPredictions:

    @pytest.mark.asyncio
    async def test_query_joins_name_and_location(self, auditor, fake_provider, governor):
        predictions = await auditor.get_predictions(" Acme Plumbing ", "Denver, CO")
        assert predictions[0].place_id == "ChSubject"
        assert fake_provider.calls[0] == ("predict", "Acme Plumbing Denver, CO")
        assert governor.snapshot().used_today == 1

    @pytest.mark.asyncio
    async def test_empty_query_is_rejected_without_quota(self, auditor, fake_provider, governor):
        with pytest.raises(InvalidInputError):
            await auditor.get_predictions("  ", "")
        assert fake_provider.calls == []
        assert governor.snapshot().used_today == 0

    @pytest.mark.asyncio
    async def test_capped_at_six(self, governor, fixed_clock):
        provider = FakePlaceProvider(
            predictions=[PlacePrediction(f"Biz {i}", f"Ch{i}") for i in range(9)],
        )
        auditor = PresenceAuditor(provider, governor, clock=fixed_clock)
        assert len(await auditor.get_predictions("Biz")) == 6

    @pytest.mark.asyncio
    async def test_no_provider(self, governor):
        auditor = PresenceAuditor(None, governor)
        with pytest.raises(ConfigurationError):
            await auditor.get_predictions("Acme")


# ===========================================================================
# Standard tier
# ===========================================================================
class TestStandardAudit:

    @pytest.mark.asyncio
    async def test_by_name_and_location(self, auditor, governor):
        result = await auditor.analyze_standard(StandardAuditRequest(
            business_name="Acme Plumbing", location="Denver, CO", industry="plumber",
        ))
        assert result.tier is AuditTier.STANDARD
        assert result.place.place_id == "ChSubject"
        assert result.benchmarks.competitor_count == 5
        assert len(result.competitors) == 5
        assert [c.category for c in result.categories] == [
            "profile_completeness", "visual_assets", "review_performance",
            "local_seo", "competitor_gap",
        ]
        assert 0 <= result.overall_score <= 100
        assert result.grade in {"A", "B", "C", "D", "F"}
        assert CONSULT_TITLE in [r.title for r in result.recommendations]
        assert len(result.recommendations) <= 10
        assert len(result.notes) <= 8
        # predict + subject details + nearby search + five competitor details
        assert result.api_usage.used_today == 8
        assert governor.snapshot().used_today == 8
        assert result.radius_meters == 5500
        assert result.generated_at == FIXED_NOW.isoformat()

    @pytest.mark.asyncio
    async def test_ranks_within_bounds(self, auditor):
        result = await auditor.analyze_standard(StandardAuditRequest(place_id="ChSubject"))
        bench = result.benchmarks
        for value in (bench.rank.rating, bench.rank.review_count, bench.rank.photo_count):
            assert 1 <= value <= bench.competitor_count + 1

    @pytest.mark.asyncio
    async def test_place_id_skips_autocomplete(self, auditor, fake_provider):
        await auditor.analyze_standard(StandardAuditRequest(place_id="ChSubject"))
        assert all(name != "predict" for name, _ in fake_provider.calls)

    @pytest.mark.asyncio
    async def test_maps_url(self, auditor, fake_provider):
        url = "https://www.google.com/maps/search/?api=1&query=Acme&query_place_id=ChSubject"
        result = await auditor.analyze_standard(StandardAuditRequest(google_maps_url=url))
        assert result.place.place_id == "ChSubject"
        assert fake_provider.calls[0] == ("details", "ChSubject")

    @pytest.mark.asyncio
    async def test_maps_url_without_place_id(self, auditor, governor):
        request = StandardAuditRequest(google_maps_url="https://maps.google.com/?cid=1234")
        with pytest.raises(InvalidReferenceError) as exc_info:
            await auditor.analyze_standard(request)
        assert exc_info.value.code == "INVALID_URL"
        assert governor.snapshot().used_today == 0

    @pytest.mark.asyncio
    async def test_partial_competitor_failure(self, market, governor, fixed_clock):
        provider = FakePlaceProvider(
            places=market["places"],
            predictions=[PlacePrediction("Acme", "ChSubject")],
            nearby=market["nearby"],
            failing={"ChComp1", "ChComp3"},
        )
        auditor = PresenceAuditor(provider, governor, clock=fixed_clock)
        result = await auditor.analyze_standard(StandardAuditRequest(place_id="ChSubject"))
        assert result.benchmarks.competitor_count == 3
        assert {c.place_id for c in result.competitors} == {"ChComp2", "ChComp4", "ChComp5"}

    @pytest.mark.asyncio
    async def test_no_competitors(self, market, governor, fixed_clock):
        provider = FakePlaceProvider(places=market["places"], nearby=[])
        auditor = PresenceAuditor(provider, governor, clock=fixed_clock)
        result = await auditor.analyze_standard(StandardAuditRequest(place_id="ChSubject"))
        assert result.benchmarks.competitor_count == 0
        assert result.benchmarks.rank.rating == 1
        assert 0 <= result.overall_score <= 100

    @pytest.mark.asyncio
    async def test_not_found(self, governor, fixed_clock):
        auditor = PresenceAuditor(FakePlaceProvider(), governor, clock=fixed_clock)
        with pytest.raises(NotFoundError) as exc_info:
            await auditor.analyze_standard(StandardAuditRequest(business_name="Nobody", location="Nowhere"))
        assert exc_info.value.code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_missing_location(self, governor, fixed_clock):
        provider = FakePlaceProvider(places={"ChX": make_raw_place("ChX", lat=None, lng=None)})
        auditor = PresenceAuditor(provider, governor, clock=fixed_clock)
        with pytest.raises(MissingLocationError) as exc_info:
            await auditor.analyze_standard(StandardAuditRequest(place_id="ChX"))
        assert exc_info.value.code == "MISSING_LOCATION"
        assert all(name != "nearby" for name, _ in provider.calls)

    @pytest.mark.asyncio
    async def test_rate_limit(self, auditor, fake_provider):
        with pytest.raises(RateLimitExceeded) as exc_info:
            await auditor.analyze_standard(StandardAuditRequest(place_id="ChSubject"), daily_limit=1)
        assert exc_info.value.code == "RATE_LIMIT"
        assert all(name != "nearby" for name, _ in fake_provider.calls)

    @pytest.mark.asyncio
    async def test_empty_request(self, auditor):
        with pytest.raises(InvalidInputError):
            await auditor.analyze_standard(StandardAuditRequest())

    @pytest.mark.asyncio
    async def test_result_is_json_serialisable(self, auditor):
        result = await auditor.analyze_standard(StandardAuditRequest(place_id="ChSubject"))
        data = json.loads(json.dumps(result.to_dict()))
        assert data["tier"] == "standard"
        assert data["recommendations"][0]["priority"] in {p.value for p in Priority}
        assert "source" not in data["competitors"][0]


# ===========================================================================
# Self-audit tier
# ===========================================================================
class TestSelfAudit:

    def test_all_unanswered(self, governor, fixed_clock):
        auditor = PresenceAuditor(None, governor, clock=fixed_clock)
        result = auditor.calculate_self_audit(SelfAuditChecklist())
        assert result.tier is AuditTier.SELF_AUDIT
        assert result.overall_score == 0
        assert result.grade == "F"
        assert result.place is None
        assert result.owner_checklist == OWNER_CHECKLIST
        assert len(result.recommendations) == 8
        assert result.api_usage is None
        assert result.radius_meters == 1609
        assert governor.snapshot().used_today == 0

    def test_inputs_radius(self, governor):
        auditor = PresenceAuditor(None, governor)
        result = auditor.calculate_self_audit(
            SelfAuditChecklist(has_hours=True),
            SelfAuditInputs(radius_meters=8047),
        )
        assert result.radius_meters == 8047
        assert result.overall_score == 6


# ===========================================================================
# Pro tier
# ===========================================================================
class TestProAudit:

    REQUEST = ProAuditRequest(
        business_name="Acme Plumbing", location="Denver, CO", radius_meters=4828, lite_score=55,
    )

    @pytest.mark.asyncio
    async def test_end_to_end(self, auditor, governor):
        result = await auditor.analyze_pro(self.REQUEST)

        assert result.tier is AuditTier.PRO
        assert result.baseline_score == 55
        assert result.radius_meters == 4828
        assert [c.max_score for c in result.categories] == [30, 25, 25, 10, 10]
        assert 0 <= result.overall_score <= 100

        cards = result.competitor_cards
        assert len(cards) == 5
        assert [c.score for c in cards] == sorted((c.score for c in cards), reverse=True)
        for card in cards:
            assert card.maps_url.endswith("query_place_id=" + card.place_id)
            assert len(card.better_at) <= 3
            assert card.photo_delta == card.photo_count - result.place.photo_count
        distances = {card.place_id: card.distance_miles for card in cards}
        assert distances["ChComp4"] == 2.5
        assert distances["ChComp2"] == 0.8

        assert [row.metric for row in result.comparison] == ["Rating", "Review count", "Photo count"]
        assert result.comparison[0].subject == "4.2"
        assert re.fullmatch(r"\d+\.\d{2}", result.comparison[0].top3_average)
        assert result.comparison[1].subject == "30"
        assert result.comparison[2].subject == "8"

        assert result.nap.phone is Verification.CONSISTENT
        assert result.nap.address is Verification.CONSISTENT
        assert result.notes[-1] == "Competitors ranked by rating × review count within 3 miles."

        for action in result.recommendations:
            assert 1 <= action.impact_percent <= 40
        ranks = [a.priority.rank for a in result.recommendations]
        assert ranks == sorted(ranks)

        # predict + subject details + nearby search + five competitor details
        assert governor.snapshot().used_today == 8
        assert result.owner_checklist == OWNER_CHECKLIST

    @pytest.mark.asyncio
    async def test_weaker_subject_gets_action_plan(self, market, governor, fixed_clock):
        places = dict(market["places"])
        places["ChSubject"] = make_raw_place(
            "ChSubject", name="Acme Plumbing", rating=3.8, total=4, photos=2,
            types=["plumber"], phone=None, website=None, hours=0, review_ages_days=(),
        )
        provider = FakePlaceProvider(
            places=places,
            predictions=[PlacePrediction("Acme", "ChSubject")],
            nearby=market["nearby"],
        )
        auditor = PresenceAuditor(provider, governor, clock=fixed_clock)
        result = await auditor.analyze_pro(self.REQUEST)
        titles = [a.title for a in result.recommendations]
        assert titles[0] == "Fix profile completeness gaps"
        assert result.recommendations[0].priority is Priority.CRITICAL
        assert "Increase photo volume and freshness" in titles
        assert all(card.better_at for card in result.competitor_cards)

    @pytest.mark.asyncio
    async def test_phone_mismatch(self, fake_provider, governor, fixed_clock):
        html = "<html><body><p>1234 Market Street. Call 720-555-9999 today for a free quote.</p></body></html>"
        auditor = PresenceAuditor(fake_provider, governor, fetcher=FakeFetcher(html), clock=fixed_clock)
        result = await auditor.analyze_pro(self.REQUEST)
        assert result.nap.phone is Verification.INCONSISTENT
        assert result.nap.address is Verification.CONSISTENT
        assert any(note.startswith("Phone mismatch") for note in result.notes)

    @pytest.mark.asyncio
    async def test_unreachable_website(self, fake_provider, governor, fixed_clock):
        fetcher = FakeFetcher(None)
        auditor = PresenceAuditor(fake_provider, governor, fetcher=fetcher, clock=fixed_clock)
        result = await auditor.analyze_pro(self.REQUEST)
        assert fetcher.urls == ["https://example.com"]
        assert result.nap.phone is Verification.UNKNOWN
        assert result.nap.website_fetched is False
        assert any("could not be fetched" in note for note in result.notes)

    @pytest.mark.asyncio
    async def test_invalid_radius(self, auditor, fake_provider, governor):
        request = ProAuditRequest(business_name="Acme", location="Denver", radius_meters=5000)
        with pytest.raises(InvalidInputError):
            await auditor.analyze_pro(request)
        assert fake_provider.calls == []
        assert governor.snapshot().used_today == 0

    @pytest.mark.asyncio
    async def test_not_found(self, governor, fixed_clock):
        auditor = PresenceAuditor(FakePlaceProvider(), governor, clock=fixed_clock)
        with pytest.raises(NotFoundError):
            await auditor.analyze_pro(self.REQUEST)

    @pytest.mark.asyncio
    async def test_json_output(self, auditor):
        result = await auditor.analyze_pro(self.REQUEST)
        data = json.loads(json.dumps(result.to_dict()))
        assert data["tier"] == "pro"
        assert data["nap"]["phone"] == "consistent"
        assert len(data["competitor_cards"]) == 5
