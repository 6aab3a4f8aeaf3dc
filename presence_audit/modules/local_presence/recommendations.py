"""Rule-based recommendation and action-plan generation.

Three generators share one output type (:class:`Recommendation`) and one
ordering rule (:func:`sort_recommendations`):

* :func:`build_standard_recommendations`: fixed rule list over a live profile
  and its benchmark, always closing with the consult call-to-action.
* :func:`build_self_audit_recommendations`: one item per weak checklist area.
* :func:`build_pro_action_plan`: weighted category gaps against the average of
  the top-3 competitors, each item carrying an impact percentage.
"""

import logging
from typing import Iterable, Mapping, Optional

from presence_audit.models.analysis import Benchmark, Priority, Recommendation
from presence_audit.models.profile import PlaceProfile
from presence_audit.modules.local_presence.checklist import (
    PhotoCountRange,
    PostFrequency,
    RatingRange,
    ReviewCountRange,
    SelfAuditChecklist,
)
from presence_audit.modules.local_presence.scoring import (
    CATEGORY_LABELS,
    CITATIONS_CONSISTENCY,
    POSTING_ACTIVITY,
    PROFILE_COMPLETENESS,
    REVIEW_PERFORMANCE,
    VISUAL_ASSETS,
)
from presence_audit.utils.helpers import clamp

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 10
MAX_SELF_AUDIT_RECOMMENDATIONS = 8
RATING_TARGET = 4.3
PHOTO_FLOOR = 10
PHOTO_CRITICAL_FLOOR = 5
CATEGORY_TARGET = 4
DESCRIPTION_TARGET = 200

# Weighted-impact factors for the Pro action plan.
PRO_WEIGHTS: dict[str, float] = {
    PROFILE_COMPLETENESS: 0.30,
    VISUAL_ASSETS: 0.25,
    REVIEW_PERFORMANCE: 0.25,
    POSTING_ACTIVITY: 0.10,
    CITATIONS_CONSISTENCY: 0.10,
}
BETTER_AT_THRESHOLD = 8
BETTER_AT_LIMIT = 3

PRO_EXPECTED_IMPACT = "Improved map-pack visibility and higher conversion from local searches."

_OPEN_PROFILE = "Open your business profile dashboard."

# Standard tier rule templates, in evaluation order.
STANDARD_TEMPLATES: dict[str, dict] = {
    "hours": {
        "title": "Add complete business hours",
        "rationale": (
            "Missing hours reduce trust and can keep you out of \"open now\" searches."
        ),
        "expected_impact": "Higher map pack visibility and more calls from ready-to-buy customers.",
        "steps": [
            _OPEN_PROFILE,
            "Go to \"Edit profile\", then \"Hours\".",
            "Set hours for every day you operate (including weekends if applicable).",
            "Double-check holiday hours.",
        ],
    },
    "phone": {
        "title": "Add a primary phone number",
        "rationale": (
            "A missing phone number reduces conversions and signals an incomplete profile."
        ),
        "expected_impact": "More calls and stronger local trust signals.",
        "steps": [
            _OPEN_PROFILE,
            "Go to \"Edit profile\", then \"Contact\".",
            "Add your main phone number.",
            "Confirm it matches the number on your website (NAP consistency).",
        ],
    },
    "website": {
        "title": "Add your website link",
        "rationale": (
            "Without a website link you lose high-intent traffic, and search engines "
            "have fewer signals about your services."
        ),
        "expected_impact": "More website visits and stronger relevance for service keywords.",
        "steps": [
            _OPEN_PROFILE,
            "Go to \"Edit profile\", then \"Website\".",
            "Add your primary website URL.",
            "Make sure the landing page clearly matches your categories and services.",
        ],
    },
    "photos": {
        "title": "Increase your photo count (and refresh regularly)",
        "rationale": (
            "Profiles with strong photo coverage win more clicks and calls, especially "
            "next to nearby competitors."
        ),
        "expected_impact": "More map pack clicks and better conversion from comparison shoppers.",
        "steps": [
            "Upload at least 20 high-quality photos (exterior, interior, team, work, finished results).",
            "Add 3-5 new photos every month.",
            "Use consistent branding and real project photos (avoid stock).",
        ],
    },
    "reviews": {
        "title": "Close the review gap vs competitors",
        "rationale": "Review volume is a major ranking and conversion factor in local search.",
        "expected_impact": "Better map rank and a higher conversion rate from searchers comparing options.",
        "steps": [
            "Create a simple review request link and a text/email template.",
            "Ask every satisfied customer within 24-48 hours of completing work.",
            "Aim for a steady cadence (for example 2-5 new reviews per month).",
        ],
    },
    "rating": {
        "title": "Improve your average rating",
        "rationale": (
            "A rating under 4.3 can cost clicks and calls when competitors are stronger."
        ),
        "expected_impact": "Higher conversion rate from the map pack and better trust.",
        "steps": [
            "Identify the recurring complaint theme in recent reviews.",
            "Fix the operational issue first.",
            "Follow up with happy customers for fresh reviews to balance older negatives.",
        ],
    },
    "categories": {
        "title": "Add secondary categories (3+ recommended)",
        "rationale": (
            "Secondary categories let you show up for more searches without diluting relevance."
        ),
        "expected_impact": "More impressions for service-specific keywords.",
        "steps": [
            _OPEN_PROFILE,
            "Go to \"Edit profile\", then \"Business information\", then \"Categories\".",
            "Keep the best primary category and add 2-4 relevant secondary categories.",
        ],
    },
    "description": {
        "title": "Strengthen your business description",
        "rationale": "A clear, keyword-aligned description improves relevance and conversion.",
        "expected_impact": "More qualified clicks from searchers looking for specific services.",
        "steps": [
            "Write a 200-400 character description explaining who you serve and what you do best.",
            "{keyword_step}",
            "Keep it specific and credible rather than salesy.",
        ],
    },
    "consult": {
        "title": "Book a quick consult to close the local gap",
        "rationale": (
            "Competitors outrank you when their profiles carry stronger, more consistent signals."
        ),
        "expected_impact": "A prioritized action plan tailored to your profile and local competitors.",
        "steps": [
            "Share your profile link and your top service area.",
            "We review your categories, photos, reviews and local positioning.",
            "You get a focused plan to beat nearby competitors.",
            "Book here: /contact",
        ],
    },
}

# Self-audit rules, keyed by weak checklist area.
SELF_AUDIT_TEMPLATES: dict[str, dict] = {
    "categories": {
        "priority": Priority.SUGGESTED,
        "title": "Tighten your categories",
        "rationale": "Keep one primary category and add 2-4 strong secondary categories.",
        "expected_impact": "More impressions for service-specific keywords.",
        "steps": ["Confirm the primary category.", "Add 2-4 secondary categories."],
    },
    "hours": {
        "priority": Priority.CRITICAL,
        "title": "Add complete hours",
        "rationale": "Complete hours (including weekends if you operate) win \"open now\" searches.",
        "expected_impact": "More visibility for ready-to-buy searches.",
        "steps": ["Set hours for every day you operate.", "Add holiday hours."],
    },
    "phone": {
        "priority": Priority.CRITICAL,
        "title": "Add a primary phone number",
        "rationale": "Add a primary phone number and keep it consistent everywhere (NAP).",
        "expected_impact": "More calls and stronger trust signals.",
        "steps": ["Add the number to your profile.", "Use the same number on your website."],
    },
    "website": {
        "priority": Priority.CRITICAL,
        "title": "Add your website link",
        "rationale": "Link your website and make sure the landing page matches your listed services.",
        "expected_impact": "More website visits and stronger relevance.",
        "steps": ["Add the website URL.", "Match the landing page to your services."],
    },
    "photos": {
        "priority": Priority.IMPORTANT,
        "title": "Upload more real photos",
        "rationale": "Aim for 20+ real photos, then add 3-5 fresh photos monthly.",
        "expected_impact": "More clicks from comparison shoppers.",
        "steps": ["Upload 20+ real photos.", "Add 3-5 new photos every month."],
    },
    "reviews": {
        "priority": Priority.IMPORTANT,
        "title": "Build a steady review pipeline",
        "rationale": "Ask every happy customer for a review within 24-48 hours.",
        "expected_impact": "Better map rank and conversion.",
        "steps": ["Create a review request link.", "Ask every satisfied customer."],
    },
    "rating": {
        "priority": Priority.IMPORTANT,
        "title": "Improve your rating",
        "rationale": "Fix the top complaint theme and respond to negative reviews professionally.",
        "expected_impact": "Higher conversion from the map pack.",
        "steps": ["Find the recurring complaint.", "Respond to every negative review."],
    },
    "posting": {
        "priority": Priority.SUGGESTED,
        "title": "Post weekly or at least monthly",
        "rationale": "Fresh posts can increase clicks and calls.",
        "expected_impact": "More engagement with your profile.",
        "steps": ["Post offers, recent jobs or seasonal tips.", "Post at least once a month."],
    },
    "citations": {
        "priority": Priority.IMPORTANT,
        "title": "Fix citation inconsistencies",
        "rationale": "Name, address, phone and website should match across major directories.",
        "expected_impact": "More trust and steadier local rankings.",
        "steps": ["Audit your directory listings.", "Correct every mismatch."],
    },
}

# Items no API can verify; shown with every self-audit and Pro result.
OWNER_CHECKLIST: tuple[str, ...] = (
    "Posts & Updates: publish weekly promos, projects, and seasonal offers.",
    "Review Responses: respond to every review (especially negatives) within 48 hours.",
    "Q&A: seed common questions and answer them clearly.",
    "Phone verification: confirm the phone verification status inside your profile.",
    "Description optimization: 200-400 chars with your core service and the area you serve.",
)


def sort_recommendations(
    recommendations: Iterable[Recommendation],
    limit: Optional[int] = None,
) -> list[Recommendation]:
    """Drop repeated ids, stable-sort by priority rank, then cap at *limit*."""
    seen: set[str] = set()
    unique: list[Recommendation] = []
    for rec in recommendations:
        if rec.id in seen:
            continue
        seen.add(rec.id)
        unique.append(rec)
    ordered = sorted(unique, key=lambda r: r.priority.rank)
    return ordered[:limit] if limit is not None else ordered


def _from_template(key: str, priority: Priority, **fmt: str) -> Recommendation:
    tpl = STANDARD_TEMPLATES[key]
    steps = [step.format(**fmt) if fmt else step for step in tpl["steps"]]
    return Recommendation.create(
        priority=priority,
        title=tpl["title"],
        rationale=tpl["rationale"],
        expected_impact=tpl["expected_impact"],
        steps=steps,
    )


def build_standard_recommendations(
    place: PlaceProfile,
    benchmark: Benchmark,
    industry: str = "",
) -> list[Recommendation]:
    """Evaluate the fixed Standard rule list against *place*."""
    recs: list[Recommendation] = []

    if not place.has_hours:
        recs.append(_from_template("hours", Priority.CRITICAL))
    if not place.phone:
        recs.append(_from_template("phone", Priority.CRITICAL))
    if not place.website:
        recs.append(_from_template("website", Priority.CRITICAL))

    photos = place.photo_count
    if photos < PHOTO_FLOOR or benchmark.gaps.photo_count < 0:
        severity = Priority.CRITICAL if photos < PHOTO_CRITICAL_FLOOR else Priority.IMPORTANT
        recs.append(_from_template("photos", severity))

    reviews = place.review_count or 0
    median_reviews = benchmark.medians.review_count or 0
    if median_reviews > 0 and reviews < median_reviews:
        critical = reviews < max(5, median_reviews / 2)
        recs.append(
            _from_template("reviews", Priority.CRITICAL if critical else Priority.IMPORTANT)
        )

    rating = place.rating or 0.0
    if 0 < rating < RATING_TARGET:
        recs.append(_from_template("rating", Priority.IMPORTANT))

    if len(place.types) < CATEGORY_TARGET:
        recs.append(_from_template("categories", Priority.SUGGESTED))

    if len(place.description or "") < DESCRIPTION_TARGET:
        keyword = (industry or "").strip()
        keyword_step = (
            f"Naturally include \"{keyword}\" and related services you offer."
            if keyword
            else "Include your top services and the local area you serve."
        )
        recs.append(_from_template("description", Priority.SUGGESTED, keyword_step=keyword_step))

    recs.append(_from_template("consult", Priority.IMPORTANT))
    return sort_recommendations(recs, limit=MAX_RECOMMENDATIONS)


def build_self_audit_recommendations(checklist: SelfAuditChecklist) -> list[Recommendation]:
    """One recommendation per weak checklist area, at most eight.

    An unanswered range counts as weak.
    """
    weak: list[str] = []
    if not checklist.has_primary_category_set or not checklist.has_secondary_categories:
        weak.append("categories")
    if not checklist.has_hours:
        weak.append("hours")
    if not checklist.has_phone:
        weak.append("phone")
    if not checklist.has_website:
        weak.append("website")
    if checklist.photo_count_range in (None, PhotoCountRange.UNDER_10, PhotoCountRange.FROM_10):
        weak.append("photos")
    if checklist.review_count_range in (None, ReviewCountRange.UP_TO_10, ReviewCountRange.FROM_11):
        weak.append("reviews")
    if checklist.rating_range in (None, RatingRange.UNDER_4, RatingRange.FROM_4_0):
        weak.append("rating")
    if checklist.post_frequency is PostFrequency.NONE or not checklist.posted_last_30_days:
        weak.append("posting")
    if not checklist.nap_consistent or not checklist.website_consistent:
        weak.append("citations")

    recs = []
    for key in weak:
        tpl = SELF_AUDIT_TEMPLATES[key]
        recs.append(Recommendation.create(
            priority=tpl["priority"],
            title=tpl["title"],
            rationale=tpl["rationale"],
            expected_impact=tpl["expected_impact"],
            steps=tpl["steps"],
        ))
    return sort_recommendations(recs, limit=MAX_SELF_AUDIT_RECOMMENDATIONS)


# Pro action rules: category -> (gap threshold, template).
PRO_ACTIONS: dict[str, dict] = {
    PROFILE_COMPLETENESS: {
        "threshold": 8,
        "title": "Fix profile completeness gaps",
        "rationale": "Incomplete profiles lose trust and relevance signals next to nearby competitors.",
        "time_required": "30-60 minutes",
        "steps": [
            "Verify hours (including weekends and holidays).",
            "Add or confirm phone and website.",
            "Improve the description to 200-400 chars with service and city.",
            "Add 2-4 strong secondary categories.",
        ],
    },
    REVIEW_PERFORMANCE: {
        "threshold": 8,
        "critical_at": 15,
        "title": "Close the review gap vs top competitors",
        "rationale": "Review volume and rating heavily influence both ranking and clicks.",
        "time_required": "1-2 hours to set up, then ongoing",
        "steps": [
            "Create a review link and a two-message request template.",
            "Ask every satisfied customer within 24-48 hours.",
            "Respond to every review (especially negatives) within 48 hours.",
        ],
    },
    VISUAL_ASSETS: {
        "threshold": 8,
        "title": "Increase photo volume and freshness",
        "rationale": "Competitors with stronger photo coverage win more clicks and calls.",
        "time_required": "45-90 minutes",
        "steps": [
            "Upload 20+ real photos (exterior, interior, team, work, results).",
            "Add 3-5 new photos monthly.",
            "Use consistent branding and avoid stock imagery.",
        ],
    },
    POSTING_ACTIVITY: {
        "threshold": 6,
        "title": "Post consistently",
        "rationale": "Posting keeps your profile active and can increase engagement signals.",
        "time_required": "15 minutes/week",
        "steps": [
            "Post weekly: offers, recent jobs, seasonal tips.",
            "Reuse content from social posts and keep it simple.",
            "Include a clear call to action (call, book, quote).",
        ],
    },
    CITATIONS_CONSISTENCY: {
        "threshold": 6,
        "title": "Fix citation consistency (NAP)",
        "rationale": "Inconsistent name, address and phone data reduces trust and can suppress rankings.",
        "time_required": "2-4 hours",
        "steps": [
            "Standardize business name, address and phone everywhere.",
            "Fix website URL mismatches across listings.",
            "Remove duplicates and outdated listings.",
        ],
    },
}

PRO_BASE_PRIORITY: dict[str, Priority] = {
    PROFILE_COMPLETENESS: Priority.CRITICAL,
    REVIEW_PERFORMANCE: Priority.IMPORTANT,
    VISUAL_ASSETS: Priority.IMPORTANT,
    POSTING_ACTIVITY: Priority.RECOMMENDED,
    CITATIONS_CONSISTENCY: Priority.IMPORTANT,
}


def impact_percent(gap: float, weight: float) -> float:
    """Weighted gap as a percentage; :meth:`Recommendation.create` bounds it to [1, 40]."""
    return 100 * clamp(gap * weight, 0, 40)


def build_pro_action_plan(
    subject_scores: Mapping[str, float],
    top3_average: Mapping[str, float],
) -> list[Recommendation]:
    """Turn category gaps vs the top-3 competitor average into an action plan.

    Args:
        subject_scores: Point-table category scores of the audited business.
        top3_average: Mean category scores of the three best-scoring competitors.

    Returns:
        At most 10 actions, critical first.
    """
    actions: list[Recommendation] = []
    for key, rule in PRO_ACTIONS.items():
        category_gap = (top3_average.get(key) or 0) - (subject_scores.get(key) or 0)
        if category_gap < rule["threshold"]:
            continue
        priority = PRO_BASE_PRIORITY[key]
        if "critical_at" in rule and category_gap >= rule["critical_at"]:
            priority = Priority.CRITICAL
        actions.append(Recommendation.create(
            priority=priority,
            title=rule["title"],
            rationale=rule["rationale"],
            expected_impact=PRO_EXPECTED_IMPACT,
            steps=rule["steps"],
            impact_percent=impact_percent(category_gap, PRO_WEIGHTS[key]),
            time_required=rule["time_required"],
        ))
    logger.debug("Pro action plan: %d actions", len(actions))
    return sort_recommendations(actions, limit=MAX_RECOMMENDATIONS)


def better_at(
    subject_scores: Mapping[str, float],
    competitor_scores: Mapping[str, float],
) -> list[str]:
    """Category labels where a competitor leads by 8+ points, largest lead first."""
    leads = []
    for key in PRO_WEIGHTS:
        delta = (competitor_scores.get(key) or 0) - (subject_scores.get(key) or 0)
        if delta >= BETTER_AT_THRESHOLD:
            leads.append((delta, CATEGORY_LABELS[key]))
    leads.sort(key=lambda item: item[0], reverse=True)
    return [label for _, label in leads[:BETTER_AT_LIMIT]]
