"""
RecommendationService — explicit, injectable state holder for one session.

Owns the current recommendation lists, the currently open explanation and
the outstanding telemetry tasks.  Everything else is passed in:

    listings   read-only catalog              (catalog.ListingsRepository)
    profiles   behavior profiles + snapshot   (personalization.ProfileBuilder)
    settings   per-user settings persistence  (db.repositories.SettingsRepository)
    telemetry  fire-and-forget event sink     (clients.telemetry.TelemetryDispatcher)
    explainer  lazy explanation generation    (recommendations.explainer)

Concurrency
-----------
``fetch_personalized``, ``fetch_new_listings`` and ``fetch_trending`` are
independent coroutines; ``refresh_all`` runs them with ``asyncio.gather``.
Each fetch reserves a sequence number before loading the catalog and its
result is applied only if no later fetch of the same list was applied first
(see ``recommendations.state``).  ``all_recommendations`` merges whichever
lists are resolved at call time.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from property_insights.catalog import ListingsRepository
from property_insights.clients.telemetry import TelemetryDispatcher
from property_insights.config import RecommendationsConfig
from property_insights.db.repositories.settings_repo import SettingsRepository
from property_insights.models.property import PropertyRecord
from property_insights.models.recommendation import (
    NO_EXPLANATION,
    Recommendation,
    RecommendationExplanation,
    RecommendationSettings,
)
from property_insights.personalization.profile import ProfileBuilder
from property_insights.recommendations.explainer import ExplanationGenerator
from property_insights.recommendations.ranker import (
    InterestCheck,
    check_property_interest,
    find_similar_properties,
    merge_all_recommendations,
    rank_new_listings,
    rank_personalized,
    rank_trending,
    to_recommendations,
)
from property_insights.recommendations.state import RecommendationLists
from property_insights.taxonomy.market_tables import MarketTables, get_market_tables
from property_insights.taxonomy.tiers import InteractionType, RecommendationSource
from property_insights.utils.time_utils import days_ago, utcnow

logger = logging.getLogger(__name__)

SYSTEM_USER = "system"


class RecommendationService:
    """Session-scoped recommendation state and operations."""

    def __init__(
        self,
        listings: ListingsRepository,
        profiles: ProfileBuilder,
        settings: SettingsRepository,
        telemetry: Optional[TelemetryDispatcher] = None,
        explainer: Optional[ExplanationGenerator] = None,
        config: Optional[RecommendationsConfig] = None,
        tables: Optional[MarketTables] = None,
    ) -> None:
        self.listings = listings
        self.profiles = profiles
        self.settings = settings
        self.telemetry = telemetry or profiles.telemetry
        self.explainer = explainer or ExplanationGenerator()
        self.config = config or RecommendationsConfig()
        self.tables = tables or get_market_tables()
        self.lists = RecommendationLists()
        self._explanation: Optional[tuple[str, RecommendationExplanation]] = None

    # ── Settings ──────────────────────────────────────────────────────────────

    def get_settings(self, user_id: str) -> RecommendationSettings:
        return self.settings.get(user_id)

    def update_settings(self, user_id: str, **changes) -> RecommendationSettings:
        return self.settings.update(user_id, **changes)

    # ── List fetches ──────────────────────────────────────────────────────────

    async def _catalog(self) -> list[PropertyRecord]:
        return await asyncio.to_thread(self.listings.list_all)

    async def fetch_personalized(self, user_id: str) -> list[Recommendation]:
        """Refresh the Personalized list; returns the list as currently applied."""
        source = RecommendationSource.PERSONALIZED
        seq = self.lists.begin(source)
        settings = self.settings.get(user_id)
        recs: list[Recommendation] = []
        if settings.enable_personalized:
            snapshot = self.profiles.get_preference_snapshot(user_id)
            catalog = await self._catalog()
            ranked = rank_personalized(
                catalog, snapshot, settings.min_match_score,
                limit=self.config.personalized_limit,
                max_reasons=self.config.max_reasons,
            )
            recs = to_recommendations(ranked, user_id)
        self.lists.apply(source, seq, recs)
        return self.lists.get(source) or []

    async def fetch_new_listings(
        self,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> list[Recommendation]:
        """Refresh New Listings: created after the user's last-seen time.

        Without a last-seen time the cutoff is ``new_listing_window_days`` ago.
        Gated by ``enable_personalized``.
        """
        source = RecommendationSource.NEW_LISTING
        seq = self.lists.begin(source)
        settings = self.settings.get(user_id)
        recs: list[Recommendation] = []
        if settings.enable_personalized:
            profile = self.profiles.get_profile(user_id)
            cutoff = profile.last_seen_at or days_ago(self.config.new_listing_window_days, now)
            catalog = await self._catalog()
            ranked = rank_new_listings(
                catalog, self.profiles.snapshot_from(profile), settings.min_match_score,
                cutoff=cutoff,
                limit=self.config.new_listing_limit,
                max_reasons=self.config.max_reasons,
            )
            recs = to_recommendations(ranked, user_id, now)
        self.lists.apply(source, seq, recs)
        return self.lists.get(source) or []

    async def fetch_trending(self, user_id: str) -> list[Recommendation]:
        """Refresh Trending (no match-score threshold)."""
        source = RecommendationSource.TRENDING
        seq = self.lists.begin(source)
        recs: list[Recommendation] = []
        if self.settings.get(user_id).enable_trending:
            catalog = await self._catalog()
            ranked = rank_trending(
                catalog, self.profiles.store.view_counts(),
                limit=self.config.trending_limit, tables=self.tables,
            )
            recs = to_recommendations(ranked, SYSTEM_USER)
        self.lists.apply(source, seq, recs)
        return self.lists.get(source) or []

    async def fetch_similar(self, user_id: str, property_id: str) -> list[Recommendation]:
        """Properties similar to ``property_id``; empty for an unknown id."""
        source = RecommendationSource.SIMILAR_PROPERTY
        seq = self.lists.begin(source)
        recs: list[Recommendation] = []
        reference = self.listings.get(property_id)
        if reference is not None and self.settings.get(user_id).enable_similar_properties:
            catalog = await self._catalog()
            ranked = find_similar_properties(reference, catalog, limit=self.config.similar_limit)
            recs = to_recommendations(ranked, user_id)
        self.lists.apply(source, seq, recs)
        return self.lists.get(source) or []

    async def refresh_all(self, user_id: str) -> list[Recommendation]:
        """Fetch the three merged lists concurrently and return the merged view."""
        await asyncio.gather(
            self.fetch_personalized(user_id),
            self.fetch_new_listings(user_id),
            self.fetch_trending(user_id),
        )
        return self.all_recommendations(user_id)

    def all_recommendations(self, user_id: str) -> list[Recommendation]:
        """Merged view of the lists resolved so far, capped per settings."""
        cap = self.settings.get(user_id).max_recommendations_per_day
        return merge_all_recommendations(self.lists.resolved(), cap=cap)

    def get_list(self, source: RecommendationSource) -> Optional[list[Recommendation]]:
        """Current list for ``source``; ``None`` while unresolved."""
        return self.lists.get(source)

    def mark_listings_seen(self, user_id: str, now: Optional[datetime] = None) -> None:
        self.profiles.mark_listings_seen(user_id, now)

    # ── Item operations ───────────────────────────────────────────────────────

    def mark_recommendation_as_viewed(self, rec_id: str) -> bool:
        """Set ``is_viewed`` on ``rec_id``.  Idempotent.

        Returns:
            False if no current list holds ``rec_id``.
        """
        rec = self.lists.find(rec_id)
        if rec is None:
            return False
        if not rec.is_viewed:
            self.lists.update_where(
                lambda r: r.id == rec_id,
                lambda r: r.model_copy(update={"is_viewed": True}),
            )
        return True

    def track_recommendation_interaction(
        self,
        user_id: str,
        rec_id: str,
        kind: InteractionType,
    ) -> None:
        """Report an interaction to telemetry.  Never raises."""
        try:
            rec = self.lists.find(rec_id)
            self.telemetry.dispatch(
                "recommendation_interaction",
                {
                    "user_id": user_id,
                    "recommendation_id": rec_id,
                    "property_id": rec.property_id if rec else None,
                    "source": rec.source.value if rec else None,
                    "interaction": InteractionType(kind).value,
                    "at": utcnow().isoformat(),
                },
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Interaction tracking failed | rec_id=%s | %s: %s",
                rec_id, type(exc).__name__, exc,
            )

    def check_property_interest(self, user_id: str, prop: PropertyRecord) -> InterestCheck:
        settings = self.settings.get(user_id)
        return check_property_interest(
            prop,
            self.profiles.get_preference_snapshot(user_id),
            settings.min_match_score,
            self.config.max_reasons,
        )

    # ── Explanations ──────────────────────────────────────────────────────────

    @property
    def current_explanation(self) -> Optional[RecommendationExplanation]:
        return self._explanation[1] if self._explanation else None

    async def request_explanation(self, user_id: str, rec_id: str) -> RecommendationExplanation:
        """Generate and open the explanation for ``rec_id``.

        Replaces any explanation already open.  Unknown ids and text-service
        failures both yield ``NO_EXPLANATION``.
        """
        self.close_explanation()
        rec = self.lists.find(rec_id)
        if rec is None:
            return NO_EXPLANATION

        snapshot = self.profiles.get_preference_snapshot(user_id)
        explanation = await self.explainer.generate(rec, snapshot)
        self._explanation = (rec_id, explanation)
        self.lists.update_where(
            lambda r: r.id == rec_id,
            lambda r: r.model_copy(update={"explanation": explanation}),
        )
        return explanation

    def close_explanation(self) -> None:
        """Discard the open explanation, if any."""
        if self._explanation is None:
            return
        rec_id, _ = self._explanation
        self._explanation = None
        self.lists.update_where(
            lambda r: r.id == rec_id,
            lambda r: r.model_copy(update={"explanation": None}),
        )

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def drain(self) -> None:
        """Wait for outstanding telemetry deliveries."""
        await self.telemetry.drain()
