"""
Per-property analysis bundle and batch helpers.

``generate_property_analysis`` runs the three engines for one property:

    predict_property_price -> analyze_investment
    analyze_market_trend   (independent)
    find_similar           (ids of the closest catalog entries)

Batch functions (``analyze_catalog``, ``find_investment_opportunities``)
catch ``InputValidationError`` / ``ComputationError`` per property, log a
WARNING, and exclude only that property.  Any other exception propagates.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence

from property_insights.analysis.investment import analyze_investment, investment_score
from property_insights.analysis.market_trend import analyze_market_trend
from property_insights.analysis.valuation import predict_property_price
from property_insights.errors import ComputationError, InputValidationError
from property_insights.models.analysis import InvestmentAnalysis, PropertyAnalysis
from property_insights.models.property import PropertyRecord
from property_insights.recommendations.similarity import find_similar
from property_insights.taxonomy.market_tables import MarketTables
from property_insights.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

SIMILAR_PROPERTY_COUNT = 3


@dataclass(frozen=True)
class AnalysisFailure:
    """One property excluded from a batch."""

    property_id: Optional[str]
    error_type: str
    message: str


@dataclass
class BatchAnalysisResult:
    """Output of ``analyze_catalog``.

    Attributes:
        analyses: Successful analyses, in input order.
        failures: Excluded properties, in input order.
    """

    analyses: list[PropertyAnalysis] = field(default_factory=list)
    failures: list[AnalysisFailure] = field(default_factory=list)

    @property
    def n_analyzed(self) -> int:
        return len(self.analyses)

    @property
    def n_failed(self) -> int:
        return len(self.failures)


@dataclass(frozen=True)
class InvestmentOpportunity:
    """A property ranked by ``roi_5y * potential multiplier``."""

    property: PropertyRecord
    analysis: InvestmentAnalysis
    score: float


def _record_failure(
    prop: PropertyRecord,
    exc: InputValidationError | ComputationError,
    stage: str,
) -> AnalysisFailure:
    logger.warning(
        "%s excluded property | property_id=%s | %s: %s",
        stage, prop.id, type(exc).__name__, exc,
    )
    return AnalysisFailure(
        property_id=exc.property_id or prop.id,
        error_type=type(exc).__name__,
        message=str(exc),
    )


def generate_property_analysis(
    prop: PropertyRecord,
    catalog: Sequence[PropertyRecord] = (),
    rng: Optional[random.Random] = None,
    as_of: Optional[date] = None,
    tables: Optional[MarketTables] = None,
) -> PropertyAnalysis:
    """Bundle prediction, investment analysis, trend and similar ids.

    Raises:
        InputValidationError: If ``prop`` cannot be valued.
        ComputationError:     If ROI cannot be computed.
    """
    prediction = predict_property_price(prop, as_of=as_of, tables=tables)
    investment = analyze_investment(prop, prediction, as_of=as_of, tables=tables)
    trend = analyze_market_trend(prop, rng=rng, as_of=as_of, tables=tables)
    similar = find_similar(prop, catalog, limit=SIMILAR_PROPERTY_COUNT)

    return PropertyAnalysis(
        property_id=prop.id,
        price_prediction=prediction,
        investment_analysis=investment,
        market_trend=trend,
        similar_properties=tuple(candidate.id for candidate, _ in similar),
        last_updated=utcnow(),
    )


def analyze_catalog(
    properties: Sequence[PropertyRecord],
    rng: Optional[random.Random] = None,
    as_of: Optional[date] = None,
    tables: Optional[MarketTables] = None,
) -> BatchAnalysisResult:
    """Analyse every property in ``properties``; bad records are excluded.

    ``properties`` also serves as the catalog for similar-property lookup.
    """
    result = BatchAnalysisResult()
    for prop in properties:
        try:
            analysis = generate_property_analysis(
                prop, catalog=properties, rng=rng, as_of=as_of, tables=tables
            )
        except (InputValidationError, ComputationError) as exc:
            result.failures.append(_record_failure(prop, exc, "Analysis"))
            continue
        result.analyses.append(analysis)

    logger.info(
        "Catalog analysis complete | analyzed=%d | excluded=%d",
        result.n_analyzed, result.n_failed,
    )
    return result


def find_investment_opportunities(
    properties: Iterable[PropertyRecord],
    count: int = 5,
    as_of: Optional[date] = None,
    tables: Optional[MarketTables] = None,
) -> list[InvestmentOpportunity]:
    """Top ``count`` properties by ``roi_5y * potential multiplier``."""
    ranked: list[InvestmentOpportunity] = []
    for prop in properties:
        try:
            prediction = predict_property_price(prop, as_of=as_of, tables=tables)
            analysis = analyze_investment(prop, prediction, as_of=as_of, tables=tables)
        except (InputValidationError, ComputationError) as exc:
            _record_failure(prop, exc, "Opportunity scan")
            continue
        ranked.append(InvestmentOpportunity(prop, analysis, investment_score(analysis)))

    ranked.sort(key=lambda o: -o.score)
    return ranked[:count]


class AnalysisCache:
    """Memoizes ``PropertyAnalysis`` by property id.

    Entries are only replaced by ``refresh=True`` or removed by
    ``invalidate``/``clear``; there is no expiry.  Every entry is computed
    against the ``tables`` given at construction (the shared tables when
    omitted).
    """

    def __init__(self, tables: Optional[MarketTables] = None) -> None:
        self.tables = tables
        self._entries: dict[str, PropertyAnalysis] = {}

    def __contains__(self, property_id: object) -> bool:
        return property_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, property_id: str) -> Optional[PropertyAnalysis]:
        """Cached analysis, or ``None`` when not computed yet."""
        return self._entries.get(property_id)

    def get_or_compute(
        self,
        prop: PropertyRecord,
        catalog: Sequence[PropertyRecord] = (),
        rng: Optional[random.Random] = None,
        as_of: Optional[date] = None,
        refresh: bool = False,
    ) -> PropertyAnalysis:
        if not refresh and prop.id in self._entries:
            return self._entries[prop.id]
        analysis = generate_property_analysis(
            prop, catalog=catalog, rng=rng, as_of=as_of, tables=self.tables
        )
        self._entries[prop.id] = analysis
        return analysis

    def invalidate(self, property_id: str) -> None:
        self._entries.pop(property_id, None)

    def clear(self) -> None:
        self._entries.clear()
