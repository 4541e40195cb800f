"""
property-insights — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Load inputs (catalog / behavior-event JSON files).
  4. Run the analysis or recommendation operation.
  5. Report the result to stdout.

Install and run::

    pip install -e .
    property-insights --help
    property-insights validate-config
    property-insights init-db
    property-insights analyze --catalog data/catalog.json --property-id p-1 --seed 7
    property-insights opportunities --catalog data/catalog.json --count 5
    property-insights opportunities --catalog data/catalog.json --forecast
    property-insights appraise --request data/appraisal.json --seed 7
    property-insights project --catalog data/catalog.json --property-id p-1 --years 10
    property-insights trending-neighborhoods
    property-insights recommend --catalog data/catalog.json --user u-1 --events data/events.json
    property-insights settings-set --user u-1 --min-match-score 0.6 --no-trending
    property-insights settings-show --user u-1

Behavior-event file format (JSON list, oldest first)::

    [
      {"type": "search",  "query": "3 bed house downtown"},
      {"type": "view",    "propertyId": "p-1", "duration": 45},
      {"type": "filters", "filters": {"propertyType": "house", "priceMin": 250000, "priceMax": 450000}}
    ]
"""

from __future__ import annotations

import asyncio
import json
import random
from pathlib import Path
from typing import Any, Optional

import typer

app = typer.Typer(
    name="property-insights",
    help="Real-estate valuation, market trends and personalized recommendations.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from property_insights.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config) -> None:
    from property_insights.utils.logging import configure_logging
    configure_logging(config.logging)


def _load_catalog_or_exit(catalog: str):
    from property_insights.catalog import load_catalog_file

    try:
        return load_catalog_file(Path(catalog))
    except (OSError, ValueError) as exc:
        typer.echo(f"[ERROR] Could not load catalog: {exc}", err=True)
        raise typer.Exit(code=1)


def _database_config(config, db_path: Optional[str]):
    if db_path:
        return config.database.model_copy(update={"db_path": db_path})
    return config.database


def _settings_repo(conn, config):
    from property_insights.db.repositories.settings_repo import SettingsRepository
    from property_insights.models.recommendation import RecommendationSettings

    defaults = RecommendationSettings(
        min_match_score=config.recommendations.default_min_match_score
    )
    return SettingsRepository(conn, defaults=defaults)


def _make_rng(config, seed: Optional[int]) -> random.Random:
    chosen = seed if seed is not None else config.market.random_seed
    return random.Random(chosen)


def _replay_events(profiles, listings, user_id: str, events: list[dict[str, Any]]) -> int:
    """Feed behavior events from a file into the profile builder."""
    from property_insights.models.behavior import FilterSet

    applied = 0
    for event in events:
        kind = event.get("type")
        if kind == "search":
            profiles.track_search(user_id, event["query"])
        elif kind == "view":
            prop = listings.get(event.get("propertyId") or event.get("property_id"))
            if prop is None:
                typer.echo(f"  [WARN] view of unknown property skipped: {event}", err=True)
                continue
            profiles.track_property_view(user_id, prop, event.get("duration"))
        elif kind == "filters":
            profiles.track_filters(user_id, FilterSet.model_validate(event.get("filters", {})))
        else:
            typer.echo(f"  [WARN] unknown event type skipped: {kind!r}", err=True)
            continue
        applied += 1
    return applied


def _print_recommendations(title: str, recs) -> None:
    typer.echo(f"{title} ({len(recs)})")
    if not recs:
        typer.echo("  (none)")
    for rec in recs:
        prop = rec.property
        typer.echo(
            f"  {prop.id:<10} {prop.title[:32]:<32} ${prop.price:>12,.0f}  "
            f"score={rec.match_score:.2f}  [{rec.source.value}]"
        )
        for reason in rec.reasons:
            typer.echo(f"      - {reason}")


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file (default: config/default.toml)."
    ),
    show_full: bool = typer.Option(False, "--full", help="Print the full config as JSON."),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:      {config.database.db_path}")
    typer.echo(f"  Log level:          {config.logging.level}")
    typer.echo(f"  Min match score:    {config.recommendations.default_min_match_score}")
    typer.echo(f"  Market seed:        {config.market.random_seed}")
    typer.echo(f"  Telemetry URL:      {config.services.telemetry_url or '(disabled)'}")
    typer.echo(f"  Explanation URL:    {config.services.explanation_url or '(templates)'}")
    typer.echo(f"  Debug mode:         {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))


@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Create the SQLite database and apply the schema.  Safe to re-run."""
    from property_insights.db.connection import open_database
    from property_insights.db.schema import ALL_TABLE_NAMES

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    db = _database_config(config, db_path)
    typer.echo(f"Initializing database at: {db.db_path}")
    with open_database(db):
        pass
    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("analyze")
def analyze(
    catalog: str = typer.Option(..., "--catalog", help="JSON catalog file."),
    property_id: Optional[str] = typer.Option(None, "--property-id", help="Analyse one property only."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the market-trend jitter."),
    as_json: bool = typer.Option(False, "--json", help="Print analyses as JSON."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Price prediction, investment analysis and market trend per property."""
    from property_insights.analysis.pipeline import analyze_catalog, generate_property_analysis
    from property_insights.errors import ComputationError, InputValidationError

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    listings = _load_catalog_or_exit(catalog)
    rng = _make_rng(config, seed)
    properties = listings.list_all()

    if property_id is not None:
        prop = listings.get(property_id)
        if prop is None:
            typer.echo(f"[ERROR] Property '{property_id}' not found in catalog.", err=True)
            raise typer.Exit(code=1)
        try:
            analyses = [generate_property_analysis(prop, catalog=properties, rng=rng)]
        except (InputValidationError, ComputationError) as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)
        failures = []
    else:
        result = analyze_catalog(properties, rng=rng)
        analyses, failures = result.analyses, result.failures

    if as_json:
        typer.echo(json.dumps([a.model_dump(mode="json") for a in analyses], indent=2))
        return

    for analysis in analyses:
        pred = analysis.price_prediction
        inv = analysis.investment_analysis
        trend = analysis.market_trend
        typer.echo(f"{analysis.property_id}")
        typer.echo(
            f"  Price ${pred.current_price:,.0f} -> 1y ${pred.predicted_price_1y:,.0f} | "
            f"3y ${pred.predicted_price_3y:,.0f} | 5y ${pred.predicted_price_5y:,.0f}  "
            f"(confidence: {pred.confidence.value})"
        )
        typer.echo(
            f"  ROI 5y {inv.roi_5y:.1f}%  potential: {inv.potential.value}  risk: {inv.risk_level.value}"
        )
        typer.echo(
            f"  Market {trend.neighborhood}: trend {trend.current_trend:.1f}%  "
            f"forecast {trend.forecast:.1f}%  demand {trend.demand_level.value}  "
            f"supply {trend.supply_level.value}"
        )
        if analysis.similar_properties:
            typer.echo(f"  Similar: {', '.join(analysis.similar_properties)}")

    for failure in failures:
        typer.echo(f"  [SKIPPED] {failure.property_id}: {failure.message}")


@app.command("opportunities")
def opportunities(
    catalog: str = typer.Option(..., "--catalog", help="JSON catalog file."),
    count: int = typer.Option(5, "--count", min=1, help="Number of opportunities to list."),
    forecast: bool = typer.Option(
        False, "--forecast", help="Rank by regional and category forecasts instead of ROI."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Top investment opportunities by 5-year ROI weighted by potential tier."""
    from property_insights.analysis.forecast import find_market_opportunities
    from property_insights.analysis.pipeline import find_investment_opportunities

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    listings = _load_catalog_or_exit(catalog)

    if forecast:
        scored = find_market_opportunities(listings.list_all(), count=count)
        typer.echo(f"Top {len(scored)} forecast opportunities")
        for rank, opp in enumerate(scored, start=1):
            typer.echo(
                f"  {rank}. {opp.property.id:<10} ${opp.property.price:>12,.0f}  "
                f"score={opp.score:.1f}"
            )
        return

    ranked = find_investment_opportunities(listings.list_all(), count=count)
    typer.echo(f"Top {len(ranked)} investment opportunities")
    for rank, opp in enumerate(ranked, start=1):
        typer.echo(
            f"  {rank}. {opp.property.id:<10} ${opp.property.price:>12,.0f}  "
            f"ROI 5y {opp.analysis.roi_5y:5.1f}%  {opp.analysis.potential.value:<10} "
            f"score={opp.score:.1f}"
        )


@app.command("appraise")
def appraise(
    request_path: str = typer.Option(..., "--request", help="JSON file describing the property."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the estimate jitter."),
    as_json: bool = typer.Option(False, "--json", help="Print the appraisal as JSON."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Detailed appraisal with comparable sales and value drivers."""
    from pydantic import ValidationError

    from property_insights.analysis.appraisal import appraise_property
    from property_insights.models.appraisal import AppraisalRequest

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    try:
        request = AppraisalRequest.model_validate_json(Path(request_path).read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        typer.echo(f"[ERROR] Could not load appraisal request: {exc}", err=True)
        raise typer.Exit(code=1)

    result = appraise_property(request, rng=_make_rng(config, seed))
    if as_json:
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    typer.echo(f"Estimated value ${result.estimated_value:,.0f}  (confidence {result.confidence}%)")
    typer.echo(f"  Range ${result.value_range.low:,.0f} - ${result.value_range.high:,.0f}")
    typer.echo(
        f"  Market: neighborhood {result.market.neighborhood_growth:.1f}%  "
        f"city {result.market.city_growth:.1f}%  ${result.market.price_per_sqft:,.0f}/sqft"
    )
    for comp in result.comparables:
        typer.echo(
            f"  Comparable {comp.address}: ${comp.price:,.0f}  "
            f"{comp.distance_miles:.1f} mi  similarity {comp.similarity}%"
        )
    for factor in result.factors:
        typer.echo(f"  {factor.name:<15} {factor.impact:+.0f}%  {factor.description}")


@app.command("project")
def project(
    catalog: str = typer.Option(..., "--catalog", help="JSON catalog file."),
    property_id: str = typer.Option(..., "--property-id", help="Property to project."),
    years: int = typer.Option(5, "--years", min=0, help="Projection horizon in years."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Compound-growth projection of one property's value."""
    from property_insights.analysis.forecast import project_future_value
    from property_insights.errors import InputValidationError

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    listings = _load_catalog_or_exit(catalog)
    prop = listings.get(property_id)
    if prop is None:
        typer.echo(f"[ERROR] Property '{property_id}' not found in catalog.", err=True)
        raise typer.Exit(code=1)
    try:
        projection = project_future_value(prop, years=years)
    except InputValidationError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(
        f"{prop.id}: ${projection.current_value:,.0f} -> ${projection.future_value:,.0f} "
        f"in {projection.years}y at {projection.growth_rate:.1f}%/yr "
        f"(confidence: {projection.confidence.value})"
    )


@app.command("trending-neighborhoods")
def trending_neighborhoods(
    count: int = typer.Option(5, "--count", min=1, help="Number of neighborhoods."),
) -> None:
    """Neighborhoods with the highest annual growth rate."""
    from property_insights.analysis.market_trend import find_trending_neighborhoods

    for rank, (name, rate) in enumerate(find_trending_neighborhoods(count), start=1):
        typer.echo(f"  {rank}. {name:<15} {rate:.1f}%")


@app.command("recommend")
def recommend(
    catalog: str = typer.Option(..., "--catalog", help="JSON catalog file."),
    user: str = typer.Option(..., "--user", help="User id."),
    events: Optional[str] = typer.Option(None, "--events", help="JSON behavior-event file."),
    explain: bool = typer.Option(False, "--explain", help="Explain the top recommendation."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Replay behavior events and print the user's recommendation lists."""
    from property_insights.clients.explanation import HttpExplanationClient
    from property_insights.clients.telemetry import HttpTelemetrySink, TelemetryDispatcher
    from property_insights.db.connection import open_database
    from property_insights.personalization.profile import ProfileBuilder
    from property_insights.recommendations.explainer import ExplanationGenerator
    from property_insights.recommendations.service import RecommendationService
    from property_insights.taxonomy.tiers import RecommendationSource

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    listings = _load_catalog_or_exit(catalog)

    event_rows: list[dict[str, Any]] = []
    if events:
        try:
            event_rows = json.loads(Path(events).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            typer.echo(f"[ERROR] Could not load events: {exc}", err=True)
            raise typer.Exit(code=1)

    services = config.services
    sink = (
        HttpTelemetrySink(services.telemetry_url, services.timeout_seconds)
        if services.telemetry_url else None
    )
    text_client = (
        HttpExplanationClient(services.explanation_url, services.timeout_seconds)
        if services.explanation_url else None
    )

    async def _run(service: RecommendationService) -> None:
        merged = await service.refresh_all(user)
        _print_recommendations("Personalized", service.get_list(RecommendationSource.PERSONALIZED) or [])
        _print_recommendations("New listings", service.get_list(RecommendationSource.NEW_LISTING) or [])
        _print_recommendations("Trending", service.get_list(RecommendationSource.TRENDING) or [])
        _print_recommendations("All recommendations", merged)

        if explain and merged:
            explanation = await service.request_explanation(user, merged[0].id)
            typer.echo("")
            typer.echo(f"Why {merged[0].property.id}: {explanation.summary}")
            for factor in explanation.factors:
                typer.echo(f"  {factor.title:<22} {factor.score:.1f}/5  {factor.description}")
            if explanation.conclusion:
                typer.echo(f"  {explanation.conclusion}")
            service.close_explanation()

        await service.drain()

    with open_database(_database_config(config, db_path)) as conn:
        telemetry = TelemetryDispatcher(sink, max_queue=services.telemetry_queue_size)
        profiles = ProfileBuilder(telemetry=telemetry, config=config.personalization)
        applied = _replay_events(profiles, listings, user, event_rows)
        if event_rows:
            typer.echo(f"Replayed {applied}/{len(event_rows)} behavior events for {user}.")

        service = RecommendationService(
            listings=listings,
            profiles=profiles,
            settings=_settings_repo(conn, config),
            telemetry=telemetry,
            explainer=ExplanationGenerator(text_client),
            config=config.recommendations,
        )
        asyncio.run(_run(service))


@app.command("settings-show")
def settings_show(
    user: str = typer.Option(..., "--user", help="User id."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Print the user's recommendation settings (defaults if never saved)."""
    from property_insights.db.connection import open_database

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with open_database(_database_config(config, db_path)) as conn:
        settings = _settings_repo(conn, config).get(user)
    typer.echo(json.dumps(settings.model_dump(by_alias=True), indent=2))


@app.command("settings-set")
def settings_set(
    user: str = typer.Option(..., "--user", help="User id."),
    min_match_score: Optional[float] = typer.Option(None, "--min-match-score", min=0.0, max=1.0),
    max_per_day: Optional[int] = typer.Option(None, "--max-per-day", min=0),
    personalized: Optional[bool] = typer.Option(None, "--personalized/--no-personalized"),
    similar: Optional[bool] = typer.Option(None, "--similar/--no-similar"),
    trending: Optional[bool] = typer.Option(None, "--trending/--no-trending"),
    notify: Optional[bool] = typer.Option(None, "--notify/--no-notify"),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Update some of the user's recommendation settings."""
    from property_insights.db.connection import open_database

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    changes = {
        key: value
        for key, value in {
            "min_match_score": min_match_score,
            "max_recommendations_per_day": max_per_day,
            "enable_personalized": personalized,
            "enable_similar_properties": similar,
            "enable_trending": trending,
            "notify_on_new_matches": notify,
        }.items()
        if value is not None
    }
    if not changes:
        typer.echo("[ERROR] Nothing to update; pass at least one setting option.", err=True)
        raise typer.Exit(code=1)

    with open_database(_database_config(config, db_path)) as conn:
        settings = _settings_repo(conn, config).update(user, **changes)
    typer.echo(f"[OK] Settings updated for {user}.")
    typer.echo(json.dumps(settings.model_dump(by_alias=True), indent=2))


if __name__ == "__main__":
    app()
