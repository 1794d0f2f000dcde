"""
Operator diagnostics for the ETL.

    robotics-hub doctor   # check required configuration
    robotics-hub smoke    # call RSS, the LLM and CoinGecko once each (no DB writes)
"""
import argparse
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, List

from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .services.batch import build_http_client, build_orchestrator, try_build_llm_client
from .services.feeds import RawNewsData
from .services.seed import SOURCE_SEED_DATA

logger = logging.getLogger(__name__)

REQUIRED_SETTINGS = [
    ("DATABASE_URL", "Needed for migrations and the batch job."),
    ("LLM_API_KEY", "Required to call the LLM for enrichment."),
    ("COINGECKO_API_KEY", "Required to snapshot robotics tokens."),
    ("CRON_SECRET", "Protects the scheduled ETL endpoint."),
]

SAMPLE_RAW_NEWS = RawNewsData(
    title_raw="Sample robotics breakthrough secures Series B funding",
    content_raw=(
        "Fictional humanoid robotics startup RoboSample closed a $50M Series B "
        "to accelerate factory automation deployments."
    ),
    url="https://example.com/sample-robotics-news",
    published_at=datetime.utcnow(),
)


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str


def _has_value(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def run_doctor(settings: Settings) -> List[CheckResult]:
    return [
        CheckResult(key, _has_value(getattr(settings, key, None)), message)
        for key, message in REQUIRED_SETTINGS
    ]


async def run_smoke(settings: Settings) -> List[CheckResult]:
    llm_client = try_build_llm_client(settings)
    results: List[CheckResult] = []

    async with build_http_client() as http_client:
        orchestrator = build_orchestrator(settings, http_client, llm_client)

        async def rss() -> str:
            if not SOURCE_SEED_DATA:
                raise RuntimeError("No RSS sources configured in seed data.")
            source = SOURCE_SEED_DATA[0]
            entries = await orchestrator.feeds.fetch(source["url"])
            if not entries:
                raise RuntimeError(f"No entries returned from {source['name']}.")
            sample = " | ".join(e.title_raw for e in entries[:3])
            return f"Fetched {len(entries)} entries from {source['name']}. Sample: {sample}"

        async def enrichment() -> str:
            enriched = await orchestrator.enricher.enrich(SAMPLE_RAW_NEWS)
            tags = ", ".join(enriched.robot_tags) or "none"
            return (
                f"Category: {enriched.category}, "
                f"Importance: {enriched.importance_score}, Tags: {tags}"
            )

        async def market() -> str:
            tokens = await orchestrator.market.fetch_robotics_tokens()
            if not tokens:
                raise RuntimeError("CoinGecko returned zero robotics tokens.")
            leader = tokens[0]
            return (
                f"Fetched {len(tokens)} tokens. Leader: {leader.name} "
                f"({leader.symbol.upper()}) at ${leader.price_usd}"
            )

        steps: List[tuple[str, Callable[[], Awaitable[str]]]] = [
            ("RSS ingestion", rss),
            ("LLM enrichment", enrichment),
            ("CoinGecko snapshot", market),
        ]
        try:
            for name, step in steps:
                try:
                    results.append(CheckResult(name, True, await step()))
                except Exception as e:
                    logger.warning("Smoke step '%s' failed", name, exc_info=True)
                    results.append(CheckResult(name, False, str(e) or repr(e)))
        finally:
            if llm_client is not None:
                await llm_client.close()

    return results


def _print_results(results: List[CheckResult]) -> int:
    for result in results:
        status = "✅" if result.ok else "❌"
        print(f"{status} {result.name} - {result.detail}")
    return sum(1 for r in results if not r.ok)


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="robotics-hub", description="Robotics Hub ETL diagnostics")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("doctor", help="Check that required configuration is present")
    sub.add_parser("smoke", help="Call each external service once without touching the database")
    args = parser.parse_args(argv)

    configure_logging()
    settings = get_settings()

    if args.command == "doctor":
        print("Running ETL environment checks...")
        env_path = Path(".env").resolve()
        print(f".env found at {env_path}" if env_path.exists() else ".env is missing (only process environment is used).")
        failures = _print_results(run_doctor(settings))
        if failures:
            print(f"\nMissing {failures} required setting(s).")
            return 1
        print("\nAll required settings are configured.")
        return 0

    print("Running ETL smoke test...")
    failures = _print_results(asyncio.run(run_smoke(settings)))
    if failures:
        print(f"\n{failures} step(s) failed.")
        return 1
    print("\nAll ETL steps succeeded.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
