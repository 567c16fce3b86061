"""Enrich a keyword CSV with LLM classification and SERP-based KGR."""

from __future__ import annotations

import argparse
import asyncio
import csv
import json
import logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from kgrlens.core.exceptions import APIKeyMissingError, SerpQuotaExceededError
from kgrlens.core.kv_store import KeyValueStore, get_kv_store
from kgrlens.core.logging import setup_logging
from kgrlens.integrations.groq import GroqClient
from kgrlens.integrations.serp import SerpClient
from kgrlens.services.analysis.orchestrator import KeywordAnalysisOrchestrator
from kgrlens.services.analysis.types import AnalysisContext, KeywordInput
from kgrlens.services.model_directory.directory import ModelDirectory
from kgrlens.services.serp.ledger import SerpCreditLedger
from kgrlens.services.serp.pipeline import SerpEnrichmentPipeline

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_QUOTA = 2


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--input",
        help="CSV file with 'keyword' and 'volume' columns",
    )
    parser.add_argument("--category", default="", help="Product category of the site")
    parser.add_argument("--brand", default="", help="Brand name of the site")
    parser.add_argument(
        "--business-context",
        default="",
        help="Free-text business context injected into every prompt",
    )
    parser.add_argument("--skip-llm", action="store_true", help="Do not run LLM classification")
    parser.add_argument("--skip-serp", action="store_true", help="Do not run SERP/KGR analysis")
    parser.add_argument("--model", help="Select and persist the Groq model id to use")
    parser.add_argument(
        "--list-models",
        action="store_true",
        help="Print available Groq models and exit",
    )
    parser.add_argument("--output", help="Write the JSON document here (default: stdout)")
    return parser.parse_args(argv)


def load_keywords(path: Path) -> list[KeywordInput]:
    """Read ``keyword,volume`` rows; thousands separators in volume are accepted."""
    keywords: list[KeywordInput] = []
    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames or not {"keyword", "volume"} <= set(reader.fieldnames):
            raise ValueError("CSV must have 'keyword' and 'volume' columns")

        for line_number, row in enumerate(reader, start=2):
            keyword = (row.get("keyword") or "").strip()
            if not keyword:
                continue
            raw_volume = (row.get("volume") or "0").strip().replace(",", "")
            try:
                volume = int(raw_volume or 0)
            except ValueError as exc:
                raise ValueError(f"line {line_number}: invalid volume {row.get('volume')!r}") from exc
            keywords.append(KeywordInput(keyword=keyword, volume=volume))
    return keywords


def _progress_logger(stage: str) -> Callable[[float], None]:
    def _log(percent: float) -> None:
        logger.info("Progress", extra={"stage": stage, "percent": round(percent, 1)})

    return _log


async def run_analysis(
    keywords: list[KeywordInput],
    context: AnalysisContext,
    directory: ModelDirectory,
) -> dict[str, Any]:
    """Run LLM classification and return JSON-ready results."""
    async with GroqClient() as client:
        orchestrator = KeywordAnalysisOrchestrator(client, directory)
        results = await orchestrator.analyze_keywords(
            keywords,
            context,
            on_progress=_progress_logger("analysis"),
        )
    return {keyword: result.to_dict() for keyword, result in results.items()}


async def run_serp(
    keywords: list[KeywordInput],
    store: KeyValueStore,
) -> tuple[dict[str, Any], dict[str, int]]:
    """Run KGR analysis and return JSON-ready results plus the credit balance."""
    ledger = SerpCreditLedger(store)
    async with SerpClient() as client:
        pipeline = SerpEnrichmentPipeline(client, ledger)
        results = await pipeline.batch_analyze_keywords(
            keywords,
            on_progress=_progress_logger("serp"),
        )
    return (
        {keyword: result.to_dict() for keyword, result in results.items()},
        ledger.get_usage().to_dict(),
    )


def write_document(document: dict[str, Any], output: str | None) -> None:
    payload = json.dumps(document, indent=2, ensure_ascii=False)
    if output:
        Path(output).write_text(payload + "\n", encoding="utf-8")
    else:
        print(payload)


async def async_main(argv: Sequence[str] | None = None) -> int:
    """Async entrypoint."""
    args = parse_args(argv)
    setup_logging()

    store = get_kv_store()
    directory = ModelDirectory(store)

    if args.model:
        directory.set_current_model(args.model)

    if args.list_models:
        models = await directory.get_models()
        current = directory.get_current_model()
        write_document(
            {
                "current_model": current,
                "models": [model.to_dict() for model in models],
            },
            args.output,
        )
        return EXIT_OK

    if not args.input:
        print("--input is required unless --list-models is given", file=sys.stderr)
        return EXIT_ERROR

    try:
        keywords = load_keywords(Path(args.input))
    except (OSError, ValueError) as exc:
        print(f"Failed to load keywords: {exc}", file=sys.stderr)
        return EXIT_ERROR

    document: dict[str, Any] = {}

    if not args.skip_llm:
        if not args.category or not args.brand:
            print("--category and --brand are required for LLM analysis", file=sys.stderr)
            return EXIT_ERROR
        context = AnalysisContext(
            category=args.category,
            brand_name=args.brand,
            business_context=args.business_context,
        )
        try:
            document["analysis"] = await run_analysis(keywords, context, directory)
        except APIKeyMissingError as exc:
            print(str(exc), file=sys.stderr)
            return EXIT_ERROR

    if not args.skip_serp:
        try:
            document["serp"], document["serp_usage"] = await run_serp(keywords, store)
        except SerpQuotaExceededError as exc:
            print(f"Not enough SERP credits: {exc}", file=sys.stderr)
            return EXIT_QUOTA
        except APIKeyMissingError as exc:
            print(str(exc), file=sys.stderr)
            return EXIT_ERROR

    write_document(document, args.output)
    return EXIT_OK


def main() -> int:
    """Sync wrapper."""
    return asyncio.run(async_main())


if __name__ == "__main__":
    raise SystemExit(main())
