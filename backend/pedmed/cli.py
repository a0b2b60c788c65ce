"""
Command-line lookup against a CSV export of the drug sheet.

Usage:
    pedmed-ask "meropenem liều cho viêm màng não"
    pedmed-ask "paracetamol chống chỉ định" --csv data/pedmedvnch.csv --json
    pedmed-ask "ibuprofen liều trẻ em" --provider groq
"""
import argparse
import json
import sys
from typing import List, Optional

from dotenv import load_dotenv

from pedmed.catalog.entity_catalog import CatalogStore
from pedmed.catalog.providers import CsvKnowledgeBaseProvider
from pedmed.core.config import Settings
from pedmed.generation.backends import create_backend
from pedmed.services.query_service import DrugQueryPipeline, list_topics
from pedmed.utils.logging import get_logger, setup_logging_from_settings

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pedmed-ask",
        description="Answer a pediatric drug question from the drug sheet.",
        epilog="Topics: " + "; ".join(list_topics()),
    )
    parser.add_argument("query", help="Question, e.g. \"paracetamol chống chỉ định\"")
    parser.add_argument("--csv", help="CSV export of the drug sheet (default: KNOWLEDGE_BASE_CSV)")
    parser.add_argument(
        "--provider",
        help="Generative backend: none, azure, openai, groq (default: GENERATIVE_PROVIDER)",
    )
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    overrides = {}
    if args.csv:
        overrides["KNOWLEDGE_BASE_CSV"] = args.csv
    if args.provider:
        overrides["GENERATIVE_PROVIDER"] = args.provider
    if args.log_level:
        overrides["LOG_LEVEL"] = args.log_level
    settings = Settings(**overrides)

    setup_logging_from_settings(settings)

    store = CatalogStore(
        CsvKnowledgeBaseProvider(settings.KNOWLEDGE_BASE_CSV),
        max_age_seconds=settings.CATALOG_REFRESH_SECONDS,
    )
    catalog = store.refresh()
    if not len(catalog):
        print(f"❌ No drug records loaded from {settings.KNOWLEDGE_BASE_CSV}", file=sys.stderr)
        return 2

    try:
        backend = create_backend(settings)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2

    pipeline = DrugQueryPipeline(store, backend=backend, settings=settings)
    result = pipeline.answer(args.query)

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(result.message)
        if result.success:
            print(f"\n• {result.drug_name} | {result.category.label} | "
                  f"độ tin cậy {result.confidence} | cập nhật: {result.last_updated}")

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
