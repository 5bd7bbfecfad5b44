"""Run one ingestion: ``python -m pdf_indexer <storage-key>``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from pdf_indexer.config import settings
from pdf_indexer.errors import IngestionFailed
from pdf_indexer.pipeline import build_pipeline

logger = logging.getLogger("pdf_indexer")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Ingest a PDF from object storage into the vector index")
    parser.add_argument("storage_key", help="Key of the PDF in object storage")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level.upper())

    pipeline = build_pipeline(settings)
    try:
        result = asyncio.run(pipeline.ingest(args.storage_key))
    except IngestionFailed as exc:
        logger.error("%s (retried=%s)", exc, exc.retried)
        return 1

    print(
        f"Upserted {result.records_upserted} records → namespace '{result.namespace}' "
        f"(sample id {result.sample_record.id}, page {result.sample_segment.page_number})"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
