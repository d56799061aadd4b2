"""
Re-submits a saved session log (one encoded row per record) to a /save endpoint.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from records.codec import default_codec
from records.pipeline import SubmissionPipeline
from records.remote import RemoteSaveClient


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("log", type=Path, help="Session log file")
    parser.add_argument("--save_url", default=None, help="Defaults to $SAVE_URL")
    parser.add_argument("--api_key", default=None, help="Defaults to $SAVE_API_KEY")
    parser.add_argument("--strict", action="store_true", help="Drop rows with the wrong column count")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    rows = default_codec.split_records(args.log.read_text(encoding="utf-8"))
    client = RemoteSaveClient(url=args.save_url, api_key=args.api_key)
    pipeline = SubmissionPipeline(client, strict_width=args.strict)
    result = asyncio.run(pipeline.submit(rows))

    print(result.summary() if result.success else f"Failed collections: {', '.join(result.failed_collections)}")
    for warning in result.warnings:
        print(f"  {warning.kind.value}: {warning.message}")
    if not result.success:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
