#!/usr/bin/env python3
"""Convert a local REST-format document and print the reassembled code.

Runs the full generation → channel → display path in one process, so small
chunk sizes can be used to exercise the chunked transport.

Usage:
    # Whole document (all roots):
    python scripts/convert_document.py data/file_nodes.json

    # Selected nodes, with a variables/local response for names:
    python scripts/convert_document.py data/file_nodes.json \\
        --node-id 16650:538 --variables data/variables.json

    # Force chunking:
    python scripts/convert_document.py data/file_nodes.json --chunk-size 2000

    # Fetch from Figma instead (needs FIGMA_TOKEN):
    python scripts/convert_document.py --file-key 6kGd851qaAX4TiL44vpIrO --node-id 16650:538
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from scenegraph.integrations.figma_client import FigmaClient, FigmaClientError
from scenegraph.integrations.host import DocumentHost
from scenegraph.logging_config import configure_logging
from scenegraph.normalize import ConversionSettings
from scenegraph.pipeline import run_conversion
from scenegraph.settings import CODE_CHUNK_SIZE
from scenegraph.transport import ChunkedSender, ConversionReceiver, MessageChannel


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Convert a design document to code")
    parser.add_argument("document", nargs="?", help="REST node tree or file nodes response (JSON)")
    parser.add_argument("--file-key", help="Fetch the document from this Figma file instead")
    parser.add_argument(
        "--node-id", action="append", default=[], dest="node_ids",
        help="Node to convert (repeatable; default: all roots)",
    )
    parser.add_argument("--variables", help="GET /variables/local response (JSON)")
    parser.add_argument(
        "--chunk-size", type=int, default=CODE_CHUNK_SIZE,
        help=f"Chunk size for code and preview (default: {CODE_CHUNK_SIZE})",
    )
    parser.add_argument(
        "--settings", default="{}",
        help='Conversion settings as JSON, e.g. \'{"embedVectors": true}\'',
    )
    parser.add_argument("--strict", action="store_true", help="Fail on missing chunks")
    args = parser.parse_args()
    if bool(args.document) == bool(args.file_key):
        parser.error("give either a document path or --file-key")
    if args.file_key and not args.node_ids:
        parser.error("--file-key needs at least one --node-id")
    return args


def _load_json(path: str) -> Dict[str, Any]:
    with open(Path(path), "r", encoding="utf-8") as f:
        return json.load(f)


def load_local_host(document_path: str, variables_path: Optional[str]) -> DocumentHost:
    document = _load_json(document_path)
    variables = _load_json(variables_path) if variables_path else None
    if "nodes" in document:
        return DocumentHost.from_rest_responses(document, variables)
    host = DocumentHost.from_rest_responses({"nodes": {}}, variables)
    return DocumentHost([document], host.variables)


async def convert(args: argparse.Namespace) -> int:
    settings = ConversionSettings.model_validate(json.loads(args.settings))

    try:
        if args.file_key:
            async with FigmaClient() as client:
                host = await client.load_host(args.file_key, args.node_ids)
        else:
            host = load_local_host(args.document, args.variables)
    except FigmaClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    channel = MessageChannel()
    sender = ChunkedSender(channel, code_chunk_size=args.chunk_size, preview_chunk_size=args.chunk_size)
    receiver = ConversionReceiver(strict=args.strict)

    async def produce() -> None:
        try:
            await run_conversion(host, host.select(args.node_ids), settings, channel, sender=sender)
        finally:
            channel.close()

    _, state = await asyncio.gather(produce(), receiver.consume(channel))

    for warning in state.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    print(state.code)
    return 1 if state.code.startswith("Error :(") else 0


def main() -> None:
    configure_logging()
    sys.exit(asyncio.run(convert(parse_args())))


if __name__ == "__main__":
    main()
