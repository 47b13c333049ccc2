#!/usr/bin/env python3
# Copyright 2025 Ivo Mateev
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Command-line interface for cvingest.

Subcommands:
- parse: parse one or more CV files, printing one JSON envelope per file
- adapters: show the configured adapter chain
- health: show circuit breaker state and vendor parser health
"""

from __future__ import annotations

import argparse
import json
import traceback
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional

from .adapters.vendor_adapter import VendorParserAdapter
from .config import ParserConfig
from .errors import ConfigError, NoAdapterAvailable
from .logging_utils import LOG, VERBOSITY_NORMAL, VERBOSITY_QUIET, setup_logging
from .models import ParseResponse
from .pipeline import CandidateParser
from .shared import guess_media_type


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cvingest",
        description="Turn uploaded CVs (PDF, DOCX, plain text) into structured candidate records.",
        epilog="Configuration is read from environment variables (MIN_TEXT_LENGTH, ENABLE_OCR, ...).",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging (DEBUG level)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress at INFO level")
    parser.add_argument("--log-file", help="Optional path to a log file (always DEBUG)")

    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Parse CV files and print JSON results")
    p_parse.add_argument("files", nargs="+", type=Path, metavar="FILE")
    p_parse.add_argument("--media-type", help="Declared media type (default: guessed from the file suffix)")
    p_parse.add_argument("--workers", type=int, default=1, help="Files parsed in parallel (default: 1)")
    p_parse.add_argument("--skill-levels", action="store_true",
                         help="Report skills as 0-5 levels instead of booleans")

    p_adapters = sub.add_parser("adapters", help="List the configured adapter chain")
    p_adapters.add_argument("--media-type", help="Only adapters eligible for this media type")

    sub.add_parser("health", help="Show circuit breaker state and vendor parser health")
    return parser


def _read_upload(parser: CandidateParser, path: Path, media_type: Optional[str]) -> ParseResponse:
    content = path.read_bytes() if path.is_file() else None
    return parser.parse_upload(content, media_type or guess_media_type(path.name), filename=path.name)


def _run_parse(parser: CandidateParser, args: argparse.Namespace) -> int:
    workers = max(1, args.workers)
    if workers > 1 and len(args.files) > 1:
        LOG.info("Parsing %d files with %d workers", len(args.files), workers)
        # One parser, so parallel files share one circuit breaker
        with ThreadPoolExecutor(max_workers=workers) as executor:
            responses = list(executor.map(lambda p: _read_upload(parser, p, args.media_type), args.files))
    else:
        responses = [_read_upload(parser, p, args.media_type) for p in args.files]

    failed = 0
    for path, response in zip(args.files, responses):
        record: Dict[str, Any] = {"file": str(path)}
        record.update(response.as_dict(skill_levels=args.skill_levels))
        print(json.dumps(record, ensure_ascii=False))
        if not response.success:
            failed += 1

    if len(args.files) > 1:
        LOG.info("%d of %d file(s) parsed", len(args.files) - failed, len(args.files))
    return 0 if failed == 0 else 1


def _run_adapters(parser: CandidateParser, args: argparse.Namespace) -> int:
    if args.media_type:
        try:
            descriptors = parser.registry.list_adapters(args.media_type)
        except NoAdapterAvailable as e:
            LOG.error(str(e))
            return 1
    else:
        descriptors = parser.registry.descriptors

    for d in descriptors:
        print(json.dumps({
            "name": d.name,
            "priority": d.priority,
            "enabled": d.enabled,
            "mediaTypes": sorted(d.media_types),
            "circuit": parser.breaker.state(d.name).status,
        }))
    return 0


def _run_health(parser: CandidateParser) -> int:
    report: Dict[str, Any] = {
        "circuits": {name: {"status": st.status, "failures": st.failures}
                     for name, st in parser.breaker.snapshot().items()},
    }
    healthy = True
    vendor = parser.registry.descriptor("vendor")
    if vendor.enabled:
        adapter = parser.registry.get("vendor")
        if not isinstance(adapter, VendorParserAdapter):
            raise TypeError(f"vendor adapter {type(adapter).__name__} has no health check")
        healthy = adapter.health_check()
        report["vendor"] = {"healthy": healthy, "supportedFormats": adapter.supported_formats() if healthy else []}
    else:
        report["vendor"] = {"enabled": False}
    print(json.dumps(report, indent=2))
    return 0 if healthy else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.log_file:
        Path(args.log_file).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
    setup_logging(args.debug, log_file=args.log_file,
                  verbosity=VERBOSITY_NORMAL if args.verbose else VERBOSITY_QUIET)

    try:
        parser = CandidateParser(ParserConfig.from_env())
        if args.command == "parse":
            return _run_parse(parser, args)
        if args.command == "adapters":
            return _run_adapters(parser, args)
        return _run_health(parser)
    except ConfigError as e:
        LOG.error("Invalid configuration: %s", e)
        return 1
    except Exception as e:
        LOG.error(str(e))
        if args.debug:
            LOG.error(traceback.format_exc())
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
