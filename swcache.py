#!/usr/bin/env python3
from __future__ import annotations
import os
import sys
import argparse
import asyncio
import shutil
import json
import time
from typing import List, Dict, Any, Optional

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from src.models.config import CacheConfig
from src.models.exceptions import SWCacheException, InstallException, ConfigurationException, ValidationException
from src.models.response import Request
from src.models.result import Resolution, ResolutionSummary
from src.utils.logger import setup_logging, get_logger, PerformanceLogger
from src.utils.validator import request_validator, input_sanitizer
from src.utils.output_formatter import result_serializer
from config.constants import DEFAULT_CONFIG, CACHE_LIMITS, EXIT_CODES, get_version, get_env_overrides

logger = get_logger("cli")

TITLE = "SWCache - Service Worker cache policy engine"


class WideFormatter(argparse.RawTextHelpFormatter):
    def __init__(self, prog):
        width = shutil.get_terminal_size((100, 20)).columns
        super().__init__(prog, max_help_position=32, width=max(90, min(width, 140)))


class SWCacheCLI:
    def __init__(self):
        self.parser = self._create_parser()
        self.config: CacheConfig | None = None
        self.controller = None
        self.perf = PerformanceLogger()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(prog="swcache", description=TITLE, formatter_class=WideFormatter)
        parser.add_argument("-V", "--version", action="store_true", help="Show version information and exit")

        inp = parser.add_argument_group("Input Options")
        inp.add_argument("targets", nargs="*", help="Paths or URLs to resolve (e.g., /index.html /api/user)")
        inp.add_argument("-i", "--input", dest="input_file", help="Read targets from file (one per line)")
        inp.add_argument("--origin", help=f'Application origin (default: $SWCACHE_ORIGIN or {DEFAULT_CONFIG["origin"]})')
        inp.add_argument("--profile", help="Load cache configuration from a JSON file (CLI args override profile)")

        cache = parser.add_argument_group("Cache Options")
        cache.add_argument("--cache-prefix", help=f'Cache name prefix (default: {DEFAULT_CONFIG["cache_prefix"]})')
        cache.add_argument("--cache-version", help=f'Cache version tag (default: {DEFAULT_CONFIG["cache_version"]})')
        cache.add_argument("--max-dynamic", type=int, help=f'Dynamic cache entry limit (default: {CACHE_LIMITS["max_dynamic_entries"]})')
        cache.add_argument("--max-api", type=int, help=f'API cache entry limit (default: {CACHE_LIMITS["max_api_entries"]})')
        cache.add_argument("--api-prefix", action="append", default=[], help="Additional API URL prefix (repeatable)")
        cache.add_argument("--no-install", action="store_true", help="Skip static precache and activation")
        cache.add_argument("--cache-urls", nargs="+", metavar="URL", help="Bulk-load URLs into the dynamic cache before resolving")
        cache.add_argument("--repeat", type=int, default=1, help="Resolve the target list N times (default: 1)")
        cache.add_argument("--navigate", action="store_true", help="Send targets as navigation requests")

        net = parser.add_argument_group("Network Options")
        net.add_argument("-t", "--timeout", type=float, help=f'Fetch timeout in seconds (default: {DEFAULT_CONFIG["fetch_timeout"]})')
        net.add_argument("--ua", "--user-agent", dest="user_agent", help="Custom User-Agent string")
        net.add_argument("--header", action="append", dest="headers", default=[], help='Extra HTTP header (repeatable, e.g., "K: V")')
        net.add_argument("--proxy", help="HTTP/SOCKS proxy URL")

        out = parser.add_argument_group("Output Options")
        out.add_argument("--format", choices=["tsv", "csv", "json", "jsonl"], default=DEFAULT_CONFIG["default_output_format"], help="Result format (default: tsv)")
        out.add_argument("--json", action="store_true", help="Shorthand for --format json")
        out.add_argument("-o", "--output", help="Write results to file")
        out.add_argument("--quiet", action="store_true", help="Suppress header, summary and progress messages")
        out.add_argument("--verbose", action="store_true", help="Debug logging")
        out.add_argument("--log-file", help="Also write logs to this file")
        return parser

    def parse_arguments(self, argv: Optional[List[str]] = None) -> argparse.Namespace:
        return self.parser.parse_args(argv)

    def _load_profile_file(self, path: str) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigurationException("profile JSON must be an object", config_key="profile", config_value=path)
        return data

    def _create_config(self, args: argparse.Namespace) -> CacheConfig:
        data: Dict[str, Any] = {}
        if args.profile:
            data.update(self._load_profile_file(args.profile))
        data.update(get_env_overrides())

        overrides = {
            "origin": args.origin,
            "cache_prefix": args.cache_prefix,
            "cache_version": args.cache_version,
            "max_dynamic_entries": args.max_dynamic,
            "max_api_entries": args.max_api,
            "fetch_timeout": args.timeout,
            "user_agent": args.user_agent,
            "proxy": args.proxy,
        }
        data.update({k: v for k, v in overrides.items() if v is not None})

        config = CacheConfig.from_dict(data)
        if args.api_prefix:
            config.api_endpoints = config.api_endpoints + [p for p in args.api_prefix if p not in config.api_endpoints]
        if args.headers:
            config.headers.update(input_sanitizer.sanitize_headers(args.headers))
        config.validate()
        return config

    def _load_targets(self, args: argparse.Namespace, config: CacheConfig) -> List[str]:
        raw: List[str] = list(args.targets or [])
        if args.input_file:
            with open(args.input_file, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#"):
                        raw.append(line)

        targets: List[str] = []
        for t in raw:
            try:
                targets.append(request_validator.resolve_target(t, config.origin))
            except ValidationException as e:
                logger.warning(f"Skipping invalid target {t}: {e.message}")
        return targets

    def _build_request(self, url: str, args: argparse.Namespace) -> Request:
        if args.navigate:
            return Request.navigate(url)
        return Request(url=url)

    def _write_output(self, results: List[Resolution], args: argparse.Namespace, format_type: str) -> None:
        output_file = open(args.output, "w", encoding="utf-8") if args.output else None
        try:
            out_stream = output_file or sys.stdout
            result_serializer.serialize_to_file(
                results,
                out_stream,
                format_type=format_type,
                include_header=not args.quiet,
            )
            out_stream.flush()
        finally:
            if output_file:
                output_file.close()

    async def _run_async(self, args: argparse.Namespace, config: CacheConfig, targets: List[str]) -> int:
        from src.core.controller import ServiceWorkerController

        self.controller = ServiceWorkerController(config)
        controller = self.controller
        start = time.time()
        installed = False
        try:
            if not args.no_install:
                with self.perf.track("install"):
                    try:
                        await controller.install()
                    except InstallException as e:
                        logger.error(f"{e.message}")
                        return EXIT_CODES["INSTALL_ERROR"]
                installed = True
                with self.perf.track("activate"):
                    await controller.activate()

            if args.cache_urls:
                await controller.handle_message({"type": "CACHE_URLS", "payload": args.cache_urls})

            results: List[Resolution] = []
            for n in range(args.repeat):
                with self.perf.track(f"resolve pass {n + 1}", {"targets": len(targets)}):
                    batch = await asyncio.gather(
                        *(controller.resolve(self._build_request(u, args)) for u in targets)
                    )
                    await controller.drain(timeout=config.fetch_timeout)
                results.extend(batch)

            summary = ResolutionSummary(
                run_id=f"run_{int(start)}",
                start_time=start,
                end_time=time.time(),
                config=config.to_dict(),
                installed=installed,
                namespace_sizes=await controller.namespace_sizes(),
                results=results,
            )
        finally:
            await controller.close()

        format_type = "json" if args.json else args.format
        self._write_output(results, args, format_type)
        if not args.quiet and format_type not in ("json", "jsonl"):
            print(result_serializer.create_summary_report(summary), file=sys.stderr)

        return EXIT_CODES["NETWORK_ERROR"] if summary.fallbacks else EXIT_CODES["SUCCESS"]

    def run(self, args: argparse.Namespace) -> int:
        try:
            self.config = self._create_config(args)
            args.repeat = input_sanitizer.validate_integer(args.repeat, min_val=1, max_val=1000)
            targets = self._load_targets(args, self.config)
            if not targets and not args.cache_urls and args.no_install:
                logger.error("No valid targets provided")
                return EXIT_CODES["USAGE_ERROR"]
            return asyncio.run(self._run_async(args, self.config, targets))
        except ConfigurationException as e:
            logger.error(f"{e}")
            return EXIT_CODES["CONFIG_ERROR"]
        except (OSError, json.JSONDecodeError, ValidationException) as e:
            logger.error(f"{e}")
            return EXIT_CODES["USAGE_ERROR"]
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            return EXIT_CODES["UNKNOWN_ERROR"]
        except SWCacheException as e:
            logger.error(f"Run failed: {e}")
            return EXIT_CODES["UNKNOWN_ERROR"]


def main(argv: Optional[List[str]] = None):
    cli = SWCacheCLI()
    args = cli.parse_arguments(argv)

    if args.version:
        print(f"SWCache - Service Worker cache policy engine v{get_version()}")
        sys.exit(EXIT_CODES["SUCCESS"])

    level = "DEBUG" if args.verbose else ("WARNING" if args.quiet else None)
    setup_logging(level=level, log_file=args.log_file)
    sys.exit(cli.run(args))


if __name__ == "__main__":
    main()
