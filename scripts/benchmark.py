#!/usr/bin/env python3
from __future__ import annotations
import asyncio
import time
import statistics
import psutil
import sys
import os
import json
from collections import deque
from typing import List, Dict, Any

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from src.core.controller import ServiceWorkerController
from src.core.store import CacheStore
from src.core.evictor import CacheEvictor
from src.models.config import CacheConfig
from src.models.response import Request, CachedResponse
from src.utils.logger import setup_logging, get_logger


class SyntheticOrigin:
    """In-process origin so timings measure the cache layer, not the network."""

    def __init__(self, latency: float = 0.0, body_size: int = 2048):
        self.latency = latency
        self.body = b"x" * body_size
        self.calls = 0

    async def __call__(self, request: Request) -> CachedResponse:
        self.calls += 1
        if self.latency:
            await asyncio.sleep(self.latency)
        return CachedResponse.snapshot(200, self.body, {"content-type": "application/octet-stream"}, url=request.url)


class Benchmark:
    def __init__(self):
        self.logger = get_logger("benchmark")
        self.results: Dict[str, Any] = {}
        self.memory_usage: deque = deque(maxlen=10000)

    def measure_memory_mb(self) -> float:
        try:
            return psutil.Process().memory_info().rss / (1024 * 1024)
        except Exception:
            return 0.0

    def _urls(self, count: int) -> List[str]:
        urls = []
        for i in range(count):
            bucket = i % 3
            if bucket == 0:
                urls.append(f"http://localhost:8080/assets/chunk-{i}.js")
            elif bucket == 1:
                urls.append(f"http://localhost:8080/api/items/{i}")
            else:
                urls.append(f"http://localhost:8080/data/{i}.json")
        return urls

    async def _resolve_all(self, controller: ServiceWorkerController, urls: List[str]) -> float:
        start = time.perf_counter()
        await asyncio.gather(*(controller.resolve(Request(url=u)) for u in urls))
        await controller.drain()
        return time.perf_counter() - start

    def run_resolve_benchmark(self, requests_count: int = 1000, iterations: int = 5, latency: float = 0.0) -> Dict[str, Any]:
        self.logger.info(f"Running resolve benchmark: {requests_count} requests x {iterations}")
        cold: List[float] = []
        warm: List[float] = []
        memory_before = self.measure_memory_mb()

        async def one_iteration():
            origin = SyntheticOrigin(latency=latency)
            controller = ServiceWorkerController(CacheConfig(), fetch=origin)
            try:
                urls = self._urls(requests_count)
                cold.append(await self._resolve_all(controller, urls))
                warm.append(await self._resolve_all(controller, urls))
                return origin.calls
            finally:
                await controller.close()

        fetches = 0
        for i in range(iterations):
            self.logger.debug(f"Iteration {i + 1}/{iterations}")
            fetches = asyncio.run(one_iteration())
            self.memory_usage.append(self.measure_memory_mb())

        result = {
            "requests": requests_count,
            "iterations": iterations,
            "cold_mean_s": statistics.mean(cold),
            "warm_mean_s": statistics.mean(warm),
            "cold_rps": requests_count / statistics.mean(cold) if statistics.mean(cold) > 0 else 0,
            "warm_rps": requests_count / statistics.mean(warm) if statistics.mean(warm) > 0 else 0,
            "network_calls_last_iteration": fetches,
            "memory_delta_mb": (max(self.memory_usage) - memory_before) if self.memory_usage else 0.0,
        }
        self.results["resolve"] = result
        return result

    def run_eviction_benchmark(self, entries: int = 20000, limit: int = 150) -> Dict[str, Any]:
        self.logger.info(f"Running eviction benchmark: {entries} entries down to {limit}")

        async def run():
            store = CacheStore()
            evictor = CacheEvictor(store)
            body = CachedResponse.snapshot(200, b"x")
            cache = await store.open("bench-dynamic")
            await cache.put_many({f"GET http://localhost/{i}": body for i in range(entries)})
            start = time.perf_counter()
            removed = await evictor.enforce_limit("bench-dynamic", limit)
            elapsed = time.perf_counter() - start
            return removed, elapsed, await store.size("bench-dynamic")

        removed, elapsed, remaining = asyncio.run(run())
        result = {
            "entries": entries,
            "limit": limit,
            "removed": removed,
            "remaining": remaining,
            "elapsed_s": elapsed,
            "evictions_per_second": removed / elapsed if elapsed > 0 else 0,
        }
        self.results["eviction"] = result
        return result

    def get_system_info(self) -> Dict[str, Any]:
        return {
            "python_version": sys.version.split()[0],
            "platform": sys.platform,
            "cpu_count": psutil.cpu_count(),
            "memory_total_gb": round(psutil.virtual_memory().total / (1024 ** 3), 2),
        }

    def generate_report(self, output_file: str | None = None) -> Dict[str, Any]:
        report = {
            "timestamp": time.time(),
            "system_info": self.get_system_info(),
            "results": self.results,
        }
        if output_file:
            with open(output_file, "w", encoding="utf-8") as f:
                json.dump(report, f, indent=2, ensure_ascii=False)
            self.logger.info(f"Benchmark report saved to: {output_file}")
        return report


def main():
    import argparse

    parser = argparse.ArgumentParser(description="SWCache Performance Benchmark")
    parser.add_argument("--requests", "-n", type=int, default=1000, help="Requests per pass")
    parser.add_argument("--iterations", "-i", type=int, default=5, help="Iterations")
    parser.add_argument("--latency", type=float, default=0.0, help="Synthetic origin latency in seconds")
    parser.add_argument("--entries", type=int, default=20000, help="Entries for the eviction benchmark")
    parser.add_argument("--output", "-o", help="Output report file")
    parser.add_argument("--resolve", action="store_true", help="Run only resolve benchmark")
    parser.add_argument("--eviction", action="store_true", help="Run only eviction benchmark")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args()

    log_level = "DEBUG" if args.verbose else "WARNING"
    setup_logging(level=log_level, enable_console=True)

    benchmark = Benchmark()
    try:
        if not args.eviction:
            benchmark.run_resolve_benchmark(args.requests, args.iterations, args.latency)
        if not args.resolve:
            benchmark.run_eviction_benchmark(args.entries)
        benchmark.generate_report(args.output)

        print("\n" + "=" * 60)
        print("SWCache Benchmark Summary")
        print("=" * 60)
        for category, data in benchmark.results.items():
            print(f"\n{category.upper()}:")
            for key, value in data.items():
                print(f"  {key}: {value}")

    except KeyboardInterrupt:
        print("\nBenchmark interrupted by user")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
