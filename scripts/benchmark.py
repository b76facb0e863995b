"""HTTP benchmark for the News Agency API.

Phase 1 times the read endpoints.  Phase 2 posts a burst of comments and
times the POST itself: notification delivery runs in the background, so
comment latency should stay flat however slow the notifier is.  The
notification statistics are printed at the end.
"""
import asyncio
import argparse
import time
import statistics

import httpx

READ_ENDPOINTS = [
    "/api/v1/news",
    "/api/v1/news?page=1&page_size=50",
    "/api/v1/news/top",
    "/api/v1/news/recent?days=30",
    "/api/v1/news/1",
    "/api/v1/comments/news/1",
    "/api/v1/categories/by-news-count",
    "/api/v1/metrics",
    "/health",
]


def _percentile(times: list[float], fraction: float) -> float:
    ordered = sorted(times)
    return ordered[min(int(len(ordered) * fraction), len(ordered) - 1)]


def _summarise(label: str, times: list[float], query_counts: list[int], errors: int) -> dict:
    if not times:
        return {"label": label, "error": f"all {errors} requests failed"}
    return {
        "label": label,
        "avg_ms": statistics.mean(times),
        "p50_ms": _percentile(times, 0.50),
        "p95_ms": _percentile(times, 0.95),
        "queries": round(statistics.mean(query_counts), 1) if query_counts else "N/A",
        "errors": errors,
    }


def _print_row(result: dict) -> None:
    if "error" in result:
        print(f"{result['label']:<45} ERROR ({result['error']})")
        return
    print(
        f"{result['label']:<45} "
        f"{result['avg_ms']:>7.1f}ms "
        f"{result['p50_ms']:>7.1f}ms "
        f"{result['p95_ms']:>7.1f}ms "
        f"{str(result['queries']):>8} "
        f"{result['errors']:>4}"
    )


async def _timed(client: httpx.AsyncClient, method: str, path: str, **kwargs):
    start = time.perf_counter()
    resp = await client.request(method, path, **kwargs)
    return resp, (time.perf_counter() - start) * 1000


async def bench_read(client: httpx.AsyncClient, path: str, iterations: int) -> dict:
    times, query_counts, errors = [], [], 0
    for _ in range(iterations):
        try:
            resp, elapsed = await _timed(client, "GET", path)
        except httpx.HTTPError:
            errors += 1
            continue
        if resp.status_code != 200:
            errors += 1
            continue
        times.append(elapsed)
        if "x-query-count" in resp.headers:
            query_counts.append(int(resp.headers["x-query-count"]))
    return _summarise(f"GET {path}", times, query_counts, errors)


async def bench_comment_burst(client: httpx.AsyncClient, count: int, user_id: int, news_id: int) -> dict:
    times, query_counts, errors = [], [], 0
    for i in range(count):
        payload = {"content": f"Benchmark comment {i}", "user_id": user_id, "news_id": news_id}
        try:
            resp, elapsed = await _timed(client, "POST", "/api/v1/comments", json=payload)
        except httpx.HTTPError:
            errors += 1
            continue
        if resp.status_code != 201:
            errors += 1
            continue
        times.append(elapsed)
        if "x-query-count" in resp.headers:
            query_counts.append(int(resp.headers["x-query-count"]))
    return _summarise(f"POST /api/v1/comments x{count}", times, query_counts, errors)


async def run_benchmark(base_url: str, iterations: int, comments: int, user_id: int, news_id: int):
    print("=" * 80)
    print(f"News Agency API Benchmark, {iterations} iterations per read endpoint")
    print(f"Target: {base_url}")
    print("=" * 80)

    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        try:
            health = await client.get("/health")
        except httpx.HTTPError as exc:
            print(f"ERROR: Cannot connect to {base_url}: {exc}")
            return
        if health.status_code != 200:
            print(f"ERROR: Health check failed ({health.status_code})")
            return
        print(f"Health: {health.json()}\n")

        print(f"{'Endpoint':<45} {'Avg':>9} {'P50':>9} {'P95':>9} {'Queries':>8} {'Err':>4}")
        print("-" * 80)
        for path in READ_ENDPOINTS:
            _print_row(await bench_read(client, path, iterations))

        if comments:
            _print_row(await bench_comment_burst(client, comments, user_id, news_id))

        print("-" * 80)
        stats = await client.get("/api/v1/notifications/stats")
        print(f"Notification stats: {stats.json()}")

    print("\nBenchmark complete.")


def main():
    parser = argparse.ArgumentParser(description="Benchmark the News Agency API")
    parser.add_argument("-n", "--iterations", type=int, default=50, help="Iterations per read endpoint")
    parser.add_argument("--comments", type=int, default=20, help="Comments to post in the burst phase (0 to skip)")
    parser.add_argument("--user-id", type=int, default=1, help="Commenting user for the burst phase")
    parser.add_argument("--news-id", type=int, default=1, help="News article commented on in the burst phase")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    asyncio.run(run_benchmark(args.base_url, args.iterations, args.comments, args.user_id, args.news_id))


if __name__ == "__main__":
    main()
