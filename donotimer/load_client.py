#!/usr/bin/env python3
"""
donotimer load client (async)

Fires signed donation webhooks at a running server, concurrently, and checks
that none of them got lost:
  1) GET  /api/countdown  -> remaining seconds before the run
  2) POST /api/webhook    x total, some ids redelivered as duplicates
  3) GET  /api/countdown  -> remaining seconds after the run

The drop in remaining time must equal the sum of `reductionSeconds` over the
applied deliveries (give or take the wall time the run took).

Usage:
  donotimer-load --base http://localhost:8000 --secret $WEBHOOK_SECRET \
                 --total 200 --concurrency 50 --dup-rate 0.2

Notes:
- Keep the countdown far enough in the future that clamping to "now" does
  not kick in, otherwise the sums cannot match.
"""

import asyncio
import json
import random
import time
import argparse
import uuid
from dataclasses import dataclass, field
from typing import Optional, List, Dict

import httpx

from .signing import SIGNATURE_HEADER, sign


@dataclass
class Result:
    ok: bool
    outcome: str  # applied/duplicate-ignored/ERROR
    reduction_s: int = 0
    t_webhook: float = 0.0
    err: Optional[str] = None


@dataclass
class Stats:
    results: List[Result] = field(default_factory=list)

    def add(self, r: Result):
        self.results.append(r)

    def summary(self) -> Dict[str, float]:
        lat = [r.t_webhook for r in self.results if r.ok]

        def pct(p):
            if not lat:
                return 0.0
            x = sorted(lat)
            k = int(max(0, min(len(x)-1, round(p/100*(len(x)-1)))))
            return x[k]
        return {
            "total": len(self.results),
            "applied": sum(
                1 for r in self.results if r.outcome == "applied"
            ),
            "duplicate": sum(
                1 for r in self.results if r.outcome == "duplicate-ignored"
            ),
            "error": sum(1 for r in self.results if r.outcome == "ERROR"),
            "reduction_s": sum(r.reduction_s for r in self.results),
            "p50_s": pct(50),
            "p90_s": pct(90),
            "p99_s": pct(99),
            "avg_s": (sum(lat)/len(lat)) if lat else 0.0,
        }

    def print(self, elapsed_s: float, observed_drop_s: int):
        s = self.summary()
        print("\n=== Load Summary ===")
        print(
            f"Total: {int(s['total'])}   APPLIED: {int(s['applied'])}   "
            f"DUPLICATE: {int(s['duplicate'])}   ERROR: {int(s['error'])}"
        )
        print(
            f"Reduction: expected {int(s['reduction_s'])}s   "
            f"observed {observed_drop_s}s   "
            f"(wall time {elapsed_s:.1f}s)"
        )
        print(
            f"Latency (webhook): "
            f"avg {s['avg_s']:.3f}s   p50 {s['p50_s']:.3f}s   "
            f"p90 {s['p90_s']:.3f}s   p99 {s['p99_s']:.3f}s"
        )
        print(
            f"Throughput: {s['total']/elapsed_s:.1f} webhooks/s"
        )


def donation_event(event_id: str, amount: int) -> Dict[str, object]:
    return {
        "id": event_id,
        "type": "alert",
        "amount": amount,
        "donorName": f"load-{event_id[:6]}",
        "message": "",
    }


async def one_delivery(
    client: httpx.AsyncClient,
    base: str,
    secret: str,
    event: Dict[str, object],
) -> Result:
    r = Result(ok=False, outcome="ERROR")
    payload = json.dumps(event).encode()
    t0 = time.perf_counter()
    try:
        resp = await client.post(
            f"{base}/api/webhook",
            content=payload,
            headers={
                SIGNATURE_HEADER: sign(secret, payload),
                "content-type": "application/json",
            },
            timeout=30.0,
        )
        resp.raise_for_status()
        j = resp.json()
    except Exception as e:
        r.err = f"webhook: {e}"
        return r
    r.t_webhook = time.perf_counter() - t0
    r.ok = True
    r.outcome = j.get("status", "applied")
    if r.outcome == "applied":
        r.reduction_s = int(j.get("reductionSeconds", 0))
    return r


async def remaining(client: httpx.AsyncClient, base: str) -> int:
    resp = await client.get(f"{base}/api/countdown", timeout=10.0)
    resp.raise_for_status()
    return int(resp.json()["remainingSeconds"])


async def run_load(
    base: str,
    secret: str,
    total: int,
    concurrency: int,
    dup_rate: float,
    min_amount: int,
    max_amount: int,
) -> tuple[Stats, int]:
    sem = asyncio.Semaphore(concurrency)
    stats = Stats()

    events = []
    for _ in range(total):
        if events and random.random() < dup_rate:
            # redeliver an earlier event verbatim
            events.append(random.choice(events))
        else:
            events.append(donation_event(
                uuid.uuid4().hex, random.randint(min_amount, max_amount)
            ))

    limits = httpx.Limits(
        max_keepalive_connections=concurrency, max_connections=concurrency
    )
    async with httpx.AsyncClient(
        limits=limits, headers={"User-Agent": "donotimerLoad/1.0"}
    ) as client:
        before = await remaining(client, base)

        async def worker(event: Dict[str, object]):
            async with sem:
                stats.add(await one_delivery(client, base, secret, event))

        tasks = [asyncio.create_task(worker(e)) for e in events]
        await asyncio.gather(*tasks)

        after = await remaining(client, base)

    return stats, before - after


def main():
    ap = argparse.ArgumentParser(description="donotimer load client")
    ap.add_argument("--base", default="http://localhost:8000",
                    help="Base URL of the app")
    ap.add_argument("--secret", required=True,
                    help="WEBHOOK_SECRET the server was started with")
    ap.add_argument("--total", type=int, default=100,
                    help="Total webhook deliveries")
    ap.add_argument("--concurrency", type=int, default=20,
                    help="Concurrent workers")
    ap.add_argument("--dup-rate", type=float, default=0.1,
                    help="Fraction of deliveries that redeliver an earlier id")
    ap.add_argument("--min-amount", type=int, default=1000,
                    help="Smallest donation amount")
    ap.add_argument("--max-amount", type=int, default=20000,
                    help="Largest donation amount")
    args = ap.parse_args()

    t_start = time.perf_counter()
    stats, drop = asyncio.run(run_load(
        base=args.base.rstrip("/"),
        secret=args.secret,
        total=args.total,
        concurrency=args.concurrency,
        dup_rate=args.dup_rate,
        min_amount=args.min_amount,
        max_amount=args.max_amount,
    ))
    elapsed = time.perf_counter() - t_start
    stats.print(elapsed, drop)


if __name__ == "__main__":
    main()
