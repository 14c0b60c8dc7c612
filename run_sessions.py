#!/usr/bin/env python3
"""Play headless sessions with the autopilot and report outcomes.

Usage:
    python run_sessions.py [--runs N] [--seed S] [--max-ms T] [--frame-ms F]

Each run starts a fresh session, lets AutoGunner defend until the session
ends in victory or defeat (or the simulated time limit runs out), and
prints the outcome, final score and wave reached.
"""

import argparse
import random
import sys

from loguru import logger

from defense.comms.event_bus import EventBus
from defense.simulation import AutoGunner, DefenseEngine


def run_one(seed: int, max_ms: float, frame_ms: float) -> dict:
    """Play one session to completion; return its summary."""
    bus = EventBus(maxsize=0)  # unbounded: the queue doubles as a counter
    engine = DefenseEngine(bus, rng=random.Random(seed))
    gunner = AutoGunner(engine)
    intercepts = bus.subscribe("missile_intercepted")

    engine.start_session()
    elapsed = 0.0
    while elapsed < max_ms and engine.state in ("playing", "wave_complete"):
        gunner.tick(frame_ms)
        engine.update(frame_ms)
        elapsed += frame_ms

    snap = engine.snapshot()
    return {
        "seed": seed,
        "result": snap.state,
        "score": snap.score,
        "wave": snap.wave,
        "shots": gunner.shots,
        "intercepts": intercepts.qsize(),
        "towers_left": sum(1 for t in snap.towers if t["active"]),
        "cities_left": sum(1 for c in snap.cities if c["active"]),
        "sim_seconds": elapsed / 1000.0,
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Headless Nova Defense sessions")
    parser.add_argument("--runs", type=int, default=5, help="number of sessions")
    parser.add_argument("--seed", type=int, default=1, help="seed of the first run")
    parser.add_argument("--max-ms", type=float, default=600_000.0,
                        help="simulated time limit per run (ms)")
    parser.add_argument("--frame-ms", type=float, default=16.0, help="fixed frame length (ms)")
    parser.add_argument("--verbose", action="store_true", help="log game events")
    args = parser.parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="INFO" if args.verbose else "WARNING")

    results = []
    for i in range(args.runs):
        summary = run_one(args.seed + i, args.max_ms, args.frame_ms)
        results.append(summary)
        print(
            f"  run {i + 1:>3}  seed={summary['seed']:<6} {summary['result']:<13} "
            f"score={summary['score']:<5} wave={summary['wave']:<3} "
            f"shots={summary['shots']:<4} hits={summary['intercepts']:<4} "
            f"towers={summary['towers_left']} cities={summary['cities_left']} "
            f"({summary['sim_seconds']:.0f}s)"
        )

    wins = sum(1 for r in results if r["result"] == "victory")
    print(f"\n{'='*60}")
    print(f"  {wins}/{len(results)} victories")
    if results:
        print(f"  mean score: {sum(r['score'] for r in results) / len(results):.0f}")
    print(f"{'='*60}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
