from __future__ import annotations

import argparse
import sys

from tracker.app.runner import run


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="storefront-tracker")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_sim = sub.add_parser("simulate", help="Replay a scripted page visit through the tracker")
    p_sim.add_argument("--config", default="config/tracker.yaml")

    args = parser.parse_args(argv)

    if args.cmd == "simulate":
        result = run(args.config)
        # minimal stdout signal
        print(
            f"visitor_id={result.visitor_id} session_id={result.session_id} "
            f"events_sent={result.events_sent} events_pending={result.events_pending}"
        )
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
