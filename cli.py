import argparse
import json
import logging
import sys

from engine import SettlementEngine
from sim.progression import rank_rows


def _load(path: str) -> SettlementEngine:
    eng = SettlementEngine()
    eng.load_json(path)
    return eng


def _report(eng: SettlementEngine, path: str, out) -> int:
    """Print an outcome, saving the world on success; return an exit code."""
    if not out:
        print(f"{out.error.value}: {out.reason}")
        return 1
    eng.save_json(path)
    print("OK")
    return 0


def cmd_new(args):
    eng = SettlementEngine(seed=args.seed, speed=args.speed)
    eng.found_settlement()
    eng.save_json(args.out)
    print(f"Settlement founded and saved to {args.out}")


def cmd_step(args):
    eng = _load(args.world)
    for _ in range(args.ticks):
        eng.scheduler.tick()
    eng.save_json(args.save or args.world)
    print(json.dumps(eng.summary()))


def cmd_summary(args):
    eng = _load(args.world)
    print(json.dumps(eng.summary()))
    if args.buildings:
        for row in eng.buildings.snapshot():
            print(f"  {row['id']}: {row['name']} in {row['region']} "
                  f"workers {row['worker_count']}/{row['capacity']} condition {row['condition']}")


def cmd_build(args):
    eng = _load(args.world)
    return _report(eng, args.world, eng.construct(args.archetype, args.region))


def cmd_assign(args):
    eng = _load(args.world)
    return _report(eng, args.world, eng.assign_worker(args.building, args.worker))


def cmd_upgrade(args):
    eng = _load(args.world)
    return _report(eng, args.world, eng.upgrade(args.building))


def cmd_repair(args):
    eng = _load(args.world)
    return _report(eng, args.world, eng.repair(args.building))


def cmd_explore(args):
    eng = _load(args.world)
    return _report(eng, args.world, eng.explore())


def cmd_ranks(args):
    eng = SettlementEngine()
    for row in rank_rows(eng.progression.ranks):
        print(f"{row['index']:>2} {row['title']:<20} {row['fame_required']:>8g} "
              f"vassals {row['max_vassals']} villages {row['max_villages']}")


def main(argv=None):
    ap = argparse.ArgumentParser(description="Headless CLI for the settlement simulation")
    ap.add_argument("--log-level", default="WARNING",
                    choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = ap.add_subparsers()

    ap_new = sub.add_parser("new", help="Found a new settlement")
    ap_new.add_argument("--seed", type=int, default=12345)
    ap_new.add_argument("--speed", default="normal", choices=["slow", "normal", "fast"])
    ap_new.add_argument("--out", default="settlement.json")
    ap_new.set_defaults(func=cmd_new)

    ap_step = sub.add_parser("step", help="Run ticks and print summary")
    ap_step.add_argument("world")
    ap_step.add_argument("--ticks", type=int, default=1)
    ap_step.add_argument("--save", default=None)
    ap_step.set_defaults(func=cmd_step)

    ap_sum = sub.add_parser("summary", help="Print summary")
    ap_sum.add_argument("world")
    ap_sum.add_argument("--buildings", action="store_true", help="List buildings too")
    ap_sum.set_defaults(func=cmd_summary)

    ap_build = sub.add_parser("build", help="Construct a building")
    ap_build.add_argument("world")
    ap_build.add_argument("archetype")
    ap_build.add_argument("region")
    ap_build.set_defaults(func=cmd_build)

    ap_assign = sub.add_parser("assign", help="Assign a worker to a building")
    ap_assign.add_argument("world")
    ap_assign.add_argument("building")
    ap_assign.add_argument("worker")
    ap_assign.set_defaults(func=cmd_assign)

    ap_up = sub.add_parser("upgrade", help="Upgrade a building")
    ap_up.add_argument("world")
    ap_up.add_argument("building")
    ap_up.set_defaults(func=cmd_upgrade)

    ap_rep = sub.add_parser("repair", help="Repair a building")
    ap_rep.add_argument("world")
    ap_rep.add_argument("building")
    ap_rep.set_defaults(func=cmd_repair)

    ap_exp = sub.add_parser("explore", help="Send a warrior to claim new land")
    ap_exp.add_argument("world")
    ap_exp.set_defaults(func=cmd_explore)

    ap_ranks = sub.add_parser("ranks", help="List the rank table")
    ap_ranks.set_defaults(func=cmd_ranks)

    args = ap.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(levelname)s %(name)s: %(message)s")
    if hasattr(args, "func"):
        return args.func(args) or 0
    ap.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
