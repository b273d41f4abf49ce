import argparse
import logging

from engine import RealmEngine
from policies import POLICY_CATALOG
from effects import EVENT_EFFECTS


def _load(path: str) -> RealmEngine:
    eng = RealmEngine()
    eng.load_json(path)
    eng.track_all()
    return eng


def _refresh(eng: RealmEngine) -> None:
    for rid in list(eng.ledgers):
        eng.force_recompute(rid)


def cmd_new(args):
    eng = RealmEngine(seed=args.seed)
    eng.world.seconds_per_year = args.seconds_per_year
    for entry in args.realm or ["Realm"]:
        parts = entry.split(":")
        name = parts[0]
        pop = int(parts[1]) if len(parts) > 1 else 50
        cities = int(parts[2]) if len(parts) > 2 else 1
        eng.add_realm(name, population=pop, cities=cities, buildings=cities * 2,
                      soldiers=pop // 10)
    eng.track_all()
    _refresh(eng)
    eng.save_json(args.out)
    print(f"World created and saved to {args.out}")


def cmd_step(args):
    eng = _load(args.world)
    eng.run(args.seconds)
    eng.save_json(args.save or args.world)
    print(eng.summary())


def cmd_summary(args):
    eng = _load(args.world)
    _refresh(eng)
    print(eng.summary())


def cmd_law(args):
    eng = _load(args.world)
    if not eng.set_law_level(args.realm, args.slot, args.level):
        print(f"Could not set {args.slot} to {args.level}")
        return 1
    eng.save_json(args.world)
    print(f"{args.slot} set to {args.level}")


def cmd_enact(args):
    eng = _load(args.world)
    if not eng.enact_policy(args.realm, args.policy):
        print(f"Could not enact {args.policy}")
        return 1
    eng.save_json(args.world)
    print(f"Enacted {args.policy}")


def cmd_repeal(args):
    eng = _load(args.world)
    if not eng.repeal_policy(args.realm, args.policy):
        print(f"{args.policy} is not enacted")
        return 1
    eng.save_json(args.world)
    print(f"Repealed {args.policy}")


def cmd_effect(args):
    eng = _load(args.world)
    if not eng.add_timed_effect(args.realm, args.effect):
        print(f"Could not apply {args.effect}")
        return 1
    eng.save_json(args.world)
    print(f"Applied {args.effect}")


def main(argv=None):
    ap = argparse.ArgumentParser(description="Headless CLI for the realm economy simulation")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log gameplay events")
    sub = ap.add_subparsers()

    ap_new = sub.add_parser("new", help="Create a new world")
    ap_new.add_argument("--seed", type=int, default=12345)
    ap_new.add_argument("--seconds-per-year", type=float, default=60.0,
                        help="Real seconds per simulated year")
    ap_new.add_argument("--realm", action="append",
                        help="e.g. 'Avalon:120:3' as name:population:cities (can repeat)")
    ap_new.add_argument("--out", default="world.json")
    ap_new.set_defaults(func=cmd_new)

    ap_step = sub.add_parser("step", help="Advance real seconds and print summary")
    ap_step.add_argument("world")
    ap_step.add_argument("--seconds", type=float, default=5.0)
    ap_step.add_argument("--save", default=None)
    ap_step.set_defaults(func=cmd_step)

    ap_sum = sub.add_parser("summary", help="Print summary")
    ap_sum.add_argument("world")
    ap_sum.set_defaults(func=cmd_summary)

    ap_law = sub.add_parser("law", help="Set a law level")
    ap_law.add_argument("world")
    ap_law.add_argument("realm", type=int)
    ap_law.add_argument("slot")
    ap_law.add_argument("level")
    ap_law.set_defaults(func=cmd_law)

    ap_enact = sub.add_parser("enact", help="Enact a policy")
    ap_enact.add_argument("world")
    ap_enact.add_argument("realm", type=int)
    ap_enact.add_argument("policy", choices=sorted(POLICY_CATALOG))
    ap_enact.set_defaults(func=cmd_enact)

    ap_repeal = sub.add_parser("repeal", help="Repeal a policy")
    ap_repeal.add_argument("world")
    ap_repeal.add_argument("realm", type=int)
    ap_repeal.add_argument("policy")
    ap_repeal.set_defaults(func=cmd_repeal)

    ap_eff = sub.add_parser("effect", help="Apply a timed event effect")
    ap_eff.add_argument("world")
    ap_eff.add_argument("realm", type=int)
    ap_eff.add_argument("effect", choices=sorted(EVENT_EFFECTS))
    ap_eff.set_defaults(func=cmd_effect)

    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    if hasattr(args, "func"):
        return args.func(args) or 0
    ap.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
