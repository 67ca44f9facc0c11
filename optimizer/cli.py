"""
Idle Upgrade Optimizer - CLI Entry Point
=========================================
Usage:
    python cli.py rank [--top 10] [--policy balanced] [--state game.yaml]
    python cli.py buy <name>
    python cli.py prestige --production-mult 1.5 --cost-mult 1.2
    python cli.py import <game.yaml> | export <game.yaml>
    python cli.py import-csv <dir> | export-csv <dir>
    python cli.py resource add|remove <name>
    python cli.py user [<id>] [--clear] [--list]
    python cli.py web [--port 8080]
"""

import argparse
import sys

from idle_opt.cascade import make_policy
from idle_opt.config import OptimizerConfig, setup_logging
from idle_opt.evaluation import make_cost_fn
from idle_opt.format import print_production, print_ranking
from idle_opt.io import (
    export_rankings_json, export_state_csv, import_state_csv,
    load_game_state, save_game_state,
)
from idle_opt.models import UpgradeKind
from idle_opt.ranking import RankingEngine
from idle_opt.session import GameSession, migrate_base_fields
from idle_opt.storage import LocalStorage
from idle_opt.sync import CloudSync


def _load_config(args) -> OptimizerConfig:
    config = OptimizerConfig.from_file(args.config)
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.sync_url:
        config.sync_url = args.sync_url
    if args.log_level:
        config.log_level = args.log_level
    if getattr(args, "policy", None):
        config.policy = args.policy
    if getattr(args, "cost_valuation", None):
        config.cost_valuation = args.cost_valuation
    return config


def _make_session(config: OptimizerConfig) -> GameSession:
    storage = LocalStorage(config.data_dir)
    sync = None
    if config.sync_url:
        sync = CloudSync(config.sync_url, storage.get_user_id(),
                         timeout=config.sync_timeout)
    session = GameSession(storage, sync,
                          policy=make_policy(config.policy),
                          cost_fn=make_cost_fn(config.cost_valuation))
    session.initialize()
    return session


def cmd_rank(args, config):
    if args.state:
        state, ranking = load_game_state(args.state)
        migrate_base_fields(state)
        engine = RankingEngine(state, session=ranking,
                               policy=make_policy(config.policy),
                               cost_fn=make_cost_fn(config.cost_valuation))
        results = engine.ranked_upgrades()
        save_game_state(state, args.state, ranking)
    else:
        session = _make_session(config)
        engine = session.engine
        results = engine.ranked_upgrades()
        session.storage.save_session(session.ranking)

    print_production(engine.production_by_resource(), engine.resource_values())
    print_ranking(results, top=args.top)

    if args.export_json:
        export_rankings_json(results, args.export_json)
        print(f"\nExported JSON to {args.export_json}")


def cmd_buy(args, config):
    session = _make_session(config)
    results = session.engine.ranked_upgrades()
    match = next((r for r in results if r.item_name == args.name), None)
    if match is None:
        print(f"No purchasable upgrade named '{args.name}'")
        sys.exit(1)
    session.engine.apply_purchase(match)
    session.save_state()
    print(f"[buy] {match.kind.value} {match.item_name}")
    if match.kind is UpgradeKind.GENERATOR:
        print(f"[buy] owned: {match.source.count}, next cost: {match.source.purchase_cost():.2f}")


def cmd_prestige(args, config):
    session = _make_session(config)
    session.perform_prestige(args.production_mult, args.cost_mult)
    print(f"[prestige] production x{args.production_mult}, costs x{args.cost_mult}: "
          f"{len(session.state.generators)} generators reset, "
          f"{len(session.state.research)} research unapplied")


def cmd_import(args, config):
    state, _ = load_game_state(args.file)
    session = _make_session(config)
    session.state.generators = state.generators
    session.state.research = state.research
    session.state.resources = state.resources
    migrate_base_fields(session.state)
    session.engine.update_resource_totals()
    session.save_state()
    print(f"Imported {len(state.generators)} generators, {len(state.research)} research, "
          f"{len(session.state.resources)} resources from {args.file}")


def cmd_export(args, config):
    session = _make_session(config)
    save_game_state(session.state, args.file, session.ranking)
    print(f"Exported state to {args.file}")


def cmd_import_csv(args, config):
    state = import_state_csv(args.directory)
    session = _make_session(config)
    session.state.generators = state.generators
    session.state.research = state.research
    session.state.resources = state.resources
    migrate_base_fields(session.state)
    session.engine.update_resource_totals()
    session.save_state()
    print(f"Imported {len(state.generators)} generators, {len(state.research)} research "
          f"from {args.directory}")


def cmd_export_csv(args, config):
    session = _make_session(config)
    export_state_csv(session.state, args.directory)
    print(f"Exported CSV files to {args.directory}")


def cmd_resource(args, config):
    session = _make_session(config)
    if args.resource_action == "add":
        try:
            resource = session.engine.add_resource(args.name)
        except ValueError as e:
            print(f"Error: {e}")
            sys.exit(1)
        print(f"[resource] {resource.name}: {resource.total_production:.2f}/s")
    else:
        if not session.engine.remove_resource(args.name):
            print(f"Resource not found: {args.name}")
            sys.exit(1)
        print(f"[resource] removed {args.name}")
    session.save_state()


def cmd_user(args, config):
    storage = LocalStorage(config.data_dir)
    if args.list:
        if not config.sync_url:
            print("No sync server configured (--sync-url)")
            sys.exit(1)
        for uid in CloudSync(config.sync_url, timeout=config.sync_timeout).get_all_user_ids():
            print(uid)
        return
    if args.clear:
        storage.set_user_id(None)
        print("[user] cleared")
        return
    if args.user_id:
        storage.set_user_id(args.user_id)
        print(f"[user] set to {args.user_id}")
        if config.sync_url:
            exists = CloudSync(config.sync_url, timeout=config.sync_timeout).check_user_exists(args.user_id)
            print(f"[user] cloud data: {'found' if exists else 'none'}")
        return
    print(storage.get_user_id() or "(no user id)")


def main():
    parser = argparse.ArgumentParser(
        description="Idle Upgrade Optimizer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", default=None,
                        help="YAML settings file")
    parser.add_argument("--data-dir", default=None,
                        help="Directory for saved game state")
    parser.add_argument("--sync-url", default=None,
                        help="Sync server base URL (e.g. http://localhost:8080)")
    parser.add_argument("--log-level", default=None,
                        help="Logging level (default: WARNING)")
    sub = parser.add_subparsers(dest="command", help="Command to run")

    # rank
    p_rank = sub.add_parser("rank", help="Rank upgrades by priority")
    p_rank.add_argument("--top", "-n", type=int, default=None,
                        help="Only show the top N upgrades")
    p_rank.add_argument("--policy", "-p", choices=["balanced", "payback"], default=None,
                        help="Scoring policy (default: balanced)")
    p_rank.add_argument("--cost-valuation", choices=["valued", "raw"], default=None,
                        help="Cost valuation (default: valued)")
    p_rank.add_argument("--state", "-s", default=None,
                        help="Rank a YAML game state file instead of saved data")
    p_rank.add_argument("--export-json", default=None,
                        help="Write the ranking as JSON")

    # buy
    p_buy = sub.add_parser("buy", help="Buy one generator or apply one research")
    p_buy.add_argument("name", help="Generator or research name")

    # prestige
    p_pre = sub.add_parser("prestige", help="Reset progress with rescaled rates and costs")
    p_pre.add_argument("--production-mult", type=float, required=True,
                       help="Multiplier for base production rates")
    p_pre.add_argument("--cost-mult", type=float, required=True,
                       help="Multiplier for base costs")

    # import / export
    p_imp = sub.add_parser("import", help="Replace saved state with a YAML file")
    p_imp.add_argument("file", help="Game state YAML file")
    p_exp = sub.add_parser("export", help="Write saved state to a YAML file")
    p_exp.add_argument("file", help="Game state YAML file")
    p_icsv = sub.add_parser("import-csv", help="Replace saved state with CSV files")
    p_icsv.add_argument("directory", help="Directory with generators/research/resources.csv")
    p_ecsv = sub.add_parser("export-csv", help="Write saved state as CSV files")
    p_ecsv.add_argument("directory", help="Output directory")

    # resource
    p_res = sub.add_parser("resource", help="Add or remove a tracked resource")
    p_res.add_argument("resource_action", choices=["add", "remove"])
    p_res.add_argument("name", help="Resource name")

    # user
    p_user = sub.add_parser("user", help="Show or set the cloud sync user id")
    p_user.add_argument("user_id", nargs="?", default=None, help="New user id")
    p_user.add_argument("--clear", action="store_true", help="Forget the user id")
    p_user.add_argument("--list", action="store_true", help="List user ids on the server")

    # web
    p_web = sub.add_parser("web", aliases=["serve"],
                           help="Start the sync server")
    p_web.add_argument("--port", type=int, default=8080,
                       help="Port to serve on (default: 8080)")

    args = parser.parse_args()
    config = _load_config(args)
    setup_logging(config.log_level)

    commands = {
        "rank": cmd_rank,
        "buy": cmd_buy,
        "prestige": cmd_prestige,
        "import": cmd_import,
        "export": cmd_export,
        "import-csv": cmd_import_csv,
        "export-csv": cmd_export_csv,
        "resource": cmd_resource,
        "user": cmd_user,
    }
    if args.command in commands:
        commands[args.command](args, config)
    elif args.command in ("web", "serve"):
        import idle_opt.web as web
        web.DB_PATH = config.db_path
        web.start_server(port=args.port)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
