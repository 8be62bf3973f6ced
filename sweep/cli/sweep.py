import sys
import argparse

from .. import __version__


def main():
    parser = argparse.ArgumentParser(
        description="SWEEP unified CLI: optimize, backtest, space"
    )
    parser.add_argument("--version", action="version", version=f"sweep {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Optimize subcommand
    optimize_parser = subparsers.add_parser("optimize", help="Search indicator parameters")
    optimize_parser.add_argument('args', nargs=argparse.REMAINDER)

    # Backtest subcommand
    backtest_parser = subparsers.add_parser("backtest", help="Backtest one parameter configuration")
    backtest_parser.add_argument('args', nargs=argparse.REMAINDER)

    # Space subcommand
    space_parser = subparsers.add_parser("space", help="Inspect a parameter space")
    space_parser.add_argument('args', nargs=argparse.REMAINDER)

    args = parser.parse_args()

    if args.command == "optimize":
        from .optimize import optimize_command
        optimize_command(args.args)
    elif args.command == "backtest":
        from .backtest import backtest_command
        backtest_command(args.args)
    elif args.command == "space":
        from .space import space_command
        space_command(args.args)
    else:
        parser.print_help()
        sys.exit(1)

if __name__ == "__main__":
    main()
