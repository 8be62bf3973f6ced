"""
Parameter space CLI for the SWEEP parameter search system.

Lists the registered indicator kinds and describes the grid spanned by a
strategy configuration.
"""

import argparse
import sys
from typing import Optional

from ..core.exceptions import SweepException
from ..core.logging import setup_logging, get_logger
from ..optimization.parameters.configuration import StrategyConfiguration
from ..optimization.parameters.registry import default_registry


def _print_kinds() -> None:
    print("Registered indicator kinds:")
    for kind in default_registry().kinds():
        print(f"  0x{kind.KIND_TAG:02x}  {kind.KIND_NAME:<20} {kind.ROLE.value:<16} "
              f"{kind.permutation_count()} grid points")


def _print_space(configuration: StrategyConfiguration) -> None:
    print(f"Strategy: {configuration.name}")
    for set_name, fields in configuration.describe():
        print(f"  {set_name}")
        for field in fields:
            print(f"    {field.name:<20} {field.kind:<6} [{field.min}, {field.max}] "
                  f"step {field.step} ({field.step_count} values)")
    print(f"Search space size: {configuration.permutation_count()}")


def space_command(args: Optional[list] = None) -> None:
    """
    Describe indicator parameter spaces.

    Args:
        args: Command line arguments (if None, uses sys.argv)
    """
    parser = argparse.ArgumentParser(
        description="Describe indicator parameter spaces",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List registered kinds
  sweep space --list

  # Grid of a strategy and its encoded default configuration
  sweep space --indicators supertrend,normalized_volume --encode
        """
    )

    # -- Strategy -----------------------------------------
    strategy_group = parser.add_argument_group('Strategy')
    strategy_group.add_argument('--list', action='store_true', help='List registered indicator kinds')
    strategy_group.add_argument(
        '--indicators',
        type=str,
        default='supertrend,mcginley_dynamic,atr_bands',
        help='Comma-separated indicator kinds'
    )

    # -- Output ------------------------------------------
    output_group = parser.add_argument_group('Output')
    output_group.add_argument('--encode', action='store_true', help='Print the binary encoding of the minimum grid point')
    output_group.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], default='WARNING', help='Logging level')

    parsed_args = parser.parse_args(args)

    setup_logging(level=parsed_args.log_level, enable_file=False)
    logger = get_logger(__name__)

    try:
        if parsed_args.list:
            _print_kinds()
            return

        configuration = StrategyConfiguration.from_kind_names(parsed_args.indicators.split(','))
        _print_space(configuration)
        if parsed_args.encode:
            print(f"Encoded: {configuration.encode().hex()}")
    except SweepException as e:
        logger.error(f"Space inspection failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    space_command()
