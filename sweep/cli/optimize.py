"""
Optimization CLI for the SWEEP parameter search system.

This module provides a command-line interface for searching indicator
parameters with exhaustive, annealing or particle swarm search.
"""

import argparse
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from ..core.config import SEARCH_METHODS, Config, get_config
from ..core.exceptions import SearchCancelled, SweepException
from ..core.logging import setup_logging, get_logger
from ..data.providers import CSVBarProvider
from ..optimization.parameters.configuration import StrategyConfiguration
from ..optimization.search.optimizer import OptimizationResult, OptimizerConfig, StrategyOptimizer
from ..utils.helpers import format_percentage


def _load_config(parsed_args: argparse.Namespace) -> Config:
    config = get_config()
    if parsed_args.config:
        config = Config(config_file=parsed_args.config, env_file=parsed_args.env_file)
    if parsed_args.data_path:
        config.data.data_path = str(parsed_args.data_path)
    if parsed_args.timeframe:
        config.data.timeframe = parsed_args.timeframe
    if parsed_args.lookback_days:
        config.data.lookback_days = parsed_args.lookback_days
    if parsed_args.indicators:
        config.strategy.indicators = parsed_args.indicators.split(',')
    if parsed_args.method:
        config.optimization.method = parsed_args.method
    if parsed_args.iterations:
        config.optimization.iterations = parsed_args.iterations
    if parsed_args.instances is not None:
        config.optimization.n_instances = parsed_args.instances
    if parsed_args.seed is not None:
        config.optimization.seed = parsed_args.seed
    if parsed_args.output_dir:
        config.optimization.output_dir = str(parsed_args.output_dir)
    return config


def _progress_logger(logger, step_percent: int = 10):
    """Progress callback logging every ``step_percent`` percent."""
    state = {"next": step_percent}
    
    def report(current: int, total: int) -> None:
        percent = current * 100 // max(1, total)
        if percent >= state["next"]:
            logger.info(f"Progress: {current}/{total} ({percent}%)")
            state["next"] = (percent // step_percent + 1) * step_percent
    
    return report


def _print_summary(result: OptimizationResult) -> None:
    print("\n=== Optimization Completed ===")
    print(f"Method: {result.method} | Timeframe: {result.timeframe.label}")
    print(f"Candidates evaluated: {result.total_combinations_considered} "
          f"of {result.search_space_size} grid points")
    if result.is_empty:
        print("No candidate passed the validity checks.")
        return
    
    best = result.best_result
    print(f"Best fitness: {result.best_fitness:.4f}")
    print(f"Net profit: {best.net_profit:.2f} ({format_percentage(best.return_percentage / 100)})")
    print(f"Trades: {best.total_trades} | Win rate: {format_percentage(best.win_rate)}")
    print(f"Profit factor: {best.profit_factor:.2f} | Sharpe: {best.sharpe_ratio:.2f}")
    print(f"Max drawdown: {format_percentage(best.max_drawdown)}")
    print("Best parameters:")
    for descriptor in result.best_candidate:
        values = ", ".join(f"{k}={v}" for k, v in descriptor["parameters"].items())
        print(f"  {descriptor['kind']}: {values}")


def optimize_command(args: Optional[list] = None) -> None:
    """
    Search indicator parameters on historical bars.

    Args:
        args: Command line arguments (if None, uses sys.argv)
    """
    parser = argparse.ArgumentParser(
        description="Search indicator parameters for the best backtest performance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Parallel simulated annealing with default settings
  sweep optimize --data-path data/btc_1m.csv --timeframe 1h

  # Particle swarm over a custom indicator mix
  sweep optimize --method swarm --indicators supertrend,normalized_volume,atr_bands

  # Exhaustive grid walk with a fixed seed
  sweep optimize --method exhaustive --indicators lwpi --seed 7
        """
    )

    # -- Configuration ------------------------------------
    config_group = parser.add_argument_group('Configuration')
    config_group.add_argument(
        '--config', '-c',
        default='config/default_config.json',
        type=Path,
        help='Path to configuration file (JSON)'
    )
    config_group.add_argument(
        '--env-file', '-e',
        type=Path,
        help='Path to .env file with deployment overrides'
    )

    # -- Data Parameters ----------------------------------
    data_group = parser.add_argument_group('Data Parameters')
    data_group.add_argument('--data-path', type=Path, help='Path to CSV file with bars')
    data_group.add_argument('--timeframe', type=str, help='Bar timeframe, e.g. 15m, 1h, 4h, 1d')
    data_group.add_argument('--lookback-days', type=int, help='Only use the most recent N days')

    # -- Strategy -----------------------------------------
    strategy_group = parser.add_argument_group('Strategy')
    strategy_group.add_argument(
        '--indicators',
        type=str,
        help='Comma-separated indicator kinds (e.g. supertrend,mcginley_dynamic)'
    )

    # -- Search Parameters --------------------------------
    search_group = parser.add_argument_group('Search')
    search_group.add_argument('--method', choices=SEARCH_METHODS, help='Search method')
    search_group.add_argument('--iterations', type=int, help='Total search iterations')
    search_group.add_argument('--instances', type=int, help='Parallel instances (0 = one per CPU)')
    search_group.add_argument('--seed', type=int, help='Random seed for reproducible runs')

    # -- Output ------------------------------------------
    output_group = parser.add_argument_group('Output')
    output_group.add_argument('--output-dir', type=Path, help='Directory to save results')
    output_group.add_argument('--no-save', action='store_true', help='Do not write the result file')
    output_group.add_argument('--log-file', type=Path, help='Write structured JSON logs to this file')
    output_group.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], default='INFO', help='Logging level')

    parsed_args = parser.parse_args(args)

    # Setup logging
    setup_logging(
        level=parsed_args.log_level,
        log_file=parsed_args.log_file,
        enable_file=parsed_args.log_file is not None
    )
    logger = get_logger(__name__)

    cancel_event = threading.Event()
    try:
        config = _load_config(parsed_args)
        logger.info(f"Configuration: {config}")

        timeframe = config.get_timeframe()
        provider = CSVBarProvider(config.get_data_path(), lookback_days=config.data.lookback_days)
        bars = provider.get_bars(timeframe)
        logger.info(f"Loaded {len(bars)} {timeframe.label} bars")

        configuration = StrategyConfiguration.from_kind_names(config.strategy.indicators)
        optimizer = StrategyOptimizer(
            bars,
            configuration,
            config=OptimizerConfig.from_config(config),
            backtest_options=config.backtest_options()
        )

        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(optimizer.run, _progress_logger(logger), cancel_event)
            try:
                result = future.result()
            except KeyboardInterrupt:
                cancel_event.set()
                raise

        _print_summary(result)
        if not parsed_args.no_save:
            output_file = Path(config.optimization.output_dir) / (
                f"optimization_{configuration.name}_{timeframe.label}.json"
            )
            result.save(output_file)
            print(f"Results saved to: {output_file}")

    except (KeyboardInterrupt, SearchCancelled):
        logger.info("Optimization interrupted by user")
        sys.exit(1)
    except SweepException as e:
        logger.error(f"Optimization failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    optimize_command()
