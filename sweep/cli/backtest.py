"""
Backtesting CLI for the SWEEP parameter search system.

This module provides a command-line interface for replaying one parameter
configuration, optionally across a grid of account settings.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from ..core.config import Config, get_config
from ..core.exceptions import SweepException
from ..core.logging import setup_logging, get_logger
from ..data.providers import CSVBarProvider
from ..optimization.backtesting import BacktestEngine, BacktestResult, IndicatorStrategy, MetricsAggregator
from ..optimization.parameters.configuration import StrategyConfiguration
from ..optimization.search.optimizer import OptimizationResult
from ..utils.helpers import ensure_directory, format_percentage


def _load_config(parsed_args: argparse.Namespace) -> Config:
    """
    Load and override configuration from command-line arguments.

    Args:
        parsed_args: Parsed command-line arguments.
    Returns:
        Config: The loaded and overridden configuration object.
    """
    config = get_config()
    if parsed_args.config:
        config = Config(config_file=parsed_args.config, env_file=parsed_args.env_file)
    if parsed_args.data_path:
        config.data.data_path = str(parsed_args.data_path)
    if parsed_args.timeframe:
        config.data.timeframe = parsed_args.timeframe
    if parsed_args.indicators:
        config.strategy.indicators = parsed_args.indicators.split(',')
    if parsed_args.initial_balance:
        config.backtest.initial_balance = parsed_args.initial_balance
    if parsed_args.leverage:
        config.backtest.leverage = parsed_args.leverage
    return config


def _parse_list(text: Optional[str], cast) -> List[Any]:
    if not text:
        return []
    return [cast(item) for item in text.split(',') if item.strip()]


def _load_configuration(parsed_args: argparse.Namespace, config: Config) -> StrategyConfiguration:
    """Configuration from a saved optimization result, or default-valued kinds."""
    if parsed_args.parameters:
        return OptimizationResult.load_candidate(parsed_args.parameters)
    return StrategyConfiguration.from_kind_names(config.strategy.indicators)


def _log_single_result(result: BacktestResult, logger: Any) -> None:
    """
    Log metrics for a single backtest result.

    Args:
        result: Backtest result object.
        logger: Logger instance.
    """
    logger.info("Backtest result", extra={"extra_fields": {
        "event": "single_result",
        "net_profit": result.net_profit,
        "total_trades": result.total_trades,
        "win_rate": result.win_rate,
        "max_drawdown": result.max_drawdown,
        "sharpe_ratio": result.sharpe_ratio,
    }})
    print(f"Max trades {result.max_concurrent_trades}, risk {result.risk_percentage}%: "
          f"net {result.net_profit:.2f}, {result.total_trades} trades, "
          f"win rate {format_percentage(result.win_rate)}, "
          f"drawdown {format_percentage(result.max_drawdown)}"
          + (f" [{result.termination_reason}]" if result.terminated_early else ""))


def _save_results(
    results: List[BacktestResult],
    configuration: StrategyConfiguration,
    output_dir: Path,
    logger: Any
) -> Path:
    """
    Save backtest results with the configuration that produced them.

    Args:
        results: Backtest results.
        configuration: Replayed configuration.
        output_dir: Directory to save results.
        logger: Logger instance.
    """
    ensure_directory(output_dir)
    result_data = {
        'configuration': configuration.to_descriptors(),
        'results': [r.to_dict() for r in results],
        'summary': MetricsAggregator.aggregate(results) if len(results) > 1 else {},
    }
    result_file = output_dir / f"backtest_{configuration.name}.json"
    with open(result_file, 'w', encoding='utf-8') as f:
        json.dump(result_data, f, indent=2, default=str)
    logger.info(f"Backtest results saved to {result_file}")
    return result_file


def backtest_command(args: Optional[list] = None) -> None:
    """
    Backtest one parameter configuration.

    Args:
        args: Command line arguments (if None, uses sys.argv)
    """
    parser = argparse.ArgumentParser(
        description="Backtest one indicator parameter configuration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay the best candidate of an optimization run
  sweep backtest --parameters results/optimization_supertrend_1h.json

  # Default parameters across several account settings
  sweep backtest --indicators supertrend --max-trades 1,2,3 --risk 0.5,1,2
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

    # -- Strategy -----------------------------------------
    strategy_group = parser.add_argument_group('Strategy')
    strategy_group.add_argument(
        '--parameters',
        type=Path,
        help='Optimization result file whose best candidate is replayed'
    )
    strategy_group.add_argument(
        '--indicators',
        type=str,
        help='Comma-separated indicator kinds, used with default parameters'
    )

    # -- Backtesting Parameters ---------------------------
    backtest_group = parser.add_argument_group('Backtesting')
    backtest_group.add_argument('--initial-balance', type=float, help='Initial account balance')
    backtest_group.add_argument('--leverage', type=int, help='Position leverage')
    backtest_group.add_argument('--max-trades', type=str, help='Comma-separated concurrent position limits to sweep')
    backtest_group.add_argument('--risk', type=str, help='Comma-separated risk percentages to sweep')

    # -- Output Parameters --------------------------------
    output_group = parser.add_argument_group('Output')
    output_group.add_argument('--output-dir', type=Path, default=Path('backtest_results'), help='Directory to save backtest results')
    output_group.add_argument('--save-results', action='store_true', help='Save detailed results to files')
    output_group.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], default='INFO', help='Logging level')

    parsed_args = parser.parse_args(args)

    # Setup logging
    setup_logging(level=parsed_args.log_level, enable_file=False)
    logger = get_logger(__name__)

    try:
        config = _load_config(parsed_args)
        logger.info(f"Configuration: {config}")

        timeframe = config.get_timeframe()
        provider = CSVBarProvider(config.get_data_path(), lookback_days=config.data.lookback_days)
        bars = provider.get_bars(timeframe)

        configuration = _load_configuration(parsed_args, config)
        engine = BacktestEngine(config.backtest_options())
        logger.info(f"Backtesting {configuration.name} on {len(bars)} {timeframe.label} bars")

        max_trades = _parse_list(parsed_args.max_trades, int) or [config.backtest.max_concurrent_trades]
        risks = _parse_list(parsed_args.risk, float) or [config.backtest.risk_percentage]
        results = engine.run_sweep(
            lambda: IndicatorStrategy(configuration),
            bars,
            max_concurrent_trades=max_trades,
            risk_percentages=risks
        )

        for result in results:
            _log_single_result(result, logger)

        if len(results) > 1:
            summary = MetricsAggregator.aggregate(results)
            logger.info("Sweep summary", extra={"extra_fields": summary})
            print(f"Mean net profit: {summary.get('net_profit_mean', 0.0):.2f}")

        if parsed_args.save_results:
            _save_results(results, configuration, parsed_args.output_dir, logger)
        logger.info("Backtesting completed successfully")

    except KeyboardInterrupt:
        logger.info("Backtesting interrupted by user")
        sys.exit(1)
    except SweepException as e:
        logger.error(f"Backtesting failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    backtest_command()
