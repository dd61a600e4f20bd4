"""
Command line entry point for the budget variance analysis engine.
"""

import argparse
import logging
import sys
from typing import List, Optional

from budget_variance.analysis.engine import VarianceEngine
from budget_variance.cache.result_cache import CachedAnalyzer, ResultCache
from budget_variance.config.settings import Settings
from budget_variance.data.loader import LineLoader
from budget_variance.data.matching import align_actual_ids
from budget_variance.data.models import AnalysisOptions, AnalysisResult
from budget_variance.exceptions import VarianceEngineError
from budget_variance.reports.excel_generator import ExcelGenerator, export_csv
from budget_variance.utils.calculations import format_currency
from budget_variance.utils.logging_config import setup_logging

TOP_INSIGHTS = 5


def main(budget_file: str, actual_file: str, period: Optional[str] = None,
         organization_id: Optional[str] = None, board_id: Optional[str] = None,
         hierarchy: bool = False, insights: bool = True, include_zero: bool = False,
         match_names: bool = False, output_file: Optional[str] = None,
         csv_file: Optional[str] = None, config_dir: Optional[str] = None,
         log_level: Optional[str] = None, log_file: Optional[str] = None) -> AnalysisResult:
    """
    Load budget and actual files, analyze them and write the requested reports.

    Args:
        budget_file: CSV or Excel file of budget lines
        actual_file: CSV or Excel file of actual lines
        period: Period label for files without a period column
        organization_id: Organization id; with board_id, routes through the result cache
        board_id: Board id
        hierarchy: Build the account hierarchy from parent ids
        insights: Generate insights
        include_zero: Keep accounts with zero budget and zero actual
        match_names: Pair actual lines with budget lines by account name
        output_file: Excel report path
        csv_file: CSV export path
        config_dir: Directory holding engine.yaml
        log_level: Logging level name
        log_file: Optional log file path; defaults to the configured one

    Returns:
        The analysis result
    """
    settings = Settings(config_dir)
    recorder = setup_logging(log_level or settings.log_level, log_file or settings.log_file,
                             settings.data_quality_log)
    logger = logging.getLogger(__name__)
    logger.info("Starting budget variance analysis")

    loader = LineLoader(default_period=period)
    budget_lines = loader.load_budget(budget_file)
    actual_lines = loader.load_actual(actual_file)
    if match_names:
        actual_lines = align_actual_ids(budget_lines, actual_lines)

    options = AnalysisOptions(
        include_zero_variances=include_zero,
        include_children=hierarchy,
        generate_insights=insights,
    )
    engine = VarianceEngine(settings=settings)

    if organization_id and board_id and budget_lines:
        analyzer = CachedAnalyzer(engine, ResultCache.from_settings(settings))
        result = analyzer.analyze_period(
            organization_id, board_id, period or budget_lines[0].period,
            budget_loader=lambda: budget_lines,
            actual_loader=lambda: actual_lines,
            options=options,
        )
    else:
        result = engine.analyze(budget_lines, actual_lines, options)

    if output_file:
        ExcelGenerator().generate_report(result, output_file)
    if csv_file:
        export_csv(result, csv_file)

    _print_summary(result, recorder.messages)
    logger.info("Processing completed successfully")
    return result


def _print_summary(result: AnalysisResult, data_quality: Optional[List[str]] = None) -> None:
    summary = result.summary
    print(f"Variance analysis for {result.period}")
    print(f"  Budget:   {format_currency(result.total_budget)}")
    print(f"  Actual:   {format_currency(result.total_actual)}")
    print(f"  Variance: {format_currency(result.total_variance)} ({result.total_variance_percent:+.1f}%)")
    print(f"  Accounts: {summary.total_accounts} "
          f"({summary.critical_count} critical, {summary.warning_count} warning, "
          f"{summary.favorable_count} favorable)")
    if result.demoted_account_ids:
        print(f"  Demoted to root: {', '.join(result.demoted_account_ids)}")
    if data_quality:
        print(f"  Data quality warnings: {len(data_quality)}")
        for message in data_quality[:TOP_INSIGHTS]:
            print(f"      {message}")
    for insight in result.insights[:TOP_INSIGHTS]:
        print(f"  [{insight.severity.value.upper()}] {insight.message}")
        if insight.recommendation:
            print(f"      {insight.recommendation}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="budget-variance",
        description="Budget vs actual variance analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Flat analysis of one period
  budget-variance -b budget.csv -a actual.csv -p 2024-03

  # Hierarchical analysis with an Excel report
  budget-variance -b budget.xlsx -a actual.xlsx --hierarchy -o report.xlsx

  # Cached analysis for an organization board
  budget-variance -b budget.csv -a actual.csv --org acme --board 42 --csv variances.csv
        """
    )
    parser.add_argument("-b", "--budget", required=True, help="Budget lines file (.csv or .xlsx)")
    parser.add_argument("-a", "--actual", required=True, help="Actual lines file (.csv or .xlsx)")
    parser.add_argument("-p", "--period", help="Period label (YYYY-MM, YYYY-QN or YYYY) for files without one")
    parser.add_argument("--org", help="Organization id for cached analysis")
    parser.add_argument("--board", help="Board id for cached analysis")
    parser.add_argument("--hierarchy", action="store_true", help="Roll accounts up by parent id")
    parser.add_argument("--no-insights", action="store_true", help="Skip insight generation")
    parser.add_argument("--include-zero", action="store_true",
                        help="Keep accounts with zero budget and zero actual")
    parser.add_argument("--match-names", action="store_true",
                        help="Pair actual lines to budget lines by account name")
    parser.add_argument("-o", "--output", help="Excel report path")
    parser.add_argument("--csv", help="CSV export path")
    parser.add_argument("--config", help="Configuration directory containing engine.yaml")
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL or INFO)")
    parser.add_argument("--log-file", help="Also write logs to this file")
    return parser


def cli(argv: Optional[List[str]] = None) -> int:
    """Console script entry point."""
    args = build_parser().parse_args(argv)
    logger = logging.getLogger(__name__)

    try:
        main(
            budget_file=args.budget,
            actual_file=args.actual,
            period=args.period,
            organization_id=args.org,
            board_id=args.board,
            hierarchy=args.hierarchy,
            insights=not args.no_insights,
            include_zero=args.include_zero,
            match_names=args.match_names,
            output_file=args.output,
            csv_file=args.csv,
            config_dir=args.config,
            log_level=args.log_level,
            log_file=args.log_file,
        )
    except KeyboardInterrupt:
        logger.info("Processing interrupted by user")
        return 130
    except (VarianceEngineError, ValueError) as e:
        logger.error(f"Error during processing: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(cli())
