#!/usr/bin/env python3
"""
Command-line interface for the exchange rate / inflation / output gap analysis.
"""

import argparse
import logging
import sys

from config import load_config
from errors import AnalysisError
from pipeline import analyze_file, format_report
from plots import build_figures, save_figures


def setup_logging(verbose=False, quiet=False, log_file=None):
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Integration order, ARDL bounds testing, VAR diagnostics and Granger causality",
    )
    parser.add_argument("data", help="CSV file with Date, exchange rate, inflation and activity columns")
    parser.add_argument("--config", "-c", help="YAML configuration file")
    parser.add_argument("--plots-dir", help="Directory for plot files (overrides config)")
    parser.add_argument("--no-plots", action="store_true", help="Skip writing plot files")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--quiet", "-q", action="store_true", help="Suppress output except errors")
    parser.add_argument("--log-file", help="Log file path")
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.quiet, args.log_file)
    logger = logging.getLogger("cli")

    try:
        config = load_config(args.config)
        report = analyze_file(args.data, config)
    except AnalysisError as e:
        logger.error("Analysis failed at stage '%s': %s", e.stage, e)
        return 1

    print(format_report(report))

    if not args.no_plots:
        save_figures(build_figures(report, irf_steps=config.irf_steps),
                     args.plots_dir or config.plots_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
