#!/usr/bin/env python3
"""
text2classes.py

Read one or more plain-text corpora (one sentence per line), induce a
partition of the vocabulary into word classes with the one-sided exchange
algorithm, and write the word-to-class mapping to stdout in TSV or SRILM
class format.

Options can also be given in a YAML file (--config); command line flags
override the file.
"""
import argparse
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import ValidationError

from wordclasses.clustering import WordClusterer, WordClassError
from wordclasses.clustering.cluster_logging import setup_cluster_logging, get_cluster_logger
from wordclasses.schema.cluster import ClusterConfig, ClusterStats

EXIT_FAILURE = 1
EXIT_USAGE = 2

OPTION_NAMES = ("order", "nthreads", "nclasses", "niters", "vparts", "format", "seed")

# Module-level logger that gets configured in main()
logger = None


def get_logger() -> logging.Logger:
    """Get the module logger, creating a basic one if none exists."""
    global logger
    if logger is None:
        logger = get_cluster_logger('text2classes')
    return logger


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="text2classes",
        description="Induce word classes from plain-text corpora",
        usage="%(prog)s OPTS file [file ...] > output",
        add_help=False
    )
    p.add_argument("files", nargs="*", type=Path, help="Corpus files, one sentence per line (.gz accepted)")
    p.add_argument("--order", type=int, help="Model order (default: 2)")
    p.add_argument("--nthreads", type=int, help="Number of worker processes (default: 1)")
    p.add_argument("--nclasses", type=int, help="Number of classes (default: 512)")
    p.add_argument("--niters", type=int, help="Number of iterations (default: 20)")
    p.add_argument("--vparts", type=int, help="Number of vocabulary partitions (default: 3)")
    p.add_argument("--format", help="Output format [srilm|tsv] (default: tsv)")
    p.add_argument("--seed", type=int, help="Seed of the vocabulary shuffle (default: 0)")
    p.add_argument(
        "-c", "--config",
        dest="config", type=Path, default=None,
        help="YAML file with any of the options above"
    )
    p.add_argument("--log-dir", dest="log_dir", type=Path, default=None,
                   help="Also write a debug log file into this directory")
    p.add_argument("--stats-out", dest="stats_out", type=Path, default=None,
                   help="Write run statistics as JSON to this path")
    p.add_argument("-h", "--help", action="store_true", help="Show this message and exit")
    return p


def usage_error(parser: argparse.ArgumentParser, message: Optional[str] = None) -> int:
    """Print usage (and an optional error) to stderr; returns the usage exit code."""
    if message:
        print(f"{parser.prog}: error: {message}", file=sys.stderr)
    print(parser.format_help(), file=sys.stderr)
    return EXIT_USAGE


def load_options(path: Path) -> Dict:
    """Load option values from a YAML configuration file."""
    logger = get_logger()
    logger.info(f"Loading options from: {path}")
    if not path.exists():
        logger.error(f"Config not found: {path}")
        raise FileNotFoundError(path)

    with open(path, "r", encoding="utf-8") as f:
        options = yaml.safe_load(f) or {}

    if not isinstance(options, dict):
        raise ValueError(f"Config {path} must contain a mapping of option names to values")
    return options


def build_config(args: argparse.Namespace) -> ClusterConfig:
    """
    Merge defaults, YAML options and command line flags into a validated config.

    Raises:
        FileNotFoundError: If the config file does not exist
        pydantic.ValidationError: If any option value is invalid
    """
    options = load_options(args.config) if args.config else {}
    for name in OPTION_NAMES:
        value = getattr(args, name)
        if value is not None:
            options[name] = value
    return ClusterConfig(**options)


def save_stats(path: Path, stats: ClusterStats) -> None:
    """Save run statistics to JSON using the ClusterStats schema."""
    logger = get_logger()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(stats.model_dump_json(indent=2))
    logger.info(f"Saved run statistics to: {path}")


def log_summary(config: ClusterConfig, stats: ClusterStats, elapsed: float) -> None:
    logger = get_logger()
    logger.info("=" * 60)
    logger.info("CLUSTERING SUMMARY")
    logger.info("=" * 60)
    logger.info(f"  Vocabulary: {stats.vocabulary_size:,} words, {stats.num_tokens:,} tokens")
    logger.info(f"  Classes: {config.nclasses}, iterations: {len(stats.iterations)}")
    logger.info(f"  Objective: {stats.initial_objective:.4f} -> {stats.final_objective:.4f}")
    logger.info(f"  Total updates: {stats.total_updates:,}")
    logger.info(f"  Finished at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')} ({elapsed:.2f}s)")
    logger.info("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.help:
        return usage_error(parser)
    if not args.files:
        return usage_error(parser, "no input files given")

    try:
        config = build_config(args)
    except ValidationError as e:
        return usage_error(parser, f"invalid options:\n{e}")
    except (OSError, ValueError, yaml.YAMLError) as e:
        return usage_error(parser, f"cannot load config: {e}")

    global logger
    logger = setup_cluster_logging(args.log_dir, 'text2classes', config.nclasses)
    logger.info("OPTIONS:")
    for key, value in config.model_dump(mode="json").items():
        logger.info(f"  {key}: {value}")
    logger.info(f"  input files: {', '.join(str(f) for f in args.files)}")

    start_time = time.time()
    clusterer = WordClusterer.from_config(config)
    try:
        clusterer.run(args.files)
    except WordClassError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    clusterer.write_results(sys.stdout, config.format)
    sys.stdout.flush()

    stats = clusterer.stats
    if args.stats_out:
        save_stats(args.stats_out, stats)
    log_summary(config, stats, time.time() - start_time)
    return 0


if __name__ == "__main__":
    sys.exit(main())
