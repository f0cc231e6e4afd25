#!/usr/bin/env python3
"""
cluster_logging.py

Centralized logging configuration for the word class induction pipeline.
Console output goes through Rich on stderr (stdout carries the class
assignments); an optional log file captures everything at DEBUG level.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def log_file_name(num_classes: int, started: Optional[datetime] = None) -> str:
    """Log file name for a run, e.g. ``512-classes.14-03-59.log``."""
    started = started or datetime.now()
    return f"{num_classes}-classes.{started.strftime('%H-%M-%S')}.log"


def setup_cluster_logging(log_dir: Optional[Path] = None, logger_name: str = 'text2classes',
                          num_classes: int = 512) -> logging.Logger:
    """
    Setup logging for the class induction pipeline.

    Args:
        log_dir: Directory for the log file; console-only logging if None
        logger_name: Name for the logger (default: 'text2classes')
        num_classes: Used to name the log file

    Returns:
        Configured logger instance
    """
    # Clear any existing handlers to avoid conflicts
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    # stdout is reserved for the assignments
    console = Console(stderr=True)

    console_handler = RichHandler(
        console=console,
        show_path=False,
        rich_tracebacks=True,
        markup=False
    )
    console_handler.setLevel(logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)

    log_file = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        detailed_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(funcName)-20s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        log_file = log_dir / log_file_name(num_classes)
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)
    # Let the root handlers do the output
    logger.propagate = True

    logger.info("=" * 60)
    logger.info("WORD CLASS INDUCTION")
    logger.info("=" * 60)
    logger.info(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    if log_file is not None:
        logger.info(f"Log file: {log_file}")
    logger.info("-" * 60)

    return logger


def get_cluster_logger(logger_name: str = 'text2classes') -> logging.Logger:
    """
    Get the pipeline logger, creating a basic one if none exists.

    Args:
        logger_name: Name of the logger to retrieve

    Returns:
        Logger instance
    """
    logger = logging.getLogger(logger_name)
    has_handlers = bool(logger.handlers) or (logger.parent is not None and bool(logger.parent.handlers))

    if not has_handlers:
        # Warnings only, e.g. when used as a library or in tests
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setLevel(logging.WARNING)
        logger.addHandler(handler)
        logger.setLevel(logging.WARNING)
    return logger
