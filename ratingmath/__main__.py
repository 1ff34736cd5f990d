"""
Main entry point for ratingmath.

Loads a dataset and either writes the overview report as JSON or serves
the HTTP API.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from ratingmath.components.config import ConfigManager, load_config_file
from ratingmath.session import SessionManager


logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO') -> None:
    """
    Set up logging.

    Args:
        level: Logging level
    """
    level = level.upper()
    if level == 'WARN':
        level = 'WARNING'

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler()
        ]
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description='People x location score analytics')

    parser.add_argument(
        '--config',
        help='Path to configuration file (JSON or YAML)'
    )

    parser.add_argument(
        '--log-level',
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level'
    )

    parser.add_argument(
        '--source',
        help='Path or URL of the CSV dataset'
    )

    parser.add_argument(
        '--exponent',
        type=float,
        help='Exponent for the location power ranking (0 to 8)'
    )

    parser.add_argument(
        '--output',
        help='Write the overview report to this file instead of stdout'
    )

    parser.add_argument(
        '--serve',
        action='store_true',
        help='Serve the HTTP API instead of printing a report'
    )

    parser.add_argument(
        '--port',
        type=int,
        help='Server port'
    )

    parser.add_argument(
        '--host',
        help='Server host'
    )

    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Turn command line arguments into configuration overrides.

    Args:
        args: Parsed arguments

    Returns:
        Configuration overrides
    """
    overrides: Dict[str, Any] = {}

    if args.config:
        overrides.update(load_config_file(args.config))

    if args.source:
        overrides.setdefault('data', {})['source'] = args.source

    if args.exponent is not None:
        overrides.setdefault('ranking', {})['exponent'] = args.exponent

    if args.port:
        overrides.setdefault('server', {})['port'] = args.port

    if args.host:
        overrides.setdefault('server', {})['host'] = args.host

    if args.log_level:
        overrides.setdefault('logging', {})['level'] = args.log_level.lower()

    return overrides


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.
    """
    args = parse_args(argv)
    config = ConfigManager.get_config(build_overrides(args))
    setup_logging(config.get('logging.level', 'info'))

    session = SessionManager.get_session(config)
    try:
        session.load()
    except (ValueError, FileNotFoundError) as e:
        logger.error(f"Could not load dataset: {e}")
        return 1

    if args.serve:
        from ratingmath.components.server import ServerManager

        server = ServerManager.get_server(session, config)
        try:
            server.run()
        except KeyboardInterrupt:
            pass
        return 0

    report = json.dumps(session.overview(), indent=2)
    if args.output:
        with open(args.output, 'w') as f:
            f.write(report)
        logger.info(f"Wrote overview to {args.output}")
    else:
        sys.stdout.write(report + '\n')

    return 0


if __name__ == '__main__':
    sys.exit(main())
