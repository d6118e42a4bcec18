"""
Command Line Interface for cache-pull.

Restores a build cache archive from the cache API (or a local
``file://`` archive) onto this machine.
"""

import argparse
import sys
from typing import List, Optional

from ._version import __version__
from .config import PullSettings
from .constants import ExitCodes
from .cli_helpers import describe_failure, exit_with_error, map_exception_to_exit_code
from .logging_config import configure_logging, get_logger
from .pipeline import CachePuller, PullOutcome


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog='cache-pull',
        description='Download and extract a build cache archive'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--cache-api-url', dest='cache_api_url',
                        help='Cache API URL or file:// path of a local archive '
                             '(default: $cache_api_url)')
    parser.add_argument('--stack-id', dest='stack_id',
                        help='Current stack id; archives from other stacks are skipped '
                             '(default: $BITRISEIO_STACK_ID)')
    parser.add_argument('--extract-root', dest='extract_root',
                        help='Directory archive paths are restored under (default: /)')
    parser.add_argument('--staging-path', dest='staging_path',
                        help='Where the fallback download is stored')
    parser.add_argument('--debug', dest='debug_mode', action='store_true', default=None,
                        help='Enable debug logging (default: $is_debug_mode)')
    return parser


def main(args: Optional[List[str]] = None) -> None:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)
    """
    parser = create_parser()
    if args is None:
        args = sys.argv[1:]
    parsed_args = parser.parse_args(args)

    settings = PullSettings.from_env().with_overrides(
        cache_api_url=parsed_args.cache_api_url,
        stack_id=parsed_args.stack_id,
        extract_root=parsed_args.extract_root,
        staging_path=parsed_args.staging_path,
        debug_mode=parsed_args.debug_mode,
    )

    configure_logging('DEBUG' if settings.debug_mode else None)
    logger = get_logger(__name__)
    logger.info("Configs:")
    for key, value in settings.describe().items():
        logger.info("- %s: %s", key, value)

    try:
        result = CachePuller(settings).run()
    except Exception as exc:
        exit_code = map_exception_to_exit_code(exc)
        if exit_code is None:
            logger.debug("Unexpected failure", exc_info=True)
            exit_code = ExitCodes.UNEXPECTED_ERROR
        exit_with_error(describe_failure(exc), exit_code)
        return

    if result.outcome is PullOutcome.SKIPPED_STACK_MISMATCH:
        logger.info("Nothing extracted, cache belongs to another stack")


if __name__ == '__main__':
    main()
