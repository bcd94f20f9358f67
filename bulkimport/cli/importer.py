"""
CLI entry point for the bulk import pipeline.

Provides command-line interface for importing a folder into Chroma:
    - Argument parsing
    - Configuration file resolution
    - Console output formatting
    - Exit codes for automation
"""

import argparse
import logging
import sys
from pathlib import Path

from bulkimport.backend.base import BackendError
from bulkimport.backend.chroma_client import create_backend
from bulkimport.config.settings import (
    ENV_CONFIG_PATH,
    ConfigurationError,
    EmptyConfigurationError,
    ImportSettings,
    load_settings,
    resolve_config_path,
)
from bulkimport.ingestion.pipeline import run_import
from bulkimport.models import ImportReport
from bulkimport.utils.logger import format_error_message, setup_logging
from bulkimport.utils.validators import validate_root_path

logger = logging.getLogger("bulk_import.cli")


# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_BACKEND_ERROR = 2
EXIT_IMPORT_ERROR = 3

DEFAULT_LOG_LEVEL = "INFO"

USAGE = f"""Usage: bulkimport [config.yml]

The configuration file is taken from the first argument, the
{ENV_CONFIG_PATH} environment variable, or ./bulkimport.yml.

Example configuration:

  bulkimport:
    collection: articles
    type: article
    root: ./data
    fileext: json            # quote the wildcard: fileext: "*"
    linebyline: false
    max_bulk_actions: 1000
    max_concurrent_bulk_requests: 1
    max_volume_per_bulk_request: 10mb
    flush_interval: 5s
    transport.addresses:
      - localhost:8000
"""


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Arguments to parse (default: sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="bulkimport",
        description="Import a folder of documents into a Chroma collection in bulk",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  # Import using ./bulkimport.yml
  python main.py

  # Import using an explicit configuration file
  python main.py configs/articles.yml

  # Set custom log level
  bulkimport configs/articles.yml --log-level DEBUG

Environment Variables:
  {ENV_CONFIG_PATH}      Configuration file used when no argument is given

Exit Codes:
  0  Success - every document is reflected in the collection
  1  Configuration error - missing, empty or invalid configuration
  2  Backend error - Chroma connection or initialization failed
  3  Import error - failures reported, timeout reached, or reading failed
        """,
    )

    parser.add_argument(
        "config",
        nargs="?",
        type=str,
        default=None,
        help="Path to the YAML configuration file",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=DEFAULT_LOG_LEVEL,
        help=f"Logging level (default: {DEFAULT_LOG_LEVEL})",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="JSON log file (default: .logs/import_<timestamp>.json)",
    )

    return parser.parse_args(argv)


def print_usage() -> None:
    print(USAGE)


def print_banner(config_path: Path, settings: ImportSettings) -> None:
    """
    Print CLI banner with configuration summary.

    Args:
        config_path: Configuration file in use
        settings: Validated settings
    """
    if settings.mode == "embedded":
        target = f"embedded ({settings.embedded_path})"
    else:
        target = ", ".join(settings.transport_addresses)

    banner = f"""
{"=" * 70}
  Bulk Import
{"=" * 70}
  Configuration:      {config_path}
  Root Folder:        {settings.root}
  File Filter:        {settings.fileext or "*"}{" (line by line)" if settings.linebyline else ""}
  Chroma:             {target}
  Collection:         {settings.collection}
  Document Type:      {settings.doc_type or "-"}
  Bulk Size:          {settings.max_bulk_actions} docs / {settings.max_volume_per_bulk_request} bytes
  Concurrent Bulks:   {settings.max_concurrent_bulk_requests}
{"=" * 70}
"""
    print(banner, file=sys.stderr)


def run_import_from_config(config_path: Path) -> ImportReport:
    """
    Load the configuration, connect to Chroma and run the import.

    Args:
        config_path: YAML configuration file

    Returns:
        ImportReport of the run

    Raises:
        ConfigurationError: If the configuration is missing, empty or invalid
        BackendError: If the backend cannot be reached
        OSError: If reading the documents fails
    """
    settings = load_settings(config_path)

    is_valid, error_msg = validate_root_path(settings.root)
    if not is_valid:
        raise ConfigurationError(error_msg)

    backend = create_backend(settings)
    try:
        return run_import(settings, backend)
    finally:
        backend.close()


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0=success, 1=configuration error, 2=backend error, 3=import error)
    """
    args = parse_arguments(argv)

    setup_logging(log_level=args.log_level, log_file=args.log_file)
    logger.info("Bulk import CLI started")

    try:
        config_path = resolve_config_path(args.config)
        if config_path is None:
            print_usage()
            return EXIT_CONFIG_ERROR

        try:
            settings = load_settings(config_path)
        except EmptyConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            print_usage()
            return EXIT_CONFIG_ERROR
        except ConfigurationError as e:
            logger.error(
                format_error_message(
                    "Configuration invalid",
                    str(e),
                    "Fix the configuration file and try again",
                    file_path=config_path,
                )
            )
            return EXIT_CONFIG_ERROR

        print_banner(config_path, settings)

        is_valid, error_msg = validate_root_path(settings.root)
        if not is_valid:
            logger.error(
                format_error_message(
                    "Invalid root folder",
                    error_msg,
                    "Point 'root' at a readable directory",
                    file_path=config_path,
                )
            )
            return EXIT_CONFIG_ERROR

        logger.info("Connecting to Chroma...")
        try:
            backend = create_backend(settings)
        except (BackendError, ValueError) as e:
            logger.error(f"Chroma initialization error: {e}")
            logger.error("Possible causes:")
            logger.error("  - Chroma server is not running or not reachable")
            logger.error("  - Embedded store path is not accessible")
            logger.error("  - Embedding function is missing credentials")
            return EXIT_BACKEND_ERROR

        try:
            report = run_import(settings, backend)
        except OSError as e:
            logger.error(f"Import aborted while reading documents: {e}")
            return EXIT_IMPORT_ERROR
        finally:
            backend.close()

        logger.info(report.summary())
        print(f"Indexed {report.result} documents")

        if report.is_success():
            logger.info("Import completed successfully")
            return EXIT_SUCCESS

        logger.warning(f"Import finished {report.state}")
        return EXIT_IMPORT_ERROR

    except KeyboardInterrupt:
        logger.warning("[!] Interrupted by user")
        return EXIT_IMPORT_ERROR

    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return EXIT_IMPORT_ERROR


if __name__ == "__main__":
    sys.exit(main())
