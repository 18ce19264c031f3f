"""
Command-line interface for the Frontier Analytics package.

This module provides a command-line interface for running the analytics
workflows on an input JSON document and writing the responses as JSON.
"""

import json
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import click
from pydantic import BaseModel

from .data import ActivityDataLoader
from .exceptions import FrontierAnalyticsError
from .models import DurabilityFilters
from .services import AnalyticsService
from .settings import Settings, load_settings


# Configure basic logging
def configure_logging(verbose: bool = False) -> None:
    """Configure logging with appropriate level."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def common_options(func: Callable) -> Callable:
    """Options shared by every analysis command."""
    func = click.option(
        "--verbose/--quiet",
        default=False,
        help="Enable verbose output",
    )(func)
    func = click.option(
        "--output",
        type=click.Path(dir_okay=False, path_type=Path),
        help="Write the JSON response to this file instead of stdout",
    )(func)
    func = click.option(
        "--config",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Path to configuration file",
    )(func)
    func = click.argument(
        "input_file",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
    )(func)
    return func


def write_response(response: BaseModel, output: Path | None) -> None:
    """Serialize a response as camelCase JSON."""
    text = json.dumps(response.model_dump(mode="json", by_alias=True), indent=2)
    if output is None:
        click.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    logging.getLogger(__name__).info(f"Response written to {output}")


def run_workflow(
    input_file: Path,
    config: Path | None,
    output: Path | None,
    verbose: bool,
    workflow: Callable,
) -> None:
    """
    Load settings and input, run one workflow and write its response.

    Args:
        input_file: Input JSON document
        config: Optional YAML configuration file
        output: Optional output file
        verbose: Enable debug logging
        workflow: Callable taking (service, document) and returning a response
    """
    configure_logging(verbose)
    logger = logging.getLogger(__name__)

    try:
        settings: Settings = load_settings(config)
        service = AnalyticsService(settings)
        document = ActivityDataLoader(settings).load_document(input_file)
        response = workflow(service, document)
        write_response(response, output)
    except FrontierAnalyticsError as e:
        logger.error(f"Analysis failed: {str(e)}")
        raise click.Abort() from e
    except OSError as e:
        logger.error(f"Unexpected error: {str(e)}")
        raise click.Abort() from e


@click.group()
def main():
    """
    Compute training frontiers and durability analytics.

    This tool reads activity samples from a JSON document, computes
    performance frontiers, durability and training-load blocks, and writes
    the results as JSON.
    """


@main.command()
@common_options
def frontiers(
    input_file: Path, config: Path | None, output: Path | None, verbose: bool
) -> None:
    """
    Compute the training frontiers.

    Duration power, fatigue-threshold efforts, efficiency windows,
    repeatability and time in zone across all activities.
    """
    run_workflow(
        input_file,
        config,
        output,
        verbose,
        lambda service, document: service.training_frontiers(document),
    )


@main.command()
@common_options
@click.option(
    "--min-duration",
    type=float,
    default=None,
    help="Minimum ride duration in seconds (default from config, 3 hours)",
)
@click.option(
    "--start-date",
    type=click.DateTime(),
    help="Earliest ride start (YYYY-MM-DD)",
)
@click.option(
    "--end-date",
    type=click.DateTime(),
    help="Latest ride start (YYYY-MM-DD)",
)
@click.option(
    "--discipline",
    type=str,
    help="Only rides whose source contains this text",
)
def durability(
    input_file: Path,
    config: Path | None,
    output: Path | None,
    verbose: bool,
    min_duration: float | None,
    start_date: datetime | None,
    end_date: datetime | None,
    discipline: str | None,
) -> None:
    """Analyze pacing durability for long rides."""
    filters = DurabilityFilters(
        min_duration_sec=min_duration,
        start_date=start_date,
        end_date=end_date,
        discipline=discipline,
    )

    run_workflow(
        input_file,
        config,
        output,
        verbose,
        lambda service, document: service.durability_analysis(
            document, filters=filters
        ),
    )


@main.command("durable-tss")
@common_options
@click.option(
    "--threshold-kj",
    type=float,
    default=None,
    help="Prior work in kJ before stress is counted (1-5000)",
)
@click.option(
    "--start-date",
    type=click.DateTime(),
    help="Earliest ride start (YYYY-MM-DD)",
)
@click.option(
    "--end-date",
    type=click.DateTime(),
    help="Latest ride start (YYYY-MM-DD)",
)
def durable_tss(
    input_file: Path,
    config: Path | None,
    output: Path | None,
    verbose: bool,
    threshold_kj: float | None,
    start_date: datetime | None,
    end_date: datetime | None,
) -> None:
    """Compute training stress accumulated after a kJ threshold."""
    run_workflow(
        input_file,
        config,
        output,
        verbose,
        lambda service, document: service.durable_tss(
            document,
            threshold_kj=threshold_kj,
            start_date=start_date,
            end_date=end_date,
        ),
    )


@main.command()
@common_options
def adaptation(
    input_file: Path, config: Path | None, output: Path | None, verbose: bool
) -> None:
    """Find the best multi-day training blocks by TSS and kJ."""
    run_workflow(
        input_file,
        config,
        output,
        verbose,
        lambda service, document: service.adaptation_edges(document),
    )


if __name__ == "__main__":
    main()
