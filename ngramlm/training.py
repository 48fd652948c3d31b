"""
Training Module with Rich Terminal UI

This module trains and evaluates models with progress displays and result
tables rendered by the Rich library, and runs parameter grid searches.
"""

import itertools
import logging
import random
from typing import Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from .errors import ConfigurationError
from .evaluation import MetricResult, evaluate_model
from .model import LanguageModel
from .nbest import SpeechNBestList
from .smoothing import DEFAULT_PARAMS, GRID_PARAMETERS, get_model, parse_method


console = Console()
logger = logging.getLogger(__name__)

# Parameter values tried by a grid search
GRID_VALUES = [round(0.1 * i, 1) for i in range(1, 10)]

METRIC_LABELS = {
    'train_perplexity': 'Train Perplexity',
    'validation_perplexity': 'Valid Perplexity',
    'test_perplexity': 'Test Perplexity',
    'hub_perplexity': 'HUB Perplexity',
    'wer_lower_bound': 'WER Best Path',
    'wer_upper_bound': 'WER Worst Path',
    'wer_random_choice': 'WER Avg Path',
    'word_error_rate': 'HUB Word Error Rate',
}


def setup_logging(level: str = "WARNING") -> None:
    """Route log records through Rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def create_stats_table(stats: Dict) -> Table:
    """Create a Rich table displaying model statistics."""
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="green")
    table.add_column("Value", style="yellow", justify="right")

    for key, value in stats.items():
        display_key = key.replace('_', ' ').title()

        if isinstance(value, bool):
            display_value = str(value)
        elif isinstance(value, float):
            display_value = f"{value:,.4f}"
        elif isinstance(value, int):
            display_value = f"{value:,}"
        else:
            display_value = str(value)

        table.add_row(display_key, display_value)

    return table


def create_results_table(results: Dict[str, MetricResult]) -> Table:
    """Create a Rich table of evaluation metrics, with the number of flagged items."""
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="green")
    table.add_column("Value", style="yellow", justify="right")
    table.add_column("Flagged", style="red", justify="right")

    for key, result in results.items():
        label = METRIC_LABELS.get(key, key.replace('_', ' ').title())
        table.add_row(label, f"{result.value:,.5f}", str(len(result.flagged)) if result.flagged else "")

    return table


def train_model_cli(method: str, sentences: List[List[str]],
                    params: Optional[Dict] = None,
                    rng: Optional[random.Random] = None) -> LanguageModel:
    """
    Train a model with terminal output.

    Args:
        method: Smoothing method name
        sentences: Training sentences
        params: Overrides for the method's default parameters
        rng: Random source for sentence generation

    Returns:
        Trained LanguageModel
    """
    smoothing_method = parse_method(method)
    model_params = {**DEFAULT_PARAMS[smoothing_method], **(params or {})}

    console.print()
    console.print(Panel.fit(
        "[bold blue]N-gram Language Model Training[/bold blue]",
        border_style="blue"
    ))
    console.print()

    config_table = Table(box=box.SIMPLE, show_header=False)
    config_table.add_column("Setting", style="cyan")
    config_table.add_column("Value", style="white")
    config_table.add_row("Model", smoothing_method.value)
    for key, value in model_params.items():
        config_table.add_row(key.replace('_', ' ').title(), str(value))
    config_table.add_row("Training Sentences", f"{len(sentences):,}")

    console.print(Panel(config_table, title="[bold]Configuration[/bold]", border_style="green"))
    console.print()

    with console.status("[cyan]Training model..."):
        model = get_model(smoothing_method, sentences, rng=rng, **(params or {}))

    console.print("[green]✓[/green] Training complete!")
    console.print()
    console.print(Panel(
        create_stats_table(model.training_stats),
        title="[bold]Training Statistics[/bold]",
        border_style="yellow"
    ))

    return model


def evaluate_model_cli(model: LanguageModel,
                       nbest_lists: Sequence[SpeechNBestList] = (),
                       datasets: Optional[Dict[str, List[List[str]]]] = None,
                       verbose: bool = False,
                       num_generated: int = 10) -> Dict[str, MetricResult]:
    """
    Evaluate a model with terminal output.

    Args:
        model: Trained model
        nbest_lists: Speech N-best lists for WER
        datasets: Named sentence collections for perplexity
        verbose: Log every chosen hypothesis
        num_generated: Number of sample sentences to print

    Returns:
        Dictionary of evaluation metrics
    """
    console.print()
    console.print(Panel.fit(f"[bold blue]Evaluating {model.name}[/bold blue]", border_style="blue"))
    console.print()

    with console.status("[cyan]Computing perplexity and word error rate..."):
        results = evaluate_model(model, nbest_lists, datasets, verbose=verbose)

    console.print(Panel(
        create_results_table(results),
        title="[bold]Evaluation Results[/bold]",
        border_style="green"
    ))

    if num_generated > 0:
        console.print()
        console.print("[magenta]Generated Sentences:[/magenta]")
        for _ in range(num_generated):
            console.print(f"  {' '.join(model.generate_sentence())}")
        console.print()

    return results


def grid_search(method: str, sentences: List[List[str]],
                nbest_lists: Sequence[SpeechNBestList] = (),
                datasets: Optional[Dict[str, List[List[str]]]] = None,
                values: Sequence[float] = GRID_VALUES,
                params: Optional[Dict] = None) -> Dict[str, Dict[tuple, Optional[float]]]:
    """
    Evaluate every combination of the method's grid parameters.

    Args:
        method: Smoothing method name
        sentences: Training sentences
        nbest_lists: Speech N-best lists for WER
        datasets: Named sentence collections for perplexity
        values: Values tried for each grid parameter
        params: Fixed parameters for the rest of the model

    Returns:
        Dictionary of metric name to {parameter values: metric value}.
        Combinations rejected by the model are left out.
    """
    smoothing_method = parse_method(method)
    if smoothing_method not in GRID_PARAMETERS:
        raise ConfigurationError(f"{smoothing_method.value} has no parameters to search")
    names = GRID_PARAMETERS[smoothing_method]
    combinations = list(itertools.product(values, repeat=len(names)))

    grid: Dict[str, Dict[tuple, Optional[float]]] = {}

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console
    ) as progress:
        task = progress.add_task(f"[cyan]Grid search over {', '.join(names)}", total=len(combinations))

        for combination in combinations:
            point = dict(zip(names, combination))
            try:
                model = get_model(smoothing_method, sentences, **{**(params or {}), **point})
                results = evaluate_model(model, nbest_lists, datasets)
            except ConfigurationError as e:
                logger.debug("Skipping %s: %s", point, e)
                results = {}

            for key, result in results.items():
                grid.setdefault(key, {})[combination] = result.value

            progress.advance(task)

    for key, cells in grid.items():
        console.print(render_grid(METRIC_LABELS.get(key, key), names, values, cells))

    return grid


def render_grid(title: str, names: Sequence[str], values: Sequence[float],
                cells: Dict[tuple, Optional[float]]) -> Table:
    """Render one metric of a grid search as a table (rows: first parameter, columns: second)."""
    table = Table(title=title, box=box.SIMPLE_HEAVY, header_style="bold cyan")

    if len(names) == 1:
        table.add_column(names[0], style="green")
        table.add_column("value", justify="right")
        for value in values:
            cell = cells.get((value,))
            table.add_row(f"{value:.1f}", "" if cell is None else f"{cell:08.5f}")
        return table

    table.add_column(f"{names[0]} \\ {names[1]}", style="green")
    for value in values:
        table.add_column(f"{value:.1f}", justify="right")
    for row in values:
        cells_in_row = []
        for column in values:
            cell = cells.get((row, column))
            cells_in_row.append("" if cell is None else f"{cell:08.5f}")
        table.add_row(f"{row:.1f}", *cells_in_row)
    return table
