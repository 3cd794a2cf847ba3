"""Command-line interface for gbt_search."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer

from ..config import load_grid_spec, load_search_config, validate_search_config
from ..errors import ConfigurationError, NoValidConfigurationError, TrainingError
from ..experiments import enumerate_grid
from ..pipeline import run_search_from_config, save_search_artifacts
from ..utils import get_logger, json_log

app = typer.Typer(help='Gradient-boosted-tree grid search CLI', no_args_is_help=True)

log = get_logger(__name__)

EXIT_CONFIGURATION_ERROR = 2
EXIT_NO_VALID_CONFIGURATION = 3
EXIT_TRAINING_ERROR = 4


def _resolve_path(value: Path | None) -> Path | None:
    if value is None:
        return None
    return Path(value).expanduser().resolve()


@app.command('run')
def run(
    config: Annotated[
        Path,
        typer.Option(
            '--config',
            '-c',
            exists=True,
            readable=True,
            help='Path to search configuration YAML.',
        ),
    ] = Path('configs/search.yaml'),
    data: Annotated[
        Path | None,
        typer.Option('--data', '-d', help='Override data.train_path (training CSV).'),
    ] = None,
    test_data: Annotated[
        Path | None,
        typer.Option('--test-data', help='Override data.test_path (held-out CSV).'),
    ] = None,
    grid: Annotated[
        Path | None,
        typer.Option('--grid', '-g', help='Grid YAML overriding the config grid.'),
    ] = None,
    k: Annotated[
        int | None,
        typer.Option('--k', help='Number of folds per repeat.'),
    ] = None,
    repeats: Annotated[
        int | None,
        typer.Option('--repeats', help='Number of repeated fold splits.'),
    ] = None,
    seed: Annotated[
        int | None,
        typer.Option('--seed', help='Seed for fold generation.'),
    ] = None,
    n_jobs: Annotated[
        int | None,
        typer.Option('--n-jobs', help='Parallel workers for CV cells.'),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            '--output',
            '-o',
            help='Report JSON path. Defaults to <output.dir>/<run_id>/report.json',
        ),
    ] = None,
) -> None:
    """Run grid search, refit the best configuration and evaluate it."""
    log.info(
        json_log(
            'cli.run.start',
            component='cli',
            config=str(config),
            data=str(data) if data else None,
            grid=str(grid) if grid else None,
        )
    )
    try:
        cfg = load_search_config(config)

        data_overrides = {}
        if data is not None:
            data_overrides['train_path'] = _resolve_path(data)
        if test_data is not None:
            data_overrides['test_path'] = _resolve_path(test_data)
        cv_overrides = {
            name: value
            for name, value in (('k', k), ('repeats', repeats), ('seed', seed), ('n_jobs', n_jobs))
            if value is not None
        }
        cfg = replace(
            cfg,
            data=replace(cfg.data, **data_overrides),
            cv=replace(cfg.cv, **cv_overrides),
            grid=load_grid_spec(grid) if grid is not None else cfg.grid,
        )
        validate_search_config(cfg)

        result = run_search_from_config(cfg)
        paths = save_search_artifacts(
            result,
            output_dir=cfg.output.dir,
            report_path=_resolve_path(output),
        )
    except ConfigurationError as e:
        log.error(json_log('cli.run.configuration_error', component='cli', error=str(e)))
        typer.echo(f'Configuration error: {e}', err=True)
        raise typer.Exit(code=EXIT_CONFIGURATION_ERROR) from e
    except NoValidConfigurationError as e:
        log.error(json_log('cli.run.no_valid_configuration', component='cli', error=str(e)))
        typer.echo(f'No valid configuration: {e}', err=True)
        raise typer.Exit(code=EXIT_NO_VALID_CONFIGURATION) from e
    except TrainingError as e:
        log.error(
            json_log('cli.run.training_error', component='cli', error=str(e), **e.context())
        )
        typer.echo(f'Training error: {e}', err=True)
        raise typer.Exit(code=EXIT_TRAINING_ERROR) from e

    report = result.report
    selected = result.selected
    typer.echo(f'Selected config #{selected.config.index}: {selected.config.label}')
    typer.echo(
        f'  CV AUC: {selected.summary.mean_auc:.4f} '
        f'(sd {selected.summary.std_auc:.4f}, {selected.summary.n_successful} folds)'
    )
    typer.echo(
        f'  Test AUC: {report.auc:.4f} '
        f'[{report.auc_lower:.4f}, {report.auc_upper:.4f}] ({report.ci_method})'
    )
    typer.echo(f'  Optimal threshold (Youden): {report.optimal.threshold:.4f}')
    for summary in result.summaries.values():
        if summary.n_failures:
            typer.echo(f'  Config #{summary.config.index}: {summary.n_failures} fold failure(s)')
    typer.echo(f'Report written to: {paths["report"]}')

    log.info(json_log('cli.run.completed', component='cli', report=str(paths['report'])))


@app.command('grid')
def show_grid(
    grid: Annotated[
        Path,
        typer.Option('--grid', '-g', exists=True, readable=True, help='Grid YAML to expand.'),
    ],
) -> None:
    """Print every configuration a grid expands to."""
    try:
        configs = enumerate_grid(load_grid_spec(grid))
    except ConfigurationError as e:
        typer.echo(f'Configuration error: {e}', err=True)
        raise typer.Exit(code=EXIT_CONFIGURATION_ERROR) from e

    for config in configs:
        typer.echo(f'{config.index}\t{config.label}')
    typer.echo(f'{len(configs)} configuration(s)')


if __name__ == '__main__':
    app()
