#!/usr/bin/env python3

import click

from zgraph import __version__
from zgraph.cli_utils import print_jsonl, standard_command
from zgraph.config import configure_logging, load_config
from zgraph.exit_codes import NoProjectsFoundError, ResolutionFailed
from zgraph.render import render_diagnostics, render_graph
from zgraph.services.graph_service import GraphService
from zgraph.version_gate import require_minimum_version


@click.group()
@click.version_option(version=__version__, prog_name="zgraph")
def cli():
    """zgraph - Dependency graph resolver for zmake-style build projects.

    Discovers projects, workspaces and rule files, then builds and
    validates the target dependency graph before anything is built.
    """
    pass


def _resolve(root):
    config = load_config()
    configure_logging(config)
    service = GraphService(root, config=config)
    resolution = service.resolve()
    if not service.last_discovery.projects and not resolution.diagnostics:
        raise NoProjectsFoundError(f"No project descriptors found under {root}")
    return resolution


@cli.command('resolve')
@click.argument('root', default='.', type=click.Path(exists=True, file_okay=False))
@click.option('--pretty', is_flag=True, help='Render tables instead of JSONL')
@standard_command
def resolve_cmd(root, pretty):
    """Resolve and validate the dependency graph under ROOT.

    Prints each resolved target as JSONL, or every diagnostic when the
    graph is invalid.
    """
    resolution = _resolve(root)

    if pretty:
        if resolution.ok:
            render_graph(resolution.graph)
        render_diagnostics(resolution.diagnostics)
    elif resolution.ok:
        print_jsonl(resolution.graph.to_dict()['targets'])
    else:
        print_jsonl(d.to_dict() for d in resolution.diagnostics)

    if not resolution.ok:
        raise ResolutionFailed(resolution.errors)


@cli.command('order')
@click.argument('root', default='.', type=click.Path(exists=True, file_okay=False))
@standard_command
def order_cmd(root):
    """Print the topological build order of the targets under ROOT."""
    resolution = _resolve(root)
    if not resolution.ok:
        print_jsonl(d.to_dict() for d in resolution.diagnostics)
        raise ResolutionFailed(resolution.errors)

    print_jsonl(
        {'position': position, 'id': identifier.format()}
        for position, identifier in enumerate(resolution.graph.topological_order(), 1)
    )


@cli.command('check-version')
@click.argument('required')
@standard_command
def check_version_cmd(required):
    """Fail unless this zgraph is at least version REQUIRED."""
    running = require_minimum_version(required)
    print_jsonl([{'running': running.format(), 'required': required, 'supported': True}])


def main():
    cli()

if __name__ == "__main__":
    main()
