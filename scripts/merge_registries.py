#!/usr/bin/python3
from pathlib import Path

import click

from plugin_deployment.registry import ConflictResolution, merge_registries
from plugin_deployment.types import ContractIdType, NetworkType


@click.command()
@click.option(
    "--network",
    "-n",
    help="Network of both registry files",
    type=NetworkType(),
    required=True,
)
@click.option(
    "--registry-1",
    help="Filepath to registry file 1",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)
@click.option(
    "--registry-2",
    help="Filepath to registry file 2",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)
@click.option(
    "--output-registry",
    "-o",
    help="Filepath of output registry file",
    type=click.Path(dir_okay=False, exists=False, path_type=Path),
    required=True,
)
@click.option(
    "--deprecated-contract",
    "-d",
    "deprecated_contracts",
    help="Contracts to exclude from the merge",
    type=ContractIdType(),
    required=False,
    multiple=True,
)
@click.option(
    "--prefer",
    help="Resolve every conflict with the entry of registry 1 or 2 instead of asking",
    type=click.Choice(["1", "2"]),
    default=None,
)
def cli(network, registry_1, registry_2, output_registry, deprecated_contracts, prefer):
    """Merge two registry files of the same network into one."""
    merge_registries(
        registry_1_filepath=registry_1,
        registry_2_filepath=registry_2,
        output_filepath=output_registry,
        network=network,
        deprecated_contracts=list(deprecated_contracts),
        force_conflict_resolution=ConflictResolution(int(prefer)) if prefer else None,
    )


if __name__ == "__main__":
    cli()
