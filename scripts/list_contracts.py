#!/usr/bin/python3

from pathlib import Path
from typing import List, Optional, Tuple

import click

from plugin_deployment.constants import ARTIFACTS_DIR
from plugin_deployment.networks import Network
from plugin_deployment.registry import AddressRegistry, RegistryEntry
from plugin_deployment.types import NetworkType


def _get_registry_entries(
    registry: AddressRegistry, network: Optional[Network] = None
) -> List[Tuple[Network, List[RegistryEntry]]]:
    """Collects the registry entries of the given network or of all networks."""
    registry_entries = list()
    for registry_network in registry.networks():
        if network and network != registry_network:
            continue
        entries = sorted(registry.entries(registry_network), key=lambda e: e.contract.value)
        registry_entries.append((registry_network, entries))
    return registry_entries


def _display_registry_entries(registry_entries: List[Tuple[Network, List[RegistryEntry]]]) -> None:
    for network, entries in registry_entries:
        click.secho(f"\n{network.value}", fg="green")
        for index, entry in enumerate(entries, start=1):
            click.secho(f"    {index}. {entry.contract.value} {entry.address}", fg="cyan")


@click.command(name="list-contracts")
@click.option(
    "--network",
    "-n",
    help="Network to list",
    type=NetworkType(),
)
@click.option(
    "--registry-dir",
    help="Directory holding the address registry files",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    default=ARTIFACTS_DIR,
)
def cli(network, registry_dir):
    """List all contracts in the registry. Optionally filter by network."""
    registry = AddressRegistry.from_directory(registry_dir)
    registry_entries = _get_registry_entries(registry, network)
    _display_registry_entries(registry_entries)


if __name__ == "__main__":
    cli()
