#!/usr/bin/python3
from pathlib import Path

import click

from plugin_deployment.constants import ARTIFACTS_DIR
from plugin_deployment.exceptions import DeploymentError
from plugin_deployment.executor import read_journal
from plugin_deployment.modules import REGISTRY_OUTPUTS
from plugin_deployment.registry import AddressRegistry, RegistryEntry
from plugin_deployment.types import ChecksumAddress, ContractIdType, NetworkType


def _record_journal(registry: AddressRegistry, journal_filepath: Path):
    result = read_journal(journal_filepath)
    if not result.is_complete:
        raise click.ClickException(f"Deployment in {journal_filepath} is not complete.")

    contracts = dict()
    for outputs in REGISTRY_OUTPUTS.values():
        contracts.update({name: c for name, c in outputs.items() if name in result.output_ids})
    if not contracts:
        raise click.ClickException("Deployment exposes no outputs that map to a registry entry.")

    return registry.record_result(result, contracts)


@click.command()
@click.option(
    "--journal",
    "-j",
    "journal_filepath",
    help="Filepath of the deployment journal to record",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)
@click.option(
    "--network",
    "-n",
    help="Network of a manually recorded address",
    type=NetworkType(),
    required=False,
)
@click.option(
    "--contract",
    "-c",
    help="Contract of a manually recorded address",
    type=ContractIdType(),
    required=False,
)
@click.option(
    "--address",
    "-a",
    help="Manually recorded address",
    type=ChecksumAddress(),
    required=False,
)
@click.option(
    "--registry-dir",
    help="Directory holding the address registry files",
    type=click.Path(file_okay=False, path_type=Path),
    default=ARTIFACTS_DIR,
    show_default=True,
)
def cli(journal_filepath, network, contract, address, registry_dir):
    """
    Record the outputs of a completed deployment into the address registry,
    or record a single address deployed by other means.
    """
    manual = (network, contract, address)
    if journal_filepath and any(manual):
        raise click.BadOptionUsage("journal", "--journal cannot be combined with --address")
    if not journal_filepath and not all(manual):
        raise click.UsageError("Provide --journal, or all of --network, --contract and --address")

    registry = AddressRegistry.from_directory(registry_dir)
    try:
        if journal_filepath:
            entries = _record_journal(registry, journal_filepath)
        else:
            registry.record(network, contract, address)
            entries = [RegistryEntry(network, contract, address)]
    except DeploymentError as e:
        raise click.ClickException(str(e)) from e
    registry.write(registry_dir)

    for entry in entries:
        click.secho(
            f"(i) {entry.contract.value} on {entry.network.value}: {entry.address}", fg="green"
        )


if __name__ == "__main__":
    cli()
