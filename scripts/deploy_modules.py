#!/usr/bin/python3

import click

from plugin_deployment.confirm import _continue
from plugin_deployment.constants import ARTIFACTS_DIR
from plugin_deployment.exceptions import DeploymentError, DeploymentFailed
from plugin_deployment.executor import (
    DeploymentResult,
    ResumePolicy,
    deploy,
    journal_filepath,
    read_journal,
)
from plugin_deployment.ledger import ApeLedger, check_chain_id, connect, print_connection_info
from plugin_deployment.modules import MODULES
from plugin_deployment.networks import get_connection
from plugin_deployment.options import (
    autosign_option,
    confirmations_option,
    module_option,
    network_option,
    registry_dir_option,
    resume_option,
    verify_option,
)
from plugin_deployment.params import load_parameters
from plugin_deployment.registry import AddressRegistry
from plugin_deployment.utils import verify_contracts


def _display_result(result: DeploymentResult) -> None:
    click.secho(f"\n{result.network.value} deployment", fg="green")
    for record in result.records.values():
        colour = "cyan" if record.is_confirmed else "red"
        reused = " (reused)" if record.reused else ""
        click.secho(
            f"    {record.future_id} [{record.state.value}] {record.address or '-'}{reused}",
            fg=colour,
        )
    for name, address in result.outputs.items():
        click.secho(f"    {name}: {address}", fg="yellow")


@click.command()
@network_option
@module_option
@verify_option
@autosign_option
@resume_option
@confirmations_option
@registry_dir_option
def cli(network, module_names, verify, autosign, resume, confirmations, registry_dir):
    """Deploy one or more modules to a network."""
    try:
        connection = get_connection(network)
        parameters = load_parameters(network)
        registry = AddressRegistry.from_directory(registry_dir or ARTIFACTS_DIR)
    except DeploymentError as e:
        raise click.ClickException(str(e)) from e

    modules = [MODULES[name] for name in module_names]
    journal = journal_filepath(parameters.name or "-".join(module_names), network)

    resume = ResumePolicy(resume)
    previous = None
    if resume is ResumePolicy.JOURNAL and journal.exists():
        previous = read_journal(journal)
        click.secho(f"Resuming from journal {journal}", fg="yellow")

    with connect(connection):
        check_chain_id(connection)
        ledger = ApeLedger.from_connection(
            connection,
            verify=verify,
            autosign=autosign,
            required_confirmations=confirmations,
        )
        print_connection_info(ledger, connection)
        print(f"Parameters: {parameters.filepath}", f"Journal: {journal}", sep="\n")
        if not autosign:
            # Confirms the start of the deployment.
            _continue()

        try:
            result = deploy(
                *modules,
                ledger=ledger,
                parameters=parameters,
                registry=registry,
                resume=resume,
                previous=previous,
                journal_filepath=journal,
            )
        except DeploymentFailed as e:
            _display_result(e.result)
            raise click.ClickException(
                f"{e}\nConfirmed contracts are journaled in {journal}; re-run to resume."
            ) from e
        except DeploymentError as e:
            raise click.ClickException(str(e)) from e

        _display_result(result)

        if verify and not connection.is_local:
            new_contracts = [
                record.address
                for record in result.confirmed()
                if record.contract_name and not record.reused
            ]
            verify_contracts(new_contracts)


if __name__ == "__main__":
    cli()
