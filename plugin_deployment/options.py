from pathlib import Path

import click

from plugin_deployment.executor import ResumePolicy
from plugin_deployment.modules import MODULES
from plugin_deployment.types import NetworkType

network_option = click.option(
    "--network",
    "-n",
    "network",
    help="Target network",
    type=NetworkType(),
    required=True,
)

module_option = click.option(
    "--module",
    "-m",
    "module_names",
    help="Deployment module to execute",
    type=click.Choice(list(MODULES)),
    multiple=True,
    required=True,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Publish contract sources to the block explorer",
    default=False,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation",
    is_flag=True,
    default=False,
)

resume_option = click.option(
    "--resume",
    help="Reuse contracts confirmed by a previous run of the same deployment",
    type=click.Choice([policy.value for policy in ResumePolicy]),
    default=ResumePolicy.JOURNAL.value,
    show_default=True,
)

confirmations_option = click.option(
    "--confirmations",
    help="Block confirmations to wait for after each contract creation",
    type=click.IntRange(min=0),
    default=None,
)

registry_dir_option = click.option(
    "--registry-dir",
    help="Directory holding the address registry files",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
)
