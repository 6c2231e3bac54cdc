#!/usr/bin/env python
"""Command-line interface for kube-appsecrets.

This module provides the main CLI entry point: it loads an application
manifest, runs one reconciliation pass against the cluster and either
prints or applies the projected secrets.
"""

import sys

import click
import yaml
from icecream import ic
from kubernetes import client

from kube_appsecrets import __version__, console
from kube_appsecrets.core.cluster import Cluster
from kube_appsecrets.core.engine import reconcile_secrets
from kube_appsecrets.exceptions import ClusterConnectionError, ManifestParsingError, StoreError
from kube_appsecrets.manifest import load_application
from kube_appsecrets.models import Application, ReconcileResult
from kube_appsecrets.secrets.projection import apply_projections


def report_result(application: Application, result: ReconcileResult) -> None:
    """Print the outcome of a pass.

    Args:
        application: The reconciled application.
        result: Result of the pass.

    """
    condition = result.condition
    if result.outcomes:
        console.outcomes_table({name: outcome.value for name, outcome in result.outcomes.items()})

    console.newline()
    console.summary_panel(
        "Secrets Reconciled" if condition.success else "Secrets Not Ready",
        {
            "Application": f"{application.namespace}/{application.name}",
            "Target namespace": application.target_namespace,
            "Generation": str(condition.observed_generation),
            "Projected": str(len(result.projections)),
            "Status": "ready" if condition.success else condition.message,
        },
        border_style="green" if condition.success else "red",
    )


def dump_projections(result: ReconcileResult) -> str:
    """Render the projected secrets as a multi-document YAML string."""
    api_client = client.ApiClient()
    docs = [api_client.sanitize_for_serialization(secret) for secret in result.projections]
    return yaml.safe_dump_all(docs, sort_keys=False)


@click.command(help="Resolve, generate and project the secrets of an application")
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option("--debug", required=False, is_flag=True, help="print debug information")
@click.option("--select", required=False, is_flag=True, default=False, help="prompt for context select")
@click.option("--context", required=False, help="kubeconfig context to use")
@click.option("--file", "-f", "manifest", required=False, help="application manifest to reconcile")
@click.option("--apply", required=False, is_flag=True, help="apply projected secrets instead of printing them")
def cli(
    debug: bool,
    select: bool,
    context: str | None,
    manifest: str | None,
    apply: bool,
    version: bool,
) -> None:
    """Process CLI arguments and run a reconciliation pass.

    Args:
        debug: Enable debug output.
        select: Prompt for Kubernetes context selection.
        context: Kubeconfig context to use without prompting.
        manifest: Path to the application manifest.
        apply: Apply the projected secrets to the cluster.
        version: Print version and exit.

    """
    if not debug:
        ic.disable()

    if version:
        click.echo(__version__)
        return

    if manifest is None:
        raise click.UsageError("Missing option '--file' / '-f'.")

    try:
        application = load_application(manifest)
    except ManifestParsingError as e:
        raise click.ClickException(str(e)) from None
    ic(application)

    try:
        cluster = Cluster(select_context=select, context=context)
        store = cluster.store()
        console.action(f"Reconciling secrets of {console.highlight(f'{application.namespace}/{application.name}')}")
        result = reconcile_secrets(application, store)
    except ClusterConnectionError as e:
        console.error(f"Cluster connection failed: {e}")
        sys.exit(1)

    report_result(application, result)
    if result.condition.fatal:
        sys.exit(1)

    if apply:
        try:
            cluster.ensure_namespace(application.target_namespace)
            apply_projections(store, result.projections)
        except StoreError as e:
            console.error(f"Failed to apply secrets: {e}")
            sys.exit(1)
        console.success(f"Applied {len(result.projections)} secret(s) to {console.highlight(application.target_namespace)}")
    elif result.projections:
        click.echo(dump_projections(result), nl=False)

    if not result.condition.success:
        sys.exit(1)


if __name__ == "__main__":
    cli()
