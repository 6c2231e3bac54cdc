"""Kubernetes cluster connection.

This module provides the Cluster class, which picks the kubeconfig
context to work with and hands out a store bound to it.
"""

import click
import questionary
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import MaxRetryError

from kube_appsecrets import console
from kube_appsecrets.core.store import KubernetesStore
from kube_appsecrets.exceptions import ClusterConnectionError
from kube_appsecrets.styles import POINTER, PROMPT_STYLE, QMARK


class Cluster:
    """Connection to the cluster an application is reconciled against.

    Attributes:
        context: The active Kubernetes context name.

    """

    def __init__(self, *, select_context: bool, context: str | None = None) -> None:
        """Initialize Cluster and load the kubeconfig for the chosen context.

        Args:
            select_context: If True, prompt user to select a context.
            context: Context to use without prompting; overrides select_context.

        Raises:
            ClusterConnectionError: If the kubeconfig is invalid or missing.

        """
        self.context: str = context or self._set_context(select_context=select_context)
        try:
            config.load_kube_config(context=self.context)
        except ConfigException as e:
            raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e

    @staticmethod
    def _set_context(*, select_context: bool) -> str:
        """Set the Kubernetes context to use.

        Args:
            select_context: If True, prompt user to select a context.
                           Must be passed as a keyword argument.

        Returns:
            The selected or current context name.

        Raises:
            ClusterConnectionError: If kubeconfig is invalid or missing.
            click.Abort: If user cancels context selection.

        """
        try:
            contexts, current_context = config.list_kube_config_contexts()
        except ConfigException as e:
            raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e
        if select_context:
            context: str | None = questionary.select(
                "Select context to work with",
                choices=[ctx["name"] for ctx in contexts],
                style=PROMPT_STYLE,
                pointer=POINTER,
                qmark=QMARK,
            ).ask()
            if context is None:
                console.warning("Context selection cancelled.")
                raise click.Abort()
        else:
            context = str(current_context["name"])
        console.action(f"Working with {console.highlight(context)} cluster")
        return context

    @staticmethod
    def ensure_namespace(namespace: str) -> None:
        """Check that a namespace exists.

        Raises:
            ClusterConnectionError: If the cluster is unreachable or the namespace is missing.

        """
        with console.spinner(f"Checking namespace {namespace}..."):
            try:
                client.CoreV1Api().read_namespace(namespace)
            except MaxRetryError as e:
                raise ClusterConnectionError(f"Failed to connect to the Kubernetes cluster: {e.reason}") from e
            except ApiException as e:
                raise ClusterConnectionError(f"Namespace {namespace} is not available: {e.status} {e.reason}") from e

    @staticmethod
    def store() -> KubernetesStore:
        """Return a store using the loaded kubeconfig."""
        return KubernetesStore(core_api=client.CoreV1Api(), batch_api=client.BatchV1Api())

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Cluster(context={self.context!r})"
