"""Kubernetes object store adapter.

This module wraps the Kubernetes API client with the handful of calls a
reconciliation pass needs, and translates client failures into the
package's error taxonomy: a 404 becomes ``SecretNotFoundError``, anything
else a fatal ``StoreError``.
"""

import base64
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from icecream import ic
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError

from kube_appsecrets.exceptions import (
    ClusterConnectionError,
    InvalidParamsError,
    SecretNotFoundError,
    StoreError,
)
from kube_appsecrets.models import KubeSecretType, ResolvedSecret

_HTTP_NOT_FOUND = 404
_HTTP_CONFLICT = 409


@contextmanager
def _translate_errors(kind: str, name: str) -> Generator[None, None, None]:
    """Convert Kubernetes client failures into kube-appsecrets exceptions.

    Args:
        kind: Resource kind used in error messages.
        name: Resource name (or selector) used in error messages.

    Raises:
        SecretNotFoundError: If the API answered 404.
        StoreError: For any other API failure.
        ClusterConnectionError: If the cluster could not be reached.

    """
    try:
        yield
    except ApiException as e:
        if e.status == _HTTP_NOT_FOUND:
            raise SecretNotFoundError(f'{kind} "{name}" not found') from e
        raise StoreError(f'failed to access {kind} "{name}": {e.status} {e.reason}', status=e.status) from e
    except MaxRetryError as e:
        raise ClusterConnectionError(f"Failed to connect to the Kubernetes cluster: {e.reason}") from e


def format_label_selector(labels: dict[str, str]) -> str:
    """Render an equality-based label selector string.

    Args:
        labels: Label key/value pairs that must all match.

    Returns:
        Selector such as ``a=1,b=2`` with keys sorted.

    """
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))


def label_selector_to_string(selector: Any) -> str:
    """Render a ``V1LabelSelector`` as a selector string.

    Supports ``matchLabels`` and the ``In``, ``NotIn``, ``Exists`` and
    ``DoesNotExist`` expression operators.

    Raises:
        InvalidParamsError: If the selector uses an unknown operator.

    """
    if selector is None:
        return ""

    parts: list[str] = []
    if selector.match_labels:
        parts.append(format_label_selector(selector.match_labels))

    for expr in selector.match_expressions or []:
        values = ",".join(sorted(expr.values or []))
        match expr.operator:
            case "In":
                parts.append(f"{expr.key} in ({values})")
            case "NotIn":
                parts.append(f"{expr.key} notin ({values})")
            case "Exists":
                parts.append(expr.key)
            case "DoesNotExist":
                parts.append(f"!{expr.key}")
            case _:
                raise InvalidParamsError(f"{expr.operator!r} is not a valid label selector operator")

    return ",".join(parts)


def decode_data(data: dict[str, str] | None) -> dict[str, bytes]:
    """Decode the base64 ``data`` map of a Secret object."""
    return {key: base64.b64decode(value or "") for key, value in (data or {}).items()}


def encode_data(data: dict[str, bytes]) -> dict[str, str]:
    """Encode raw field values into the base64 ``data`` map of a Secret object."""
    return {key: base64.b64encode(value).decode() for key, value in data.items()}


def to_resolved(secret: client.V1Secret) -> ResolvedSecret:
    """Convert a Secret object read from the store into a ResolvedSecret."""
    return ResolvedSecret(
        data=decode_data(secret.data),
        type=secret.type or KubeSecretType.OPAQUE.value,
        source_identity=secret.metadata.name,
        uid=secret.metadata.uid or "",
    )


class KubernetesStore:
    """Label-indexed secret store backed by the Kubernetes API.

    Attributes:
        core_api: Client for secrets and pods.
        batch_api: Client for jobs.

    """

    def __init__(self, core_api: client.CoreV1Api | None = None, batch_api: client.BatchV1Api | None = None) -> None:
        self.core_api = core_api if core_api is not None else client.CoreV1Api()
        self.batch_api = batch_api if batch_api is not None else client.BatchV1Api()

    def get_secret(self, name: str, namespace: str) -> client.V1Secret:
        """Fetch a secret by name."""
        with _translate_errors("secret", f"{namespace}/{name}"):
            return self.core_api.read_namespaced_secret(name, namespace)

    def list_secrets(self, namespace: str, labels: dict[str, str]) -> list[client.V1Secret]:
        """List secrets in a namespace carrying all the given labels."""
        selector = format_label_selector(labels)
        ic(namespace, selector)
        with _translate_errors("secrets", selector):
            return list(self.core_api.list_namespaced_secret(namespace, label_selector=selector).items)

    def create_secret(self, secret: client.V1Secret) -> client.V1Secret:
        """Create a secret and return the stored object, including its assigned name."""
        name = secret.metadata.name or secret.metadata.generate_name
        with _translate_errors("secret", f"{secret.metadata.namespace}/{name}"):
            return self.core_api.create_namespaced_secret(secret.metadata.namespace, secret)

    def apply_secret(self, secret: client.V1Secret) -> client.V1Secret:
        """Create a secret, replacing the existing object of the same name."""
        namespace, name = secret.metadata.namespace, secret.metadata.name
        with _translate_errors("secret", f"{namespace}/{name}"):
            try:
                return self.core_api.create_namespaced_secret(namespace, secret)
            except ApiException as e:
                if e.status != _HTTP_CONFLICT:
                    raise
            return self.core_api.replace_namespaced_secret(name, namespace, secret)

    def get_job(self, name: str, namespace: str) -> client.V1Job:
        """Fetch a batch job by name."""
        with _translate_errors("job", f"{namespace}/{name}"):
            return self.batch_api.read_namespaced_job(name, namespace)

    def list_pods(self, namespace: str, label_selector: str) -> list[client.V1Pod]:
        """List pods in a namespace matching a selector string."""
        with _translate_errors("pods", label_selector):
            return list(self.core_api.list_namespaced_pod(namespace, label_selector=label_selector).items)

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"KubernetesStore(core_api={self.core_api!r}, batch_api={self.batch_api!r})"
