"""kube-appsecrets: resolve, generate and project application secrets.

This package turns the secret descriptors an application declares into
Kubernetes secrets, reusing previously generated material on every pass.

Example usage:
    from kube_appsecrets import KubernetesStore, load_application, reconcile_secrets

    application = load_application("app.yaml")
    result = reconcile_secrets(application, KubernetesStore())
    if not result.condition.success:
        print(result.condition.message)
"""

__version__ = "0.1.0"

from kube_appsecrets.cli import cli
from kube_appsecrets.core.cluster import Cluster
from kube_appsecrets.core.engine import reconcile_secrets
from kube_appsecrets.core.store import KubernetesStore
from kube_appsecrets.exceptions import (
    AppSecretsError,
    BindingNotFoundError,
    ClusterConnectionError,
    GeneratorError,
    InvalidParamsError,
    JobNoOutputError,
    JobNotDoneError,
    JobOutputError,
    ManifestParsingError,
    SecretCycleError,
    SecretNotFoundError,
    StoreError,
)
from kube_appsecrets.manifest import load_application

__all__ = [
    # Version
    "__version__",
    # Main CLI
    "cli",
    # Classes and entry points
    "Cluster",
    "KubernetesStore",
    "load_application",
    "reconcile_secrets",
    # Exceptions
    "AppSecretsError",
    "SecretNotFoundError",
    "StoreError",
    "ClusterConnectionError",
    "BindingNotFoundError",
    "GeneratorError",
    "JobNotDoneError",
    "JobNoOutputError",
    "JobOutputError",
    "InvalidParamsError",
    "SecretCycleError",
    "ManifestParsingError",
]
