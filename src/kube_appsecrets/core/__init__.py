"""Core infrastructure subpackage.

This package contains the reconciliation engine along with the cluster
connection and the object store adapter.
"""

from kube_appsecrets.core.cluster import Cluster
from kube_appsecrets.core.engine import ordered_descriptors, reconcile_secrets
from kube_appsecrets.core.store import KubernetesStore

__all__ = [
    "Cluster",
    "KubernetesStore",
    "ordered_descriptors",
    "reconcile_secrets",
]
