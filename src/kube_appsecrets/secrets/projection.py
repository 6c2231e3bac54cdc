"""Consumer-facing projections of resolved secrets.

Workloads mount secrets by descriptor name. The storage secret has a
generated name, so every resolved secret is mirrored into the target
namespace under the descriptor's own name.
"""

from kubernetes import client

from kube_appsecrets import console
from kube_appsecrets.core.store import KubernetesStore, encode_data
from kube_appsecrets.models import Application, ResolvedSecret


def project_secret(application: Application, name: str, resolved: ResolvedSecret) -> client.V1Secret:
    """Build the projected secret for a descriptor.

    Args:
        application: Application owning the descriptor.
        name: Descriptor name, used verbatim as the object name.
        resolved: Secret material to mirror.

    Returns:
        A Secret in the target namespace with the application's labels.

    """
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=application.target_namespace,
            labels=application.projection_labels(),
        ),
        data=encode_data(resolved.data),
        type=resolved.type,
    )


def apply_projections(store: KubernetesStore, projections: list[client.V1Secret]) -> None:
    """Create or replace every projected secret in the cluster."""
    with console.create_task_progress() as progress:
        task = progress.add_task("Applying secrets", total=len(projections))
        for secret in projections:
            store.apply_secret(secret)
            progress.update(task, advance=1)
