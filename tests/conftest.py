"""Shared test fixtures for kube-appsecrets tests."""

import copy
import uuid
from unittest.mock import MagicMock, patch

import pytest
from kubernetes import client
from kubernetes.client.exceptions import ApiException

from kube_appsecrets.core.store import KubernetesStore
from kube_appsecrets.manifest import parse_application

APP_NAME = "app-name"
APP_NAMESPACE = "app-ns"
TARGET_NAMESPACE = "app-target-ns"
APP_UID = "app-uid"


def _parse_selector(label_selector: str | None) -> dict[str, str]:
    """Parse an equality-only selector such as ``a=1,b=2``."""
    if not label_selector:
        return {}
    return dict(part.split("=", 1) for part in label_selector.split(","))


def _matches(labels: dict[str, str] | None, selector: dict[str, str]) -> bool:
    labels = labels or {}
    return all(labels.get(key) == value for key, value in selector.items())


class FakeCoreV1Api:
    """In-memory stand-in for CoreV1Api covering secrets and pods.

    Emulates server-side name generation and uid assignment. Set
    ``fail_status`` to make every call raise an ApiException.
    """

    def __init__(self):
        self.secrets: dict[tuple[str, str], client.V1Secret] = {}
        self.pods: list[client.V1Pod] = []
        self.created: list[client.V1Secret] = []
        self.fail_status: int | None = None
        self._counter = 0

    def _check_failure(self):
        if self.fail_status is not None:
            raise ApiException(status=self.fail_status, reason="Injected")

    def add_secret(self, name, namespace, data=None, labels=None, uid=None, secret_type="Opaque"):
        secret = client.V1Secret(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace, labels=labels or {}, uid=uid or str(uuid.uuid4())),
            data=data or {},
            type=secret_type,
        )
        self.secrets[(namespace, name)] = secret
        return secret

    def read_namespaced_secret(self, name, namespace):
        self._check_failure()
        if (namespace, name) not in self.secrets:
            raise ApiException(status=404, reason="Not Found")
        return copy.deepcopy(self.secrets[(namespace, name)])

    def list_namespaced_secret(self, namespace, label_selector=None):
        self._check_failure()
        selector = _parse_selector(label_selector)
        items = [
            copy.deepcopy(secret)
            for (ns, _), secret in self.secrets.items()
            if ns == namespace and _matches(secret.metadata.labels, selector)
        ]
        return client.V1SecretList(items=items)

    def create_namespaced_secret(self, namespace, body):
        self._check_failure()
        body = copy.deepcopy(body)
        if not body.metadata.name:
            self._counter += 1
            body.metadata.name = f"{body.metadata.generate_name}{self._counter:05d}"
        if (namespace, body.metadata.name) in self.secrets:
            raise ApiException(status=409, reason="Conflict")
        body.metadata.namespace = namespace
        body.metadata.uid = str(uuid.uuid4())
        self.secrets[(namespace, body.metadata.name)] = body
        self.created.append(body)
        return copy.deepcopy(body)

    def replace_namespaced_secret(self, name, namespace, body):
        self._check_failure()
        if (namespace, name) not in self.secrets:
            raise ApiException(status=404, reason="Not Found")
        body = copy.deepcopy(body)
        body.metadata.uid = self.secrets[(namespace, name)].metadata.uid
        self.secrets[(namespace, name)] = body
        return copy.deepcopy(body)

    def list_namespaced_pod(self, namespace, label_selector=None):
        self._check_failure()
        selector = _parse_selector(label_selector)
        items = [
            pod for pod in self.pods if pod.metadata.namespace == namespace and _matches(pod.metadata.labels, selector)
        ]
        return client.V1PodList(items=items)


class FakeBatchV1Api:
    """In-memory stand-in for BatchV1Api covering jobs."""

    def __init__(self):
        self.jobs: dict[tuple[str, str], client.V1Job] = {}

    def read_namespaced_job(self, name, namespace):
        if (namespace, name) not in self.jobs:
            raise ApiException(status=404, reason="Not Found")
        return self.jobs[(namespace, name)]


def make_job(name, namespace=TARGET_NAMESPACE, succeeded=1, match_labels=None):
    """Build a Job with the given completion count and pod selector."""
    return client.V1Job(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace),
        spec=client.V1JobSpec(
            template=client.V1PodTemplateSpec(),
            selector=client.V1LabelSelector(match_labels=match_labels or {"job-name": name}),
        ),
        status=client.V1JobStatus(succeeded=succeeded),
    )


def make_pod(job_name, namespace=TARGET_NAMESPACE, exit_code=0, message=""):
    """Build a pod of a job whose only container terminated as given."""
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=f"{job_name}-pod", namespace=namespace, labels={"job-name": job_name}),
        status=client.V1PodStatus(
            container_statuses=[
                client.V1ContainerStatus(
                    name="main",
                    image="busybox",
                    image_id="",
                    ready=False,
                    restart_count=0,
                    state=client.V1ContainerState(
                        terminated=client.V1ContainerStateTerminated(exit_code=exit_code, message=message)
                    ),
                )
            ]
        ),
    )


@pytest.fixture
def core_api():
    """In-memory CoreV1Api."""
    return FakeCoreV1Api()


@pytest.fixture
def batch_api():
    """In-memory BatchV1Api."""
    return FakeBatchV1Api()


@pytest.fixture
def store(core_api, batch_api):
    """KubernetesStore backed by the in-memory APIs."""
    return KubernetesStore(core_api=core_api, batch_api=batch_api)


@pytest.fixture
def make_application():
    """Factory building an Application from manifest-style secret entries."""

    def _make(secrets=None, bindings=None, generation=1):
        return parse_application(
            {
                "metadata": {
                    "name": APP_NAME,
                    "namespace": APP_NAMESPACE,
                    "uid": APP_UID,
                    "generation": generation,
                },
                "spec": {
                    "targetNamespace": TARGET_NAMESPACE,
                    "secrets": secrets or {},
                    "bindings": bindings or [],
                },
            }
        )

    return _make


@pytest.fixture
def mock_kube_contexts():
    """Mock kubernetes config contexts."""
    with patch("kubernetes.config.list_kube_config_contexts") as mock:
        mock.return_value = ([{"name": "test-context"}, {"name": "other-context"}], {"name": "test-context"})
        yield mock


@pytest.fixture
def mock_kube_config():
    """Mock kubernetes config loading."""
    with patch("kubernetes.config.load_kube_config") as mock:
        yield mock


@pytest.fixture
def mock_core_v1_api():
    """Mock CoreV1Api for namespace checks."""
    with patch("kubernetes.client.CoreV1Api") as mock:
        api_instance = MagicMock()
        mock.return_value = api_instance
        yield api_instance


@pytest.fixture
def sample_manifest_yaml():
    """Sample application manifest."""
    return """apiVersion: appsecrets.io/v1
kind: AppInstance
metadata:
  name: web
  namespace: apps
  uid: 1234-abcd
  generation: 3
spec:
  targetNamespace: web-prod
  bindings:
    - secretRequest: registry
      secret: shared-registry-creds
  secrets:
    db:
      type: basic
      data:
        username: admin
    registry:
      type: docker
    cert:
      type: tls
      optional: true
      params:
        commonName: web.example.com
        sans: [web.example.com, 10.0.0.1]
"""
