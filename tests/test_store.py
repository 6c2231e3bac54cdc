"""Tests for core/store.py module."""

from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError, NewConnectionError

from kube_appsecrets.core.store import (
    KubernetesStore,
    decode_data,
    encode_data,
    format_label_selector,
    label_selector_to_string,
    to_resolved,
)
from kube_appsecrets.exceptions import (
    ClusterConnectionError,
    InvalidParamsError,
    SecretNotFoundError,
    StoreError,
)


@pytest.fixture
def mock_store():
    """KubernetesStore over MagicMock API clients."""
    return KubernetesStore(core_api=MagicMock(), batch_api=MagicMock())


class TestErrorTranslation:
    """Tests for mapping client failures to the error taxonomy."""

    def test_not_found(self, mock_store):
        """Test a 404 becomes an absence error."""
        mock_store.core_api.read_namespaced_secret.side_effect = ApiException(status=404, reason="Not Found")

        with pytest.raises(SecretNotFoundError) as exc_info:
            mock_store.get_secret("db", "ns")

        assert "ns/db" in str(exc_info.value)

    @pytest.mark.parametrize("status", [401, 403, 409, 500])
    def test_other_status_is_fatal(self, mock_store, status):
        """Test any non-404 API error is a store error carrying the status."""
        mock_store.core_api.list_namespaced_secret.side_effect = ApiException(status=status, reason="Boom")

        with pytest.raises(StoreError) as exc_info:
            mock_store.list_secrets("ns", {"a": "b"})

        assert exc_info.value.status == status
        assert not isinstance(exc_info.value, SecretNotFoundError)

    def test_connection_error(self, mock_store):
        """Test an unreachable cluster is a cluster connection error."""
        connection_error = NewConnectionError(None, "Failed to establish a new connection: [Errno 111] Connection refused")
        mock_store.batch_api.read_namespaced_job.side_effect = MaxRetryError(
            pool=None, url="/apis/batch/v1/jobs", reason=connection_error
        )

        with pytest.raises(ClusterConnectionError) as exc_info:
            mock_store.get_job("gen", "ns")

        assert "Failed to connect" in str(exc_info.value)
        assert isinstance(exc_info.value, StoreError)


class TestStoreCalls:
    """Tests for the calls made against the Kubernetes API."""

    def test_list_secrets_uses_selector(self, mock_store):
        """Test labels are rendered into a sorted selector."""
        mock_store.core_api.list_namespaced_secret.return_value.items = []

        mock_store.list_secrets("ns", {"b": "2", "a": "1"})

        mock_store.core_api.list_namespaced_secret.assert_called_once_with("ns", label_selector="a=1,b=2")

    def test_create_secret_uses_object_namespace(self, mock_store):
        """Test secrets are created in the namespace set on the object."""
        body = client.V1Secret(metadata=client.V1ObjectMeta(generate_name="db-", namespace="ns"))

        mock_store.create_secret(body)

        mock_store.core_api.create_namespaced_secret.assert_called_once_with("ns", body)

    def test_apply_creates(self, mock_store):
        """Test apply creates a secret that does not exist yet."""
        body = client.V1Secret(metadata=client.V1ObjectMeta(name="db", namespace="ns"))

        mock_store.apply_secret(body)

        mock_store.core_api.replace_namespaced_secret.assert_not_called()

    def test_apply_replaces_on_conflict(self, mock_store):
        """Test apply replaces an existing secret."""
        body = client.V1Secret(metadata=client.V1ObjectMeta(name="db", namespace="ns"))
        mock_store.core_api.create_namespaced_secret.side_effect = ApiException(status=409, reason="Conflict")

        mock_store.apply_secret(body)

        mock_store.core_api.replace_namespaced_secret.assert_called_once_with("db", "ns", body)

    def test_apply_propagates_other_errors(self, mock_store):
        """Test apply does not swallow errors other than conflicts."""
        body = client.V1Secret(metadata=client.V1ObjectMeta(name="db", namespace="ns"))
        mock_store.core_api.create_namespaced_secret.side_effect = ApiException(status=403, reason="Forbidden")

        with pytest.raises(StoreError):
            mock_store.apply_secret(body)

        mock_store.core_api.replace_namespaced_secret.assert_not_called()

    def test_list_pods(self, mock_store):
        """Test pods are listed with the given selector."""
        mock_store.core_api.list_namespaced_pod.return_value.items = ["pod"]

        assert mock_store.list_pods("ns", "job-name=gen") == ["pod"]
        mock_store.core_api.list_namespaced_pod.assert_called_once_with("ns", label_selector="job-name=gen")


class TestSelectors:
    """Tests for selector rendering."""

    def test_format_label_selector(self):
        """Test equality selectors are sorted by key."""
        assert format_label_selector({"z": "1", "a": "2"}) == "a=2,z=1"

    def test_match_labels_and_expressions(self):
        """Test every supported operator is rendered."""
        selector = client.V1LabelSelector(
            match_labels={"job-name": "gen"},
            match_expressions=[
                client.V1LabelSelectorRequirement(key="tier", operator="In", values=["b", "a"]),
                client.V1LabelSelectorRequirement(key="env", operator="NotIn", values=["dev"]),
                client.V1LabelSelectorRequirement(key="owned", operator="Exists"),
                client.V1LabelSelectorRequirement(key="legacy", operator="DoesNotExist"),
            ],
        )

        assert label_selector_to_string(selector) == "job-name=gen,tier in (a,b),env notin (dev),owned,!legacy"

    def test_unknown_operator(self):
        """Test an unsupported operator is rejected."""
        selector = client.V1LabelSelector(
            match_expressions=[client.V1LabelSelectorRequirement(key="x", operator="Gt", values=["1"])]
        )

        with pytest.raises(InvalidParamsError):
            label_selector_to_string(selector)

    def test_none_selector(self):
        """Test a missing selector selects everything."""
        assert label_selector_to_string(None) == ""


class TestConversion:
    """Tests for secret data conversion."""

    def test_encode_decode(self):
        """Test data survives base64 encoding."""
        data = {"a": b"\x00\xffbinary", "b": b""}
        assert decode_data(encode_data(data)) == data

    def test_to_resolved(self):
        """Test a stored secret converts into a resolved secret."""
        secret = client.V1Secret(
            metadata=client.V1ObjectMeta(name="db-abcde", uid="uid-1"),
            data=encode_data({"password": b"pw"}),
        )

        resolved = to_resolved(secret)

        assert resolved.data == {"password": b"pw"}
        assert resolved.type == "Opaque"
        assert resolved.source_identity == "db-abcde"
        assert resolved.uid == "uid-1"
