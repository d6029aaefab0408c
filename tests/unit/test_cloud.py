"""Tests for cloud cluster requests on EC2 and Azure."""

import uuid
from unittest.mock import patch

import pytest

from cluster_setup.cloud import CloudClusterFactory, load_instance_types
from cluster_setup.exceptions import (
    ConfigurationError,
    PersistenceError,
    RemoteAssignmentError,
    ValidationError,
)
from cluster_setup.models.cloud_cluster import (
    AzureCluster,
    CloudCluster,
    CloudFramework,
    Ec2Cluster,
    InstanceType,
)
from cluster_setup.models.pillar import PillarKey


@pytest.fixture
def factory(store, agent):
    return CloudClusterFactory(store, agent)


@pytest.fixture
def ec2_params():
    return {
        "instance_type": "t2.xlarge",
        "instance_count": 5,
        "subnet_id": "subnet-9d4a7b6c",
        "security_group_id": "sg-903004f8",
    }


@pytest.fixture
def azure_params():
    return {
        "subscription_id": str(uuid.uuid4()),
        "tenant_id": str(uuid.uuid4()),
        "client_id": str(uuid.uuid4()),
        "secret": uuid.uuid4().hex,
        "instance_type": "Standard_DS3_v2",
        "instance_count": 5,
        "resource_group": "azureresourcegroup",
        "network_id": "azurenetworkname",
        "subnet_id": "azuresubnetname",
        "storage_account": "azurestorageaccount",
    }


class TestEc2:
    @pytest.fixture(autouse=True)
    def ec2_pillar(self, store):
        store.set(PillarKey.cloud_framework, "ec2")
        store.set(PillarKey.dashboard, "localhost")

    def test_always_uses_the_framework_pillar(self, factory, ec2_params):
        cluster = factory.provision(ec2_params)

        assert isinstance(cluster, Ec2Cluster)
        assert cluster.cloud_framework == CloudFramework.ec2

    def test_assigns_request_fields(self, factory, ec2_params):
        cluster = factory.provision(ec2_params)

        assert cluster.instance_type == "t2.xlarge"
        assert cluster.instance_count == 5
        assert cluster.subnet_id == "subnet-9d4a7b6c"
        assert cluster.security_group_id == "sg-903004f8"

    def test_provisions_once_with_instance_count(self, factory, agent, ec2_params):
        factory.provision(ec2_params)

        agent.provision_cluster.assert_called_once_with(5)

    def test_saves_provider_pillars(self, factory, store, ec2_params):
        factory.provision(ec2_params)

        assert store.get(PillarKey.cloud_worker_type) == "t2.xlarge"
        assert store.get(PillarKey.cloud_worker_subnet) == "subnet-9d4a7b6c"
        assert store.get(PillarKey.cloud_worker_security_group) == "sg-903004f8"

    def test_instance_count_from_form_string(self, factory, ec2_params):
        cluster = factory.build({**ec2_params, "instance_count": "3"})

        assert cluster.instance_count == 3

    def test_azure_fields_are_ignored(self, factory, ec2_params):
        cluster = factory.build({**ec2_params, "resource_group": "rg"})

        assert not hasattr(cluster, "resource_group")

    def test_missing_subnet_rejected(self, factory, agent, ec2_params):
        del ec2_params["subnet_id"]

        with pytest.raises(ValidationError, match="Invalid ec2 cluster request") as exc_info:
            factory.provision(ec2_params)

        assert "subnet_id" in exc_info.value.details
        agent.provision_cluster.assert_not_called()

    @pytest.mark.parametrize("field", ["subnet_id", "security_group_id"])
    @pytest.mark.parametrize("value", ["", "   "])
    def test_empty_network_ids_rejected(self, factory, agent, store, ec2_params, field, value):
        with pytest.raises(ValidationError) as exc_info:
            factory.provision({**ec2_params, field: value})

        assert field in exc_info.value.details
        assert store.get(PillarKey.cloud_worker_subnet) is None
        agent.provision_cluster.assert_not_called()

    def test_ids_are_stripped(self, factory, ec2_params):
        cluster = factory.build({**ec2_params, "subnet_id": " subnet-9d4a7b6c "})

        assert cluster.subnet_id == "subnet-9d4a7b6c"

    def test_zero_instances_rejected(self, factory, ec2_params):
        with pytest.raises(ValidationError):
            factory.build({**ec2_params, "instance_count": 0})

    def test_save_failure_skips_provisioning(self, factory, agent, ec2_params):
        with patch.object(Ec2Cluster, "save", side_effect=RuntimeError("Nope!")):
            with pytest.raises(PersistenceError, match="Nope!"):
                factory.provision(ec2_params)

        agent.provision_cluster.assert_not_called()

    def test_provisioning_failure_propagates(self, factory, agent, ec2_params):
        agent.provision_cluster.side_effect = RemoteAssignmentError("Provisioning failed")

        with pytest.raises(RemoteAssignmentError):
            factory.provision(ec2_params)

    def test_instance_types(self, factory):
        types = factory.instance_types()

        assert types
        assert all(isinstance(t, InstanceType) for t in types)
        assert "t2.xlarge" in {t.key for t in types}


class TestAzure:
    @pytest.fixture(autouse=True)
    def azure_pillar(self, store):
        store.set(PillarKey.cloud_framework, "azure")

    def test_always_uses_the_framework_pillar(self, factory, azure_params):
        cluster = factory.provision(azure_params)

        assert isinstance(cluster, AzureCluster)
        assert cluster.cloud_framework == CloudFramework.azure

    def test_assigns_request_fields(self, factory, azure_params):
        cluster = factory.provision(azure_params)

        for name, value in azure_params.items():
            assert getattr(cluster, name) == value

    def test_provisions_once_with_instance_count(self, factory, agent, azure_params):
        factory.provision(azure_params)

        agent.provision_cluster.assert_called_once_with(5)

    def test_saves_service_principal(self, factory, store, azure_params):
        factory.provision(azure_params)

        assert store.get(PillarKey.azure_client_id) == azure_params["client_id"]
        assert store.get(PillarKey.azure_secret) == azure_params["secret"]
        assert store.get(PillarKey.cloud_worker_subnet) == "azuresubnetname"

    @pytest.mark.parametrize(
        "field",
        [
            "subscription_id",
            "tenant_id",
            "client_id",
            "secret",
            "resource_group",
            "storage_account",
            "network_id",
            "subnet_id",
        ],
    )
    def test_empty_settings_rejected(self, factory, agent, store, azure_params, field):
        with pytest.raises(ValidationError, match="Invalid azure cluster request") as exc_info:
            factory.provision({**azure_params, field: ""})

        assert field in exc_info.value.details
        assert store.get(PillarKey.azure_secret) is None
        agent.provision_cluster.assert_not_called()

    def test_confirmation_hides_secret(self, factory, azure_params):
        confirmation = factory.provision(azure_params).confirmation()

        assert "secret" not in confirmation
        assert confirmation["cloud_framework"] == "azure"
        assert confirmation["resource_group"] == "azureresourcegroup"

    def test_instance_types(self, factory):
        assert "Standard_DS3_v2" in {t.key for t in factory.instance_types()}


class TestFramework:
    def test_request_cannot_choose_framework(self, factory, store, agent, ec2_params):
        store.set(PillarKey.cloud_framework, "ec2")

        with pytest.raises(ValidationError, match="cannot be chosen"):
            factory.provision({**ec2_params, "cloud_framework": "azure"})

        agent.provision_cluster.assert_not_called()
        assert store.get(PillarKey.cloud_worker_type) is None

    def test_missing_framework_pillar(self, factory, ec2_params):
        with pytest.raises(ConfigurationError, match="No cloud framework"):
            factory.build(ec2_params)

    def test_unsupported_framework_pillar(self, factory, store, ec2_params):
        store.set(PillarKey.cloud_framework, "openstack")

        with pytest.raises(ConfigurationError, match="openstack"):
            factory.build(ec2_params)


def test_load_instance_types_per_framework():
    ec2 = load_instance_types(CloudFramework.ec2)
    azure = load_instance_types(CloudFramework.azure)

    assert ec2 and azure
    assert not {t.key for t in ec2} & {t.key for t in azure}


def test_base_cluster_requires_instance_type():
    with pytest.raises(ValueError):
        CloudCluster(cloud_framework=CloudFramework.ec2, instance_type=" ", instance_count=1)
