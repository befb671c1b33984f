"""Tests for collection provisioning."""

from unittest.mock import MagicMock

import pytest
from qdrant_client import models

from lyceum.core.exceptions import VectorStoreError
from lyceum.rag.database.provisioning import CollectionProvisioner


class TestCollectionProvisioner:
    """Test ensure_collection."""

    @pytest.fixture
    def provisioner(self, test_settings):
        return CollectionProvisioner(test_settings, MagicMock())

    async def test_creates_collection_with_indexes(self, provisioner, fake_client):
        created = await provisioner.ensure_collection(fake_client, "school-a_curriculum")

        assert created is True
        assert fake_client.vector_sizes["school-a_curriculum"] == 16
        assert fake_client.indexes["school-a_curriculum"] == {
            "text": models.PayloadSchemaType.TEXT,
            "metadata.collection": models.PayloadSchemaType.KEYWORD,
            "metadata.schoolId": models.PayloadSchemaType.KEYWORD,
        }

    async def test_is_idempotent(self, provisioner, fake_client):
        await provisioner.ensure_collection(fake_client, "school-a_curriculum")
        fake_client.calls.clear()

        created = await provisioner.ensure_collection(fake_client, "school-a_curriculum")

        assert created is False
        assert fake_client.calls == ["collection_exists"]

    async def test_retries_transient_failure(self, provisioner, fake_client):
        original = fake_client.collection_exists
        attempts = []

        async def flaky(collection_name):
            attempts.append(collection_name)
            if len(attempts) == 1:
                raise ConnectionError("timeout")
            return await original(collection_name)

        fake_client.collection_exists = flaky

        assert await provisioner.ensure_collection(fake_client, "school-a_curriculum") is True
        assert len(attempts) == 2

    async def test_lost_creation_race_is_tolerated(self, provisioner, fake_client):
        # Another writer creates the collection between the check and the create.
        original = fake_client.create_collection

        async def racing_create(collection_name, vectors_config, **kwargs):
            await original(collection_name, vectors_config)
            raise ValueError("already exists")

        fake_client.create_collection = racing_create

        created = await provisioner.ensure_collection(fake_client, "school-a_curriculum")

        assert created is False
        assert "school-a_curriculum" in fake_client.collections

    async def test_persistent_failure_raises(self, provisioner, fake_client):
        fake_client.fail["collection_exists"] = ConnectionError("down")

        with pytest.raises(VectorStoreError) as exc_info:
            await provisioner.ensure_collection(fake_client, "school-a_curriculum")

        assert exc_info.value.details["operation"] == "ensure_collection"
        # One attempt plus PROVISION_MAX_RETRIES retries
        assert fake_client.calls.count("collection_exists") == 3
