"""
Unit tests for PipelineConfig and TableMapping.
"""

import pytest

from tenantmigrate.config import PipelineConfig, TableMapping
from tenantmigrate.entities import EntityType
from tenantmigrate.stores import KeySchema


class TestPipelineConfigDefaults:
    """Tests for default values and validation."""

    def test_defaults(self) -> None:
        config = PipelineConfig()

        assert config.table_prefix == "construction-expenses"
        assert config.environment == "production"
        assert config.region == "us-east-1"
        assert config.owner_field == "userId"
        assert config.tenant_field == "companyId"
        assert config.source_tag == "multi-table-architecture"
        assert config.page_size == 100
        assert config.strict_identity is False

    def test_is_frozen(self) -> None:
        config = PipelineConfig()
        with pytest.raises(AttributeError):
            config.page_size = 5  # type: ignore[misc]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"table_prefix": ""},
            {"environment": ""},
            {"owner_field": ""},
            {"owner_field": "companyId"},
            {"source_tag": ""},
            {"page_size": 0},
        ],
    )
    def test_invalid_values(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            PipelineConfig(**kwargs)

    def test_dict_round_trip(self) -> None:
        config = PipelineConfig(environment="staging", page_size=25, strict_identity=True)

        assert PipelineConfig.from_dict(config.to_dict()) == config

    def test_from_empty_dict_uses_defaults(self) -> None:
        assert PipelineConfig.from_dict({}) == PipelineConfig()


class TestTableNaming:
    """Tests for environment-aware names."""

    def test_production_names_have_no_environment(self) -> None:
        config = PipelineConfig()

        assert config.is_production is True
        assert config.table_name("company-expenses") == "construction-expenses-company-expenses"
        assert config.membership_table == "construction-expenses-company-users"

    def test_other_environments_are_part_of_names(self, staging_config: PipelineConfig) -> None:
        assert staging_config.is_production is False
        assert (
            staging_config.table_name("company-expenses")
            == "construction-expenses-staging-company-expenses"
        )

    def test_table_mappings_in_migration_order(self) -> None:
        mappings = PipelineConfig().table_mappings

        assert [m.entity_type for m in mappings] == [
            EntityType.EXPENSE,
            EntityType.PROJECT,
            EntityType.CONTRACTOR,
            EntityType.WORK,
        ]
        assert mappings[0] == TableMapping(
            source_table="construction-expenses-multi-table-expenses",
            target_table="construction-expenses-company-expenses",
            entity_type=EntityType.EXPENSE,
        )
        assert mappings[3].id_field == "workId"

    def test_mapping_for(self) -> None:
        mapping = PipelineConfig().mapping_for(EntityType.CONTRACTOR)

        assert mapping.source_table == "construction-expenses-multi-table-contractors"
        assert mapping.to_dict()["entity_type"] == "contractor"

    def test_snapshot_inventory(self) -> None:
        tables = PipelineConfig().snapshot_tables

        assert len(tables) == 17
        assert list(tables) == sorted(tables)
        assert "construction-expenses-paddle-webhooks" in tables
        assert "construction-expenses-multi-table-users" in tables

    def test_legacy_resources(self) -> None:
        config = PipelineConfig()

        assert len(config.legacy_functions) == 13
        assert "construction-expenses-multi-table-add-expense" in config.legacy_functions
        assert config.legacy_tables[-1] == "construction-expenses-multi-table-users"
        assert len(config.legacy_tables) == 5

    def test_key_schemas(self) -> None:
        config = PipelineConfig()

        assert config.source_key_schema(EntityType.EXPENSE) == KeySchema("userId", "expenseId")
        assert config.target_key_schema(EntityType.WORK) == KeySchema("companyId", "workId")
        assert config.membership_key_schema == KeySchema("companyId", "userId")
