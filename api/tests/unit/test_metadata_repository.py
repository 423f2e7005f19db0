"""
Tests del repositorio del cache local (SQLite en memoria).
"""
import pytest

from sfdocs.domain.entities.metadata import (
    FieldRecord,
    FlowElementRecord,
    ObjectRecord,
    ParsedFlow,
    ParsedObject,
    ParsedProfile,
    ProfilePermissionRecord,
    ValidationRuleRecord,
)
from sfdocs.infrastructure.repositories.metadata_repository import MetadataRepository


def _account(description: str = "") -> ParsedObject:
    return ParsedObject(
        object=ObjectRecord(api_name="Account", label="Account", plural_label="Accounts", details={"sharingModel": "ReadWrite"}),
        fields=[
            FieldRecord(api_name="Industry__c", label="Industry", type="Picklist", description=description),
            FieldRecord(api_name="", label="Nameless"),
        ],
        validation_rules=[
            ValidationRuleRecord(
                api_name="Require_Phone",
                error_condition_formula="ISBLANK(Phone)",
                error_message="Phone is required",
                active=True,
            )
        ],
    )


@pytest.mark.asyncio
async def test_object_roundtrip_skips_nameless_components(db_session) -> None:
    repo = MetadataRepository(db_session)

    await repo.save_object(_account())
    loaded = await repo.load_object("Account")

    assert loaded.object.plural_label == "Accounts"
    assert loaded.object.details == {"sharingModel": "ReadWrite"}
    assert [f.api_name for f in loaded.fields] == ["Industry__c"]
    assert loaded.fields[0].type == "Picklist"
    rule = loaded.validation_rules[0]
    assert rule.active is True
    assert rule.error_condition_formula == "ISBLANK(Phone)"
    assert await repo.list_objects() == ["Account"]


@pytest.mark.asyncio
async def test_save_object_twice_updates_in_place(db_session) -> None:
    repo = MetadataRepository(db_session)

    first_id = await repo.save_object(_account())
    second_id = await repo.save_object(_account(description="Sector"))
    loaded = await repo.load_object("Account")

    assert first_id == second_id
    assert len(loaded.fields) == 1
    assert loaded.fields[0].description == "Sector"


@pytest.mark.asyncio
async def test_load_missing_entities_return_none(db_session) -> None:
    repo = MetadataRepository(db_session)

    assert await repo.load_object("Nope") is None
    assert await repo.load_profile("Nope") is None
    assert await repo.load_flow("Nope") is None


@pytest.mark.asyncio
async def test_profile_is_rechunked_on_load(db_session) -> None:
    records = [
        ProfilePermissionRecord.from_raw("objectPermissions", {"object": f"Obj{i}__c", "allowRead": "true"})
        for i in range(5)
    ]
    profile = ParsedProfile(
        api_name="Admin",
        label="System Administrator",
        user_license="Salesforce",
        custom=False,
        chunks={"objectPermissions": [records[:3], records[3:]]},
    )
    repo = MetadataRepository(db_session)

    await repo.save_profile(profile)
    loaded = await repo.load_profile("Admin", chunk_size=2)

    assert loaded.label == "System Administrator"
    assert [len(c) for c in loaded.chunks["objectPermissions"]] == [2, 2, 1]
    assert [r.api_name for r in loaded.records("objectPermissions")] == [r.api_name for r in records]
    assert loaded.records("objectPermissions")[0].details["allowRead"] == "true"
    assert await repo.list_profiles() == ["Admin"]


@pytest.mark.asyncio
async def test_flow_roundtrip(db_session) -> None:
    flow = ParsedFlow(
        api_name="Opportunity_Won",
        label="Opportunity Won",
        status="Active",
        object="Opportunity",
        decisions=[FlowElementRecord(api_name="Check_Stage", label="Check Stage", element_type="decision")],
        start={"triggerType": "RecordAfterSave"},
    )
    repo = MetadataRepository(db_session)

    await repo.save_flow(flow)
    await repo.save_flow(flow)
    loaded = await repo.load_flow("Opportunity_Won")

    assert loaded.object == "Opportunity"
    assert loaded.decisions[0].element_type == "decision"
    assert loaded.template_context()["TRIGGER_TYPE"] == "RecordAfterSave"
    assert await repo.list_flows() == ["Opportunity_Won"]
