"""
Tests del orquestador: resolución de padre, reutilización de páginas y aislamiento de fallos.
"""
import pytest

from sfdocs.domain.entities.metadata import (
    EntityKind,
    FieldRecord,
    ObjectRecord,
    ParsedFlow,
    ParsedObject,
    ParsedProfile,
    ProfilePermissionRecord,
    ValidationRuleRecord,
)
from sfdocs.infrastructure.notion_sync.notion_client import RemoteRequestError
from sfdocs.infrastructure.notion_sync.sync_service import EntitySyncResult, NotionDocumentationSync
from sfdocs.infrastructure.notion_sync.template_registry import TemplateRegistry, build_default_registry
from sfdocs.infrastructure.notion_sync.templates import object_templates
from sfdocs.infrastructure.notion_sync.types import ParentRef, TemplateDescriptor, bullets, heading
from sfdocs.shared.exceptions.domain import ContextValidationError

FIELDS_TITLE = "🏷️ Account - All Fields"
RULES_TITLE = "✅ Account - Validation Rules"


def _account() -> ParsedObject:
    return ParsedObject(
        object=ObjectRecord(api_name="Account", label="Account", plural_label="Accounts"),
        fields=[
            FieldRecord(api_name="Industry__c", label="Industry", type="Picklist"),
            FieldRecord(api_name="Phone", label="Phone", type="Phone", details={"required": "true"}),
        ],
        validation_rules=[
            ValidationRuleRecord(
                api_name="Require_Phone",
                label="Require_Phone",
                error_condition_formula="ISBLANK(Phone)",
                error_message="Phone is required",
                active=True,
            )
        ],
    )


def _sync(fake, policy, registry=None, **kwargs) -> NotionDocumentationSync:
    return NotionDocumentationSync(fake, registry or build_default_registry(), policy=policy, **kwargs)


# ---------------------------------------------------------------------------
# Resolución del padre
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_configured_database_wins(fake_notion, fast_policy) -> None:
    sync = _sync(fake_notion, fast_policy, database_id="docs-db", root_page_id="root")

    assert await sync.resolve_parent() == ParentRef("database_id", "docs-db")
    assert fake_notion.calls == []


@pytest.mark.asyncio
async def test_configured_page_used_when_no_database(fake_notion, fast_policy) -> None:
    sync = _sync(fake_notion, fast_policy, root_page_id="root")

    assert await sync.resolve_parent() == ParentRef("page_id", "root")


@pytest.mark.asyncio
async def test_first_accessible_page_is_cached(fake_notion, fast_policy) -> None:
    fake_notion.search_results = [{"id": "shared-page"}]
    sync = _sync(fake_notion, fast_policy)

    first = await sync.resolve_parent()
    second = await sync.resolve_parent()

    assert first == second == ParentRef("page_id", "shared-page")
    assert fake_notion.count("search_pages") == 1


@pytest.mark.asyncio
async def test_container_created_in_workspace_once(fake_notion, fast_policy) -> None:
    sync = _sync(fake_notion, fast_policy, container_title="SF Docs")

    parent = await sync.resolve_parent()
    await sync.resolve_parent()

    assert fake_notion.count("create_page") == 1
    container = fake_notion.pages[parent.id]
    assert container["parent"] == {"type": "workspace", "workspace": True}
    assert container["properties"]["title"]["title"][0]["plain_text"] == "SF Docs"


# ---------------------------------------------------------------------------
# Sync de entidades
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_fresh_object_sync_builds_page_and_tables(fake_notion, fast_policy) -> None:
    sync = _sync(fake_notion, fast_policy, root_page_id="root")

    container = await sync.sync_object(_account())

    assert container.reused is False
    assert container.title == "📋 Account (Account)"
    assert set(container.tables) == {"fields", "validationRules"}
    page = fake_notion.pages[container.id]
    assert page["parent"] == {"type": "page_id", "page_id": "root"}
    assert page["children"][0]["type"] == "heading_1"

    fields_db = fake_notion.database_by_title(FIELDS_TITLE)
    assert fields_db["parent_page_id"] == container.id
    assert len(fake_notion.rows(fields_db["id"])) == 2
    assert container.tables["fields"].report.created == 2
    assert len(fake_notion.rows(fake_notion.database_by_title(RULES_TITLE)["id"])) == 1


@pytest.mark.asyncio
async def test_rerun_reuses_page_and_tables(fake_notion, fast_policy) -> None:
    await _sync(fake_notion, fast_policy, root_page_id="root").sync_object(_account())
    pages = fake_notion.count("create_page")
    databases = fake_notion.count("create_database")

    container = await _sync(fake_notion, fast_policy, root_page_id="root").sync_object(_account())

    assert container.reused is True
    assert all(t.reused for t in container.tables.values())
    assert container.tables["fields"].report.skipped == 2
    assert fake_notion.count("create_page") == pages
    assert fake_notion.count("create_database") == databases
    assert fake_notion.count("update_page") == 0


@pytest.mark.asyncio
async def test_database_parent_finds_page_by_api_name(fake_notion, fast_policy) -> None:
    first = await _sync(fake_notion, fast_policy, database_id="docs-db").sync_object(_account())
    page = fake_notion.pages[first.id]
    assert page["properties"]["API Name"]["rich_text"][0]["plain_text"] == "Account"
    assert page["properties"]["Name"]["title"][0]["plain_text"] == "📋 Account (Account)"

    second = await _sync(fake_notion, fast_policy, database_id="docs-db").sync_object(_account())

    assert second.id == first.id
    assert second.reused is True


@pytest.mark.asyncio
async def test_new_tables_are_added_to_reused_page(fake_notion, fast_policy) -> None:
    account = _account()
    account.validation_rules = []
    await _sync(fake_notion, fast_policy, root_page_id="root").sync_object(account)

    container = await _sync(fake_notion, fast_policy, root_page_id="root").sync_object(_account())

    assert container.tables["fields"].reused is True
    assert container.tables["validationRules"].reused is False
    assert fake_notion.count("list_child_databases") == 1


@pytest.mark.asyncio
async def test_same_instance_rerun_reuses_table_it_created(fake_notion, fast_policy) -> None:
    account = _account()
    account.validation_rules = []
    await _sync(fake_notion, fast_policy, root_page_id="root").sync_object(account)
    sync = _sync(fake_notion, fast_policy, root_page_id="root")

    first = await sync.sync_object(_account())
    assert first.tables["validationRules"].reused is False
    databases = fake_notion.count("create_database")
    pages = fake_notion.count("create_page")

    second = await sync.sync_object(_account())

    assert second.tables["validationRules"].reused is True
    assert second.tables["validationRules"].report.skipped == 1
    assert fake_notion.count("create_database") == databases
    assert fake_notion.count("create_page") == pages
    assert sum(1 for d in fake_notion.databases.values() if d["title"] == RULES_TITLE) == 1


@pytest.mark.asyncio
async def test_failed_table_does_not_stop_other_tables(fake_notion, fast_policy) -> None:
    fake_notion.fail["create_database"] = lambda parent, title: (
        RemoteRequestError("schema rejected", status_code=400) if title == RULES_TITLE else None
    )
    sync = _sync(fake_notion, fast_policy, root_page_id="root")

    container = await sync.sync_object(_account())

    assert container.failed_tables == ["validationRules"]
    assert "schema rejected" in container.tables["validationRules"].error
    assert container.tables["fields"].report.created == 2
    assert sum(1 for m, args in fake_notion.calls if m == "create_database" and args[1] == RULES_TITLE) == 3


@pytest.mark.asyncio
async def test_missing_table_template_is_a_table_failure(fake_notion, fast_policy) -> None:
    registry = TemplateRegistry()
    registry.register_many(EntityKind.OBJECT, [object_templates.OVERVIEW, object_templates.FIELDS])
    sync = _sync(fake_notion, fast_policy, registry=registry, root_page_id="root")

    container = await sync.sync_object(_account())

    assert container.failed_tables == ["validationRules"]
    assert container.tables["fields"].error is None


@pytest.mark.asyncio
async def test_invalid_context_fails_before_any_remote_call(fake_notion, fast_policy) -> None:
    broken = ParsedObject(object=ObjectRecord(api_name=""), fields=[FieldRecord(api_name="X__c")])
    sync = _sync(fake_notion, fast_policy, root_page_id="root")

    with pytest.raises(ContextValidationError) as exc:
        await sync.sync_entity(broken)

    assert "OBJECT_API_NAME" in exc.value.missing
    assert fake_notion.calls == []


@pytest.mark.asyncio
async def test_main_page_failure_fails_the_entity(fake_notion, fast_policy) -> None:
    fake_notion.fail["create_page"] = lambda parent, props: RemoteRequestError("forbidden", status_code=403)
    sync = _sync(fake_notion, fast_policy, root_page_id="root")

    with pytest.raises(RemoteRequestError):
        await sync.sync_object(_account())

    assert fake_notion.count("create_database") == 0


@pytest.mark.asyncio
async def test_sync_many_isolates_entity_failures(fake_notion, fast_policy) -> None:
    broken = ParsedObject(object=ObjectRecord(api_name=""))
    sync = _sync(fake_notion, fast_policy, root_page_id="root")

    results = await sync.sync_many([broken, _account()])

    assert [r.ok for r in results] == [False, True]
    assert isinstance(results[0], EntitySyncResult)
    data = results[1].to_dict()
    assert data["kind"] == "objects"
    assert data["api_name"] == "Account"
    assert data["tables"]["fields"]["created"] == 2
    assert results[0].to_dict()["error"]


@pytest.mark.asyncio
async def test_profile_sync_with_chunked_permissions(fake_notion, fast_policy) -> None:
    records = [
        ProfilePermissionRecord.from_raw("objectPermissions", {"object": f"Obj{i}__c", "allowRead": "true"})
        for i in range(150)
    ]
    profile = ParsedProfile(
        api_name="Sales_Profile",
        label="Sales Profile",
        chunks={"objectPermissions": [records[:100], records[100:]]},
    )
    sync = _sync(fake_notion, fast_policy, root_page_id="root")

    container = await sync.sync_profile(profile)

    assert list(container.tables) == ["objectPermissions"]
    assert container.tables["objectPermissions"].report.created == 150
    assert fake_notion.max_in_flight <= 3


@pytest.mark.asyncio
async def test_flow_sync_creates_overview_without_tables(fake_notion, fast_policy) -> None:
    flow = ParsedFlow(api_name="Opportunity_Won", label="Opportunity Won", status="Active")
    sync = _sync(fake_notion, fast_policy, root_page_id="root")

    container = await sync.sync_flow(flow)

    assert container.title == "🔁 Opportunity Won"
    assert container.tables == {}
    assert fake_notion.count("create_database") == 0


@pytest.mark.asyncio
async def test_long_overview_appends_blocks_without_duplicating_page(fake_notion, fast_policy) -> None:
    registry = TemplateRegistry()
    registry.register(
        EntityKind.FLOW,
        TemplateDescriptor(
            name="overview",
            title="{FLOW_NAME}",
            page_structure=(
                heading(1, "{FLOW_NAME}"),
                bullets(*(f"Paso {i}" for i in range(249))),
            ),
            required_context=("FLOW_NAME",),
        ),
    )
    attempts = []

    def fail_first_append(block_id, children):
        attempts.append(len(children))
        if len(attempts) == 1:
            return RemoteRequestError("bad gateway", status_code=502)
        return None

    fake_notion.fail["append_block_children"] = fail_first_append
    sync = _sync(fake_notion, fast_policy, registry=registry, root_page_id="root")

    container = await sync.sync_flow(ParsedFlow(api_name="Long_Flow", label="Long Flow"))

    assert fake_notion.count("create_page") == 1
    assert attempts == [100, 100, 50]
    assert len(fake_notion.pages[container.id]["children"]) == 250
