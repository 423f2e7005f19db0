"""
Tests de los parsers de metadata (XML en tmp_path).
"""
from pathlib import Path

import pytest

from sfdocs.infrastructure.salesforce.flow_parser import find_flow_files, parse_flow
from sfdocs.infrastructure.salesforce.object_parser import find_object_dirs, parse_object
from sfdocs.infrastructure.salesforce.profile_parser import (
    find_profile_files,
    iter_chunks,
    parse_profile,
)
from sfdocs.infrastructure.salesforce.xml_reader import read_metadata_xml
from sfdocs.shared.exceptions.domain import MetadataParseError

NS = 'xmlns="http://soap.sforce.com/2006/04/metadata"'


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f'<?xml version="1.0" encoding="UTF-8"?>\n{content}', encoding="utf-8")
    return path


@pytest.fixture
def account_dir(tmp_path: Path) -> Path:
    obj = tmp_path / "objects" / "Account"
    _write(
        obj / "Account.object-meta.xml",
        f"<CustomObject {NS}><label>Account</label><pluralLabel>Accounts</pluralLabel>"
        f"<sharingModel>ReadWrite</sharingModel></CustomObject>",
    )
    _write(
        obj / "fields" / "Industry__c.field-meta.xml",
        f"<CustomField {NS}><fullName>Industry__c</fullName><label>Industry</label>"
        f"<type>Picklist</type><required>false</required></CustomField>",
    )
    _write(
        obj / "fields" / "Phone.field-meta.xml",
        f"<CustomField {NS}><label>Phone</label><type>Phone</type></CustomField>",
    )
    _write(
        obj / "validationRules" / "Require_Phone.validationRule-meta.xml",
        f"<ValidationRule {NS}><fullName>Require_Phone</fullName><active>true</active>"
        f"<errorConditionFormula>ISBLANK(Phone)</errorConditionFormula>"
        f"<errorMessage>Phone is required</errorMessage></ValidationRule>",
    )
    _write(
        obj / "listViews" / "AllAccounts.listView-meta.xml",
        f"<ListView {NS}><fullName>AllAccounts</fullName><label>All Accounts</label>"
        f"<filterScope>Everything</filterScope><columns>ACCOUNT.NAME</columns>"
        f"<columns>ACCOUNT.PHONE</columns></ListView>",
    )
    return obj


def test_parse_object_reads_all_collections(account_dir: Path) -> None:
    parsed = parse_object(account_dir)

    assert parsed.api_name == "Account"
    assert parsed.object.plural_label == "Accounts"
    assert parsed.template_context()["SHARING_MODEL"] == "ReadWrite"
    assert [f.api_name for f in parsed.fields] == ["Industry__c", "Phone"]
    assert parsed.fields[0].type == "Picklist"
    assert parsed.fields[0].details["required"] == "false"
    rule = parsed.validation_rules[0]
    assert rule.active is True
    assert rule.error_condition_formula == "ISBLANK(Phone)"
    assert parsed.list_views[0].details["columns"] == ["ACCOUNT.NAME", "ACCOUNT.PHONE"]
    assert parsed.record_types == []


def test_find_object_dirs(account_dir: Path) -> None:
    assert find_object_dirs(account_dir.parent) == [account_dir]
    assert find_object_dirs(account_dir) == [account_dir]
    assert find_object_dirs(account_dir.parent / "missing") == []


def test_invalid_component_raises_parse_error(account_dir: Path) -> None:
    _write(account_dir / "fields" / "Broken__c.field-meta.xml", "<CustomField><label>")

    with pytest.raises(MetadataParseError) as exc:
        parse_object(account_dir)

    assert "Broken__c" in exc.value.message


def test_unexpected_root_tag(tmp_path: Path) -> None:
    path = _write(tmp_path / "x.flow-meta.xml", f"<Profile {NS}></Profile>")

    with pytest.raises(MetadataParseError, match="Flow"):
        read_metadata_xml(path, "Flow")


def _profile_xml(object_count: int) -> str:
    permissions = "".join(
        f"<objectPermissions><object>Obj{i}__c</object><allowRead>true</allowRead></objectPermissions>"
        for i in range(object_count)
    )
    return (
        f"<Profile {NS}><custom>true</custom><userLicense>Salesforce</userLicense>"
        f"<layoutAssignments><layout>Account-Account Layout</layout></layoutAssignments>"
        f"<userPermissions><enabled>true</enabled><name>ApiEnabled</name></userPermissions>"
        f"{permissions}</Profile>"
    )


def test_parse_profile_chunks_permissions(tmp_path: Path) -> None:
    path = _write(tmp_path / "profiles" / "Sales Profile.profile-meta.xml", _profile_xml(150))

    profile = parse_profile(path, chunk_size=100)

    assert profile.api_name == "Sales Profile"
    assert profile.custom is True
    assert profile.user_license == "Salesforce"
    assert [len(c) for c in profile.chunks["objectPermissions"]] == [100, 50]
    records = profile.records("objectPermissions")
    assert len(records) == 150
    assert records[0].api_name == "Obj0__c"
    assert records[-1].api_name == "Obj149__c"
    assert profile.records("userPermissions")[0].api_name == "ApiEnabled"
    assert profile.records("layoutAssignments")[0].api_name == "Account-Account Layout"
    assert profile.chunks["tabVisibilities"] == []
    assert "objectPermissions" not in profile.raw


def test_find_profile_files(tmp_path: Path) -> None:
    path = _write(tmp_path / "profiles" / "Admin.profile-meta.xml", _profile_xml(1))
    _write(tmp_path / "profiles" / "README.xml", "<x/>")

    assert find_profile_files(tmp_path) == [path]
    assert find_profile_files(path) == [path]


def test_iter_chunks() -> None:
    assert list(iter_chunks([1, 2, 3], 2)) == [[1, 2], [3]]
    assert list(iter_chunks([], 2)) == []
    with pytest.raises(ValueError):
        list(iter_chunks([1], 0))


def test_parse_flow(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "flows" / "Opportunity_Won.flow-meta.xml",
        f"<Flow {NS}><label>Opportunity Won</label><status>Active</status>"
        f"<processType>AutoLaunchedFlow</processType>"
        f"<start><object>Opportunity</object><recordTriggerType>Update</recordTriggerType>"
        f"<filters><field>StageName</field><operator>EqualTo</operator></filters></start>"
        f"<decisions><name>Check_Stage</name><label>Check Stage</label>"
        f"<rules><name>Won</name><label>Won</label></rules></decisions>"
        f"<recordUpdates><name>Set_Probability</name><label>Set Probability</label>"
        f"<inputReference>$Record</inputReference></recordUpdates></Flow>",
    )

    flow = parse_flow(path)

    assert flow.api_name == "Opportunity_Won"
    assert flow.label == "Opportunity Won"
    assert flow.object == "Opportunity"
    assert flow.operator == "EqualTo"
    assert [d.api_name for d in flow.decisions] == ["Check_Stage"]
    assert flow.record_updates[0].details["inputReference"] == "$Record"
    assert flow.template_context()["RECORD_TRIGGER_TYPE"] == "Update"
    assert "decisions" not in flow.details
    assert find_flow_files(tmp_path) == [path]
