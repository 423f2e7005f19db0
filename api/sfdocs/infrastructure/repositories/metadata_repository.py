"""
Repositorio del cache local de metadata.

Upsert = select + update-or-insert. La lectura retorna las mismas
estructuras que producen los parsers.
"""
from typing import Any, Dict, List, Optional, Tuple, Type

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sfdocs.domain.entities.metadata import (
    PROFILE_PERMISSION_TYPES,
    BusinessProcessRecord,
    CompactLayoutRecord,
    FieldRecord,
    FlowElementRecord,
    ListViewRecord,
    MetadataRecord,
    ObjectRecord,
    ParsedFlow,
    ParsedObject,
    ParsedProfile,
    ProfilePermissionRecord,
    RecordTypeRecord,
    ValidationRuleRecord,
)
from sfdocs.infrastructure.database.models import (
    FlowModel,
    ObjectComponentModel,
    ProfileModel,
    ProfilePermissionModel,
    SalesforceObjectModel,
)
from sfdocs.infrastructure.salesforce.profile_parser import iter_chunks

# component_type -> (clase de registro, atributo de ParsedObject)
COMPONENT_TYPES: Dict[str, Tuple[Type[MetadataRecord], str]] = {
    "fields": (FieldRecord, "fields"),
    "recordTypes": (RecordTypeRecord, "record_types"),
    "businessProcesses": (BusinessProcessRecord, "business_processes"),
    "compactLayouts": (CompactLayoutRecord, "compact_layouts"),
    "validationRules": (ValidationRuleRecord, "validation_rules"),
    "listViews": (ListViewRecord, "list_views"),
}


def _component_values(record: MetadataRecord) -> Dict[str, Any]:
    return {
        "label": record.label,
        "description": record.description,
        "field_type": getattr(record, "type", None),
        "error_condition_formula": getattr(record, "error_condition_formula", None),
        "error_message": getattr(record, "error_message", None),
        "active": getattr(record, "active", None),
        "details": record.details,
    }


def _component_record(model: ObjectComponentModel) -> MetadataRecord:
    record_cls, _ = COMPONENT_TYPES[model.component_type]
    kwargs: Dict[str, Any] = {
        "api_name": model.api_name,
        "label": model.label,
        "description": model.description,
        "details": model.details or {},
    }
    if record_cls is FieldRecord:
        kwargs["type"] = model.field_type or ""
    elif record_cls is ValidationRuleRecord:
        kwargs["error_condition_formula"] = model.error_condition_formula or ""
        kwargs["error_message"] = model.error_message or ""
        kwargs["active"] = bool(model.active)
    return record_cls(**kwargs)


def _element_to_json(record: FlowElementRecord) -> Dict[str, Any]:
    return {
        "api_name": record.api_name,
        "label": record.label,
        "description": record.description,
        "element_type": record.element_type,
        "details": record.details,
    }


def _element_from_json(data: Dict[str, Any]) -> FlowElementRecord:
    return FlowElementRecord(
        api_name=data.get("api_name") or "",
        label=data.get("label"),
        description=data.get("description"),
        element_type=data.get("element_type") or "",
        details=data.get("details") or {},
    )


class MetadataRepository:
    """
    Gestiona las tablas sf_objects, sf_object_components, sf_profiles,
    sf_profile_permissions y sf_flows.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Objetos
    # ------------------------------------------------------------------

    async def save_object(self, parsed: ParsedObject) -> int:
        """Guarda (upsert) un objeto y sus componentes. Retorna el id del objeto."""
        obj = parsed.object
        result = await self.db.execute(
            select(SalesforceObjectModel).where(SalesforceObjectModel.api_name == obj.api_name)
        )
        model = result.scalar_one_or_none()
        if model:
            model.label = obj.label
            model.plural_label = obj.plural_label
            model.description = obj.description
            model.details = obj.details
        else:
            model = SalesforceObjectModel(
                api_name=obj.api_name,
                label=obj.label,
                plural_label=obj.plural_label,
                description=obj.description,
                details=obj.details,
            )
            self.db.add(model)
        await self.db.flush()

        result = await self.db.execute(
            select(ObjectComponentModel).where(ObjectComponentModel.object_id == model.id)
        )
        existing = {(c.component_type, c.api_name): c for c in result.scalars().all()}

        saved = 0
        for component_type, (_, attr) in COMPONENT_TYPES.items():
            for record in getattr(parsed, attr):
                if not record.api_name:
                    logger.warning(f"Componente {component_type} sin api_name en {obj.api_name}, omitido")
                    continue
                values = _component_values(record)
                component = existing.get((component_type, record.api_name))
                if component:
                    for key, value in values.items():
                        setattr(component, key, value)
                else:
                    component = ObjectComponentModel(
                        object_id=model.id,
                        component_type=component_type,
                        api_name=record.api_name,
                        **values,
                    )
                    self.db.add(component)
                    existing[(component_type, record.api_name)] = component
                saved += 1

        await self.db.flush()
        logger.info(f"Objeto '{obj.api_name}' guardado en cache ({saved} componentes)")
        return model.id

    async def load_object(self, api_name: str) -> Optional[ParsedObject]:
        result = await self.db.execute(
            select(SalesforceObjectModel).where(SalesforceObjectModel.api_name == api_name)
        )
        model = result.scalar_one_or_none()
        if not model:
            return None

        result = await self.db.execute(
            select(ObjectComponentModel)
            .where(ObjectComponentModel.object_id == model.id)
            .order_by(ObjectComponentModel.id)
        )
        parsed = ParsedObject(
            object=ObjectRecord(
                api_name=model.api_name,
                label=model.label,
                description=model.description,
                plural_label=model.plural_label,
                details=model.details or {},
            )
        )
        for component in result.scalars().all():
            if component.component_type not in COMPONENT_TYPES:
                continue
            _, attr = COMPONENT_TYPES[component.component_type]
            getattr(parsed, attr).append(_component_record(component))
        return parsed

    async def list_objects(self) -> List[str]:
        result = await self.db.execute(
            select(SalesforceObjectModel.api_name).order_by(SalesforceObjectModel.api_name)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Perfiles
    # ------------------------------------------------------------------

    async def save_profile(self, parsed: ParsedProfile) -> int:
        """Guarda (upsert) un perfil y sus permisos (chunks aplanados)."""
        result = await self.db.execute(
            select(ProfileModel).where(ProfileModel.api_name == parsed.api_name)
        )
        model = result.scalar_one_or_none()
        if model:
            model.label = parsed.label
            model.description = parsed.description
            model.user_license = parsed.user_license
            model.custom = parsed.custom
            model.raw = parsed.raw
        else:
            model = ProfileModel(
                api_name=parsed.api_name,
                label=parsed.label,
                description=parsed.description,
                user_license=parsed.user_license,
                custom=parsed.custom,
                raw=parsed.raw,
            )
            self.db.add(model)
        await self.db.flush()

        result = await self.db.execute(
            select(ProfilePermissionModel).where(ProfilePermissionModel.profile_id == model.id)
        )
        existing = {(p.permission_type, p.sync_key): p for p in result.scalars().all()}

        saved = 0
        for permission_type in PROFILE_PERMISSION_TYPES:
            for position, record in enumerate(parsed.records(permission_type)):
                if not record.api_name:
                    logger.warning(f"Permiso {permission_type} sin clave en {parsed.api_name}, omitido")
                    continue
                row = existing.get((permission_type, record.api_name))
                if row:
                    row.position = position
                    row.details = record.details
                else:
                    row = ProfilePermissionModel(
                        profile_id=model.id,
                        permission_type=permission_type,
                        sync_key=record.api_name,
                        position=position,
                        details=record.details,
                    )
                    self.db.add(row)
                    existing[(permission_type, record.api_name)] = row
                saved += 1

        await self.db.flush()
        logger.info(f"Perfil '{parsed.api_name}' guardado en cache ({saved} permisos)")
        return model.id

    async def load_profile(self, api_name: str, chunk_size: int = 100) -> Optional[ParsedProfile]:
        result = await self.db.execute(select(ProfileModel).where(ProfileModel.api_name == api_name))
        model = result.scalar_one_or_none()
        if not model:
            return None

        result = await self.db.execute(
            select(ProfilePermissionModel)
            .where(ProfilePermissionModel.profile_id == model.id)
            .order_by(ProfilePermissionModel.permission_type, ProfilePermissionModel.position)
        )
        by_type: Dict[str, List[ProfilePermissionRecord]] = {t: [] for t in PROFILE_PERMISSION_TYPES}
        for row in result.scalars().all():
            if row.permission_type in by_type:
                by_type[row.permission_type].append(
                    ProfilePermissionRecord.from_raw(row.permission_type, row.details or {})
                )

        return ParsedProfile(
            api_name=model.api_name,
            label=model.label,
            description=model.description,
            user_license=model.user_license or "",
            custom=bool(model.custom),
            chunks={t: list(iter_chunks(records, chunk_size)) for t, records in by_type.items()},
            raw=model.raw or {},
        )

    async def list_profiles(self) -> List[str]:
        result = await self.db.execute(select(ProfileModel.api_name).order_by(ProfileModel.api_name))
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    async def save_flow(self, parsed: ParsedFlow) -> int:
        values = {
            "label": parsed.label,
            "description": parsed.description,
            "status": parsed.status,
            "process_type": parsed.process_type,
            "object_name": parsed.object,
            "operator": parsed.operator,
            "start": parsed.start,
            "decisions": [_element_to_json(d) for d in parsed.decisions],
            "record_updates": [_element_to_json(r) for r in parsed.record_updates],
            "details": parsed.details,
        }
        result = await self.db.execute(select(FlowModel).where(FlowModel.api_name == parsed.api_name))
        model = result.scalar_one_or_none()
        if model:
            for key, value in values.items():
                setattr(model, key, value)
        else:
            model = FlowModel(api_name=parsed.api_name, **values)
            self.db.add(model)
        await self.db.flush()
        logger.info(f"Flow '{parsed.api_name}' guardado en cache")
        return model.id

    async def load_flow(self, api_name: str) -> Optional[ParsedFlow]:
        result = await self.db.execute(select(FlowModel).where(FlowModel.api_name == api_name))
        model = result.scalar_one_or_none()
        if not model:
            return None
        return ParsedFlow(
            api_name=model.api_name,
            label=model.label,
            description=model.description,
            status=model.status or "",
            process_type=model.process_type or "",
            object=model.object_name,
            operator=model.operator,
            decisions=[_element_from_json(d) for d in model.decisions or []],
            record_updates=[_element_from_json(r) for r in model.record_updates or []],
            start=model.start or {},
            details=model.details or {},
        )

    async def list_flows(self) -> List[str]:
        result = await self.db.execute(select(FlowModel.api_name).order_by(FlowModel.api_name))
        return list(result.scalars().all())
