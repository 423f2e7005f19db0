"""
Modelos de base de datos (ORM) del cache local de metadata.
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from sfdocs.infrastructure.database.session import Base


class SalesforceObjectModel(Base):
    """Objeto de Salesforce (resumen del .object-meta.xml)."""

    __tablename__ = "sf_objects"

    id = Column(Integer, primary_key=True, index=True)
    api_name = Column(String(255), nullable=False, unique=True, index=True)
    label = Column(String(255), nullable=True)
    plural_label = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<SalesforceObject(id={self.id}, api_name={self.api_name})>"


class ObjectComponentModel(Base):
    """
    Componente hijo de un objeto (field, recordType, validationRule, ...).
    Un api_name es único por objeto y tipo de componente.
    """

    __tablename__ = "sf_object_components"
    __table_args__ = (
        UniqueConstraint("object_id", "component_type", "api_name", name="uq_object_component"),
    )

    id = Column(Integer, primary_key=True, index=True)
    object_id = Column(Integer, ForeignKey("sf_objects.id"), nullable=False, index=True)
    component_type = Column(String(50), nullable=False, index=True)
    api_name = Column(String(255), nullable=False)
    label = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    field_type = Column(String(100), nullable=True)
    error_condition_formula = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    active = Column(Boolean, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<ObjectComponent(type={self.component_type}, api_name={self.api_name})>"


class ProfileModel(Base):
    """Perfil (atributos de primer nivel, sin arrays de permisos)."""

    __tablename__ = "sf_profiles"

    id = Column(Integer, primary_key=True, index=True)
    api_name = Column(String(255), nullable=False, unique=True, index=True)
    label = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    user_license = Column(String(255), nullable=True)
    custom = Column(Boolean, default=False)
    raw = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Profile(id={self.id}, api_name={self.api_name})>"


class ProfilePermissionModel(Base):
    """Fila de permiso de un perfil; la clave es única por perfil y subtipo."""

    __tablename__ = "sf_profile_permissions"
    __table_args__ = (
        UniqueConstraint("profile_id", "permission_type", "sync_key", name="uq_profile_permission"),
    )

    id = Column(Integer, primary_key=True, index=True)
    profile_id = Column(Integer, ForeignKey("sf_profiles.id"), nullable=False, index=True)
    permission_type = Column(String(50), nullable=False, index=True)
    sync_key = Column(String(512), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<ProfilePermission(type={self.permission_type}, key={self.sync_key})>"


class FlowModel(Base):
    """Flow con su resumen; los elementos se guardan como JSON."""

    __tablename__ = "sf_flows"

    id = Column(Integer, primary_key=True, index=True)
    api_name = Column(String(255), nullable=False, unique=True, index=True)
    label = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(50), nullable=True)
    process_type = Column(String(100), nullable=True)
    object_name = Column(String(255), nullable=True)
    operator = Column(String(100), nullable=True)
    start = Column(JSON, nullable=True)
    decisions = Column(JSON, nullable=True)
    record_updates = Column(JSON, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Flow(id={self.id}, api_name={self.api_name})>"
