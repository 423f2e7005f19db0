"""
Configuración de base de datos.

Importa todos los modelos para que se registren con Base
antes de crear las tablas.
"""
from sfdocs.infrastructure.database.models import (
    SalesforceObjectModel,
    ObjectComponentModel,
    ProfileModel,
    ProfilePermissionModel,
    FlowModel
)
