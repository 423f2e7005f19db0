"""Plantillas de documentación por tipo de entidad."""
