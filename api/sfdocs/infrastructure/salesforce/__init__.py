"""
Parsers de metadata de Salesforce (formato source: *-meta.xml).

Convierten archivos XML en las entidades de dominio (ParsedObject,
ParsedProfile, ParsedFlow). Sin dependencias de Notion ni de la BD.
"""
