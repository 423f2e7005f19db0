"""
sfdocs: documentacion de metadata de Salesforce en Notion.
"""
__version__ = "1.0.0"
