"""
CLI: Salesforce metadata -> Notion (one-way sync).

Ejecución:
  python scripts/sync_metadata.py objects force-app/main/default/objects
  python scripts/sync_metadata.py profiles force-app/main/default/profiles --skip-cache
  python scripts/sync_metadata.py flows --from-cache --name Opportunity_Stage_Update
  python scripts/sync_metadata.py templates
  python scripts/sync_metadata.py template-demo --kind objects

Variables de entorno: NOTION_TOKEN y, opcionalmente, NOTION_DATABASE_ID o
NOTION_ROOT_PAGE_ID (ver sfdocs/core/config.py).
"""

from __future__ import annotations

import sys
from pathlib import Path

from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raíz `sfdocs/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar .env antes de construir Settings
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_API_ROOT.parent / ".env", override=False)

from sfdocs.cli import main  # noqa: E402


if __name__ == "__main__":
    raise SystemExit(main())
