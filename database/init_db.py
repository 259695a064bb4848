import os
import sys

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from quotation_engine import create_app
from quotation_engine.db import get_db, init_db
from quotation_engine.seed import seed_demo_catalog
from quotation_engine.tenant import DEFAULT_TENANT_ID


app = create_app()


if __name__ == "__main__":
    with app.app_context():
        init_db()
        if os.environ.get("SEED_DEMO", "0").strip() in {"1", "true", "yes", "sim"}:
            tenant_id = os.environ.get("SEED_TENANT", DEFAULT_TENANT_ID)
            summary = seed_demo_catalog(get_db(), tenant_id=tenant_id)
            print(f"Catalogo de exemplo: {len(summary['supplier_ids'])} fornecedores, {len(summary['item_ids'])} itens.")
    print("Database initialized.")
