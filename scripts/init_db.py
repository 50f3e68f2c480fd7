from __future__ import annotations

import importlib
from pathlib import Path

from dotenv import load_dotenv

from config import get_settings_module
from school_attendance.docstore.bootstrap import apply_schema, list_collections
from school_attendance.docstore.connection import DBConfig


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    schema_path = Path(__file__).resolve().parents[1] / "database" / "schema.sql"
    apply_schema(db_config, schema_path=schema_path)
    collections = list_collections(db_config)
    print(
        f"OK: Applied schema.sql -> {DBConfig.from_dict(db_config).describe()} "
        f"(collections={len(collections)}, documents={sum(n for _, n in collections)})"
    )


if __name__ == "__main__":
    main()
