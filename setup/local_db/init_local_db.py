from __future__ import annotations

import argparse
import sqlite3
from pathlib import Path
from typing import Iterable


REQUIRED_SCHEMA: dict[str, tuple[str, ...]] = {
    "signatures": ("id", "user_id", "name", "content", "created_at", "updated_at"),
    "lead_sheets": (
        "id",
        "user_id",
        "sheet_name",
        "source_file_extension",
        "signature_id",
        "next_row_index",
        "uploaded_at",
    ),
    "lead_rows": (
        "id",
        "sheet_id",
        "row_index",
        "business_email",
        "website_url",
        "email_status",
        "has_replied",
        "created_at",
        "updated_at",
    ),
    "action_runs": (
        "id",
        "sheet_id",
        "user_id",
        "action",
        "callback_token",
        "state",
        "dispatch_error",
        "created_at",
        "updated_at",
    ),
    "action_run_rows": ("run_id", "row_id", "position", "status", "updated_at"),
    "website_submissions": ("id", "user_id", "website_name", "website_url", "extracted_data", "created_at"),
    "my_company_info": (
        "id",
        "user_id",
        "website_name",
        "website_url",
        "company_name",
        "company_type",
        "industry_expertise",
        "full_tech_summary",
        "service_catalog",
        "the_hook",
        "what_they_do",
        "value_proposition",
        "brand_tone",
        "created_at",
        "updated_at",
    ),
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialize a local SQLite DB with the leadflow schema.")
    parser.add_argument(
        "--db-path",
        default=str(Path(__file__).resolve().parent / "leadflow_local.db"),
        help="Output SQLite database path.",
    )
    parser.add_argument(
        "--sql-root",
        default=str(Path(__file__).resolve().parent / "sql"),
        help="Root SQL folder path (contains schema/ and seed/).",
    )
    parser.add_argument(
        "--skip-seed",
        action="store_true",
        help="Skip running seed scripts.",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete existing database file before creating.",
    )
    parser.add_argument(
        "--skip-verify",
        action="store_true",
        help="Skip post-bootstrap schema verification.",
    )
    return parser.parse_args()


def _sql_files_from_dir(directory: Path) -> list[Path]:
    if not directory.exists():
        raise FileNotFoundError(f"SQL directory not found: {directory}")
    files = sorted([item for item in directory.iterdir() if item.is_file() and item.suffix.lower() == ".sql"])
    if not files:
        raise FileNotFoundError(f"No SQL files found in: {directory}")
    return files


def _apply_sql_files(conn: sqlite3.Connection, files: Iterable[Path]) -> int:
    count = 0
    for sql_file in files:
        conn.executescript(sql_file.read_text(encoding="utf-8"))
        count += 1
    return count


def _table_columns(conn: sqlite3.Connection, table_name: str) -> set[str]:
    cursor = conn.execute(f"PRAGMA table_info({table_name})")
    rows = cursor.fetchall()
    return {str(row[1]).strip().lower() for row in rows if len(row) > 1 and str(row[1]).strip()}


def verify_required_schema(conn: sqlite3.Connection) -> list[str]:
    errors: list[str] = []
    for table_name, required_columns in REQUIRED_SCHEMA.items():
        present = _table_columns(conn, table_name)
        if not present:
            errors.append(f"missing table: {table_name}")
            continue
        missing = [column for column in required_columns if column.lower() not in present]
        if missing:
            errors.append(f"{table_name} missing columns: {', '.join(missing)}")
    return errors


def count_tables(conn: sqlite3.Connection) -> int:
    row = conn.execute(
        """
        SELECT COUNT(*)
        FROM sqlite_master
        WHERE type = 'table'
          AND name NOT LIKE 'sqlite_%'
        """
    ).fetchone()
    return int(row[0]) if row else 0


def main() -> None:
    args = parse_args()
    db_path = Path(args.db_path).resolve()
    sql_root = Path(args.sql_root).resolve()

    schema_files = _sql_files_from_dir(sql_root / "schema")
    seed_files: list[Path] = []
    if not args.skip_seed:
        seed_dir = sql_root / "seed"
        if seed_dir.exists():
            seed_files = _sql_files_from_dir(seed_dir)

    if args.reset and db_path.exists():
        db_path.unlink()

    db_path.parent.mkdir(parents=True, exist_ok=True)

    with sqlite3.connect(db_path) as conn:
        schema_script_count = _apply_sql_files(conn, schema_files)
        seed_script_count = _apply_sql_files(conn, seed_files) if seed_files else 0
        conn.commit()
        if not args.skip_verify:
            schema_errors = verify_required_schema(conn)
            if schema_errors:
                details = "; ".join(schema_errors)
                raise RuntimeError(
                    "Local schema validation failed. "
                    "Run with --reset to rebuild the database. "
                    f"Details: {details}"
                )
        table_count = count_tables(conn)

    print(f"Local database ready: {db_path}")
    print(f"Schema scripts applied: {schema_script_count}")
    print(f"Seed scripts applied: {seed_script_count}")
    print(f"Tables: {table_count}")


if __name__ == "__main__":
    main()
