import json
import os
import sqlite3
from pathlib import Path

from design_search.models import ModelConfig, Project, Screen

DB_PATH = Path(os.getenv(
    "DESIGN_SEARCH_DB",
    str(Path(__file__).resolve().parent.parent / "design_search.db"),
))

_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

PROJECT_LIST_FIELDS = ("preview_screens", "keywords", "application_type", "industry_sector")
SCREEN_LIST_FIELDS = (
    "component_index", "component_index_l2",
    "tags_primary", "tags_primary_l2",
    "tags_style", "tags_style_l2",
    "tags_components", "tags_components_l2",
    "design_style", "feeling",
)
SCREEN_TEXT_FIELDS = (
    "original_url", "url",
    "page_type", "page_type_l2", "platform",
    "app_category", "app_category_l2", "intent",
    "design_system", "type", "spacing", "density", "type_l2",
)


def _fold(value):
    return value.lower() if isinstance(value, str) else value


def _connect() -> sqlite3.Connection:
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    # SQLite's lower() only folds ASCII; match str.lower() used on the Python side
    conn.create_function("py_lower", 1, _fold, deterministic=True)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_db():
    conn = _connect()
    cur = conn.cursor()
    cur.executescript(f"""
        CREATE TABLE IF NOT EXISTS projects (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            project_id TEXT NOT NULL UNIQUE,
            name TEXT DEFAULT '',
            platform TEXT DEFAULT '',
            app_name TEXT DEFAULT '',
            app_logo_url TEXT DEFAULT '',
            app_tagline TEXT DEFAULT '',
            preview_screens TEXT,   -- JSON list
            screen_count INTEGER DEFAULT 0,
            recommended_count INTEGER DEFAULT 0,
            keywords TEXT,          -- JSON list
            application_type TEXT,  -- JSON list
            industry_sector TEXT,   -- JSON list
            created_at TEXT DEFAULT ({_NOW}),
            updated_at TEXT DEFAULT ({_NOW})
        );

        CREATE TABLE IF NOT EXISTS screens (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            project_id TEXT NOT NULL,
            screen_id TEXT NOT NULL UNIQUE,
            original_url TEXT DEFAULT '',
            url TEXT DEFAULT '',
            is_recommended INTEGER DEFAULT 0,
            "order" INTEGER DEFAULT 0,
            page_type TEXT DEFAULT '',
            page_type_l2 TEXT DEFAULT '',
            platform TEXT DEFAULT '',
            app_category TEXT DEFAULT '',
            app_category_l2 TEXT DEFAULT '',
            intent TEXT DEFAULT '',
            design_system TEXT DEFAULT '',
            type TEXT DEFAULT '',
            spacing TEXT DEFAULT '',
            density TEXT DEFAULT '',
            type_l2 TEXT DEFAULT '',
            component_index TEXT,       -- JSON list
            component_index_l2 TEXT,    -- JSON list
            tags_primary TEXT,          -- JSON list
            tags_primary_l2 TEXT,       -- JSON list
            tags_style TEXT,            -- JSON list
            tags_style_l2 TEXT,         -- JSON list
            tags_components TEXT,       -- JSON list
            tags_components_l2 TEXT,    -- JSON list
            design_style TEXT,          -- JSON list
            feeling TEXT,               -- JSON list
            created_at TEXT DEFAULT ({_NOW}),
            updated_at TEXT DEFAULT ({_NOW})
        );
        CREATE INDEX IF NOT EXISTS idx_screens_project ON screens(project_id, "order");

        CREATE TABLE IF NOT EXISTS favorites (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            target_type TEXT NOT NULL,  -- 'project' | 'screen'
            target_id TEXT NOT NULL,
            created_at TEXT DEFAULT ({_NOW}),
            UNIQUE(user_id, target_type, target_id)
        );

        CREATE TABLE IF NOT EXISTS model_configs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            model TEXT NOT NULL,
            adapter TEXT DEFAULT 'gemini image',
            base_url TEXT DEFAULT '',
            api_key TEXT DEFAULT '',
            provider TEXT DEFAULT '',
            enabled INTEGER DEFAULT 1,
            description TEXT DEFAULT '',
            created_at TEXT DEFAULT ({_NOW}),
            updated_at TEXT DEFAULT ({_NOW})
        );

        CREATE TABLE IF NOT EXISTS messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            session_id TEXT NOT NULL,
            role TEXT NOT NULL,
            content TEXT DEFAULT '',
            images TEXT,    -- JSON list
            metadata TEXT,  -- JSON object
            created_at TEXT DEFAULT ({_NOW})
        );
        CREATE INDEX IF NOT EXISTS idx_messages_session ON messages(session_id, id);
    """)
    conn.commit()
    conn.close()


# --- WHERE clause builders ---
# Each returns (sql, params); column names come from code, never from input.


def eq(column: str, value) -> tuple[str, list]:
    return f'"{column}" = ?', [value]


def in_ci(column: str, values: list[str]) -> tuple[str, list]:
    """Case-insensitive exact match of a text column against any of `values`."""
    marks = ",".join("?" for _ in values)
    return f'py_lower("{column}") IN ({marks})', [v.lower() for v in values]


def array_any_ci(column: str, values: list[str]) -> tuple[str, list]:
    """JSON list column holds at least one of `values`, ignoring case."""
    marks = ",".join("?" for _ in values)
    return (
        f'EXISTS (SELECT 1 FROM json_each("{column}") WHERE py_lower(json_each.value) IN ({marks}))',
        [v.lower() for v in values],
    )


def array_any(column: str, values: list[str]) -> tuple[str, list]:
    marks = ",".join("?" for _ in values)
    return (
        f'EXISTS (SELECT 1 FROM json_each("{column}") WHERE json_each.value IN ({marks}))',
        list(values),
    )


def contains_ci(column: str, text: str) -> tuple[str, list]:
    return f'instr(py_lower("{column}"), ?) > 0', [text.lower()]


def any_of(clauses: list[tuple[str, list]]) -> tuple[str, list]:
    sql = " OR ".join(f"({c})" for c, _ in clauses)
    params = [p for _, ps in clauses for p in ps]
    return f"({sql})", params


def _where(clauses: list[tuple[str, list]] | None) -> tuple[str, list]:
    if not clauses:
        return "", []
    sql = " AND ".join(c for c, _ in clauses)
    params = [p for _, ps in clauses for p in ps]
    return f" WHERE {sql}", params


def _paging(limit: int | None, offset: int) -> tuple[str, list]:
    if limit is None:
        return "", []
    return " LIMIT ? OFFSET ?", [limit, offset]


# --- Row decoding ---


def _project_row(row: sqlite3.Row) -> dict:
    d = dict(row)
    d.pop("id", None)
    for field in PROJECT_LIST_FIELDS:
        d[field] = json.loads(d[field] or "[]")
    return d


def _screen_row(row: sqlite3.Row) -> dict:
    d = dict(row)
    d.pop("id", None)
    for field in SCREEN_LIST_FIELDS:
        d[field] = json.loads(d[field] or "[]")
    d["is_recommended"] = bool(d["is_recommended"])
    return d


# --- Projects ---


def upsert_project(project: Project):
    conn = _connect()
    conn.execute(
        f"""INSERT INTO projects (
            project_id, name, platform, app_name, app_logo_url, app_tagline,
            preview_screens, screen_count, recommended_count, keywords,
            application_type, industry_sector
        ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
        ON CONFLICT(project_id) DO UPDATE SET
            name=excluded.name,
            platform=excluded.platform,
            app_name=excluded.app_name,
            app_logo_url=excluded.app_logo_url,
            app_tagline=excluded.app_tagline,
            preview_screens=excluded.preview_screens,
            screen_count=excluded.screen_count,
            recommended_count=excluded.recommended_count,
            keywords=excluded.keywords,
            application_type=excluded.application_type,
            industry_sector=excluded.industry_sector,
            updated_at={_NOW}""",
        (
            project.project_id, project.name, project.platform, project.app_name,
            project.app_logo_url, project.app_tagline,
            json.dumps(project.preview_screens, ensure_ascii=False),
            project.screen_count, project.recommended_count,
            json.dumps(project.keywords, ensure_ascii=False),
            json.dumps(project.application_type, ensure_ascii=False),
            json.dumps(project.industry_sector, ensure_ascii=False),
        ),
    )
    conn.commit()
    conn.close()


def get_project(project_id: str) -> dict | None:
    conn = _connect()
    row = conn.execute(
        "SELECT * FROM projects WHERE project_id = ?", (project_id,)
    ).fetchone()
    conn.close()
    if not row:
        return None
    return _project_row(row)


def get_projects_by_ids(project_ids: list[str]) -> dict[str, dict]:
    if not project_ids:
        return {}
    conn = _connect()
    placeholders = ",".join("?" for _ in project_ids)
    rows = conn.execute(
        f"SELECT * FROM projects WHERE project_id IN ({placeholders})", project_ids
    ).fetchall()
    conn.close()
    return {r["project_id"]: _project_row(r) for r in rows}


def select_projects(
    clauses: list[tuple[str, list]] | None = None,
    order_by: str = "created_at DESC, id DESC",
    limit: int | None = None,
    offset: int = 0,
) -> list[dict]:
    where, params = _where(clauses)
    paging, paging_params = _paging(limit, offset)
    conn = _connect()
    rows = conn.execute(
        f"SELECT * FROM projects{where} ORDER BY {order_by}{paging}",
        params + paging_params,
    ).fetchall()
    conn.close()
    return [_project_row(r) for r in rows]


def count_projects(clauses: list[tuple[str, list]] | None = None) -> int:
    where, params = _where(clauses)
    conn = _connect()
    total = conn.execute(f"SELECT COUNT(*) FROM projects{where}", params).fetchone()[0]
    conn.close()
    return total


def update_project_taxonomy(
    project_id: str,
    application_type: list[str] | None = None,
    industry_sector: list[str] | None = None,
) -> bool:
    """Overwrite the non-empty category lists of an existing project."""
    sets, params = [], []
    if application_type:
        sets.append("application_type = ?")
        params.append(json.dumps(application_type, ensure_ascii=False))
    if industry_sector:
        sets.append("industry_sector = ?")
        params.append(json.dumps(industry_sector, ensure_ascii=False))
    if not sets:
        return False
    conn = _connect()
    cur = conn.execute(
        f"UPDATE projects SET {', '.join(sets)}, updated_at = {_NOW} WHERE project_id = ?",
        params + [project_id],
    )
    conn.commit()
    matched = cur.rowcount > 0
    conn.close()
    return matched


def update_project_screen_counts(project_ids: list[str]) -> int:
    """Recompute screen_count from the screens table. Returns projects touched."""
    if not project_ids:
        return 0
    conn = _connect()
    updated = 0
    for project_id in project_ids:
        cur = conn.execute(
            f"""UPDATE projects SET
                screen_count = (SELECT COUNT(*) FROM screens WHERE screens.project_id = ?),
                updated_at = {_NOW}
            WHERE project_id = ?""",
            (project_id, project_id),
        )
        updated += cur.rowcount
    conn.commit()
    conn.close()
    return updated


# --- Screens ---


def upsert_screens(screens: list[Screen]) -> int:
    """Insert or update a batch of screens in one transaction."""
    if not screens:
        return 0
    columns = (
        ["project_id", "screen_id", "is_recommended", "order"]
        + list(SCREEN_TEXT_FIELDS)
        + list(SCREEN_LIST_FIELDS)
    )
    col_sql = ", ".join(f'"{c}"' for c in columns)
    marks = ",".join("?" for _ in columns)
    updates = ",\n            ".join(
        f'"{c}"=excluded."{c}"' for c in columns if c != "screen_id"
    )
    sql = f"""INSERT INTO screens ({col_sql}) VALUES ({marks})
        ON CONFLICT(screen_id) DO UPDATE SET
            {updates},
            updated_at={_NOW}"""

    rows = []
    for s in screens:
        values = [s.project_id, s.screen_id, 1 if s.is_recommended else 0, s.order]
        values += [getattr(s, f) for f in SCREEN_TEXT_FIELDS]
        values += [json.dumps(getattr(s, f), ensure_ascii=False) for f in SCREEN_LIST_FIELDS]
        rows.append(values)

    conn = _connect()
    conn.executemany(sql, rows)
    conn.commit()
    conn.close()
    return len(rows)


def get_screen(screen_id: str) -> dict | None:
    conn = _connect()
    row = conn.execute(
        "SELECT * FROM screens WHERE screen_id = ?", (screen_id,)
    ).fetchone()
    conn.close()
    if not row:
        return None
    return _screen_row(row)


def get_screens_by_ids(screen_ids: list[str]) -> dict[str, dict]:
    if not screen_ids:
        return {}
    conn = _connect()
    placeholders = ",".join("?" for _ in screen_ids)
    rows = conn.execute(
        f"SELECT * FROM screens WHERE screen_id IN ({placeholders})", screen_ids
    ).fetchall()
    conn.close()
    return {r["screen_id"]: _screen_row(r) for r in rows}


def select_screens(
    clauses: list[tuple[str, list]] | None = None,
    order_by: str = '"order" ASC, created_at DESC, id DESC',
    limit: int | None = None,
    offset: int = 0,
) -> list[dict]:
    where, params = _where(clauses)
    paging, paging_params = _paging(limit, offset)
    conn = _connect()
    rows = conn.execute(
        f"SELECT * FROM screens{where} ORDER BY {order_by}{paging}",
        params + paging_params,
    ).fetchall()
    conn.close()
    return [_screen_row(r) for r in rows]


def count_screens(clauses: list[tuple[str, list]] | None = None) -> int:
    where, params = _where(clauses)
    conn = _connect()
    total = conn.execute(f"SELECT COUNT(*) FROM screens{where}", params).fetchone()[0]
    conn.close()
    return total


def update_screen_orders(orders: list[tuple[str, int]]) -> int:
    """Set "order" on existing screens. Returns how many rows matched."""
    if not orders:
        return 0
    conn = _connect()
    updated = 0
    for screen_id, order in orders:
        cur = conn.execute(
            f'UPDATE screens SET "order" = ?, updated_at = {_NOW} WHERE screen_id = ?',
            (order, screen_id),
        )
        updated += cur.rowcount
    conn.commit()
    conn.close()
    return updated


# --- Favorites ---


def add_favorite(user_id: str, target_type: str, target_id: str):
    conn = _connect()
    conn.execute(
        """INSERT INTO favorites (user_id, target_type, target_id) VALUES (?,?,?)
        ON CONFLICT(user_id, target_type, target_id) DO NOTHING""",
        (user_id, target_type, target_id),
    )
    conn.commit()
    conn.close()


def remove_favorite(user_id: str, target_type: str, target_id: str) -> bool:
    conn = _connect()
    cur = conn.execute(
        "DELETE FROM favorites WHERE user_id = ? AND target_type = ? AND target_id = ?",
        (user_id, target_type, target_id),
    )
    conn.commit()
    deleted = cur.rowcount > 0
    conn.close()
    return deleted


def list_favorite_ids(user_id: str, target_type: str, limit: int, offset: int = 0) -> list[str]:
    conn = _connect()
    rows = conn.execute(
        """SELECT target_id FROM favorites
           WHERE user_id = ? AND target_type = ?
           ORDER BY created_at DESC, id DESC
           LIMIT ? OFFSET ?""",
        (user_id, target_type, limit, offset),
    ).fetchall()
    conn.close()
    return [r["target_id"] for r in rows]


def count_favorites(user_id: str, target_type: str) -> int:
    conn = _connect()
    total = conn.execute(
        "SELECT COUNT(*) FROM favorites WHERE user_id = ? AND target_type = ?",
        (user_id, target_type),
    ).fetchone()[0]
    conn.close()
    return total


def favorite_target_ids(user_id: str, target_type: str, target_ids: list[str]) -> set[str]:
    """Subset of `target_ids` the user has favorited."""
    if not user_id or not target_ids:
        return set()
    conn = _connect()
    placeholders = ",".join("?" for _ in target_ids)
    rows = conn.execute(
        f"""SELECT target_id FROM favorites
            WHERE user_id = ? AND target_type = ? AND target_id IN ({placeholders})""",
        [user_id, target_type, *target_ids],
    ).fetchall()
    conn.close()
    return {r["target_id"] for r in rows}


# --- Model configs ---


def upsert_model_config(config: ModelConfig):
    conn = _connect()
    conn.execute(
        f"""INSERT INTO model_configs (
            name, model, adapter, base_url, api_key, provider, enabled, description
        ) VALUES (?,?,?,?,?,?,?,?)
        ON CONFLICT(name) DO UPDATE SET
            model=excluded.model,
            adapter=excluded.adapter,
            base_url=excluded.base_url,
            api_key=excluded.api_key,
            provider=excluded.provider,
            enabled=excluded.enabled,
            description=excluded.description,
            updated_at={_NOW}""",
        (
            config.name, config.model, config.adapter, config.base_url,
            config.api_key, config.provider, 1 if config.enabled else 0,
            config.description,
        ),
    )
    conn.commit()
    conn.close()


def _model_config_row(row: sqlite3.Row) -> dict:
    d = dict(row)
    d.pop("id", None)
    d["enabled"] = bool(d["enabled"])
    return d


def list_model_configs() -> list[dict]:
    conn = _connect()
    rows = conn.execute(
        "SELECT * FROM model_configs ORDER BY created_at DESC, id DESC"
    ).fetchall()
    conn.close()
    return [_model_config_row(r) for r in rows]


def find_enabled_model_config(name_or_model: str) -> dict | None:
    conn = _connect()
    row = conn.execute(
        """SELECT * FROM model_configs
           WHERE enabled = 1 AND (name = ? OR model = ?)
           ORDER BY CASE WHEN name = ? THEN 0 ELSE 1 END, id
           LIMIT 1""",
        (name_or_model, name_or_model, name_or_model),
    ).fetchone()
    conn.close()
    if not row:
        return None
    return _model_config_row(row)


# --- Chat messages ---


def insert_message(
    session_id: str,
    role: str,
    content: str = "",
    images: list[str] | None = None,
    metadata: dict | None = None,
) -> int:
    conn = _connect()
    cur = conn.cursor()
    cur.execute(
        "INSERT INTO messages (session_id, role, content, images, metadata) VALUES (?,?,?,?,?)",
        (
            session_id, role, content or "",
            json.dumps(images or [], ensure_ascii=False),
            json.dumps(metadata or {}, ensure_ascii=False),
        ),
    )
    conn.commit()
    message_id = cur.lastrowid
    conn.close()
    return message_id


def list_messages(session_id: str, limit: int) -> list[dict]:
    """Most recent messages of a session, newest first."""
    conn = _connect()
    rows = conn.execute(
        "SELECT * FROM messages WHERE session_id = ? ORDER BY id DESC LIMIT ?",
        (session_id, limit),
    ).fetchall()
    conn.close()
    results = []
    for r in rows:
        d = dict(r)
        d["images"] = json.loads(d["images"] or "[]")
        d["metadata"] = json.loads(d["metadata"] or "{}")
        results.append(d)
    return results
