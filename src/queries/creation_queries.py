"""
Database queries for creating the entity store and vector index schema.
Tables: entities, personlinks, tasks, vectors, searches.
"""

# ============================================================================
# TABLE CREATION QUERIES
# ============================================================================

CREATE_ENTITIES_TABLE = """
CREATE TABLE IF NOT EXISTS entities (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    data TEXT, -- JSON object: description, tags and free-form fields
    value REAL NOT NULL DEFAULT 0,
    quantity INTEGER NOT NULL DEFAULT 1 CHECK (quantity >= 0),
    location TEXT,
    parent TEXT, -- Optional parent entity id (variants, inventory, store items)
    status TEXT NOT NULL DEFAULT 'active',
    created INTEGER NOT NULL, -- Epoch milliseconds
    updated INTEGER NOT NULL
)
"""

# No foreign key on entityid: links and tasks of a deleted entity are
# tolerated and filtered at read time
CREATE_PERSONLINKS_TABLE = """
CREATE TABLE IF NOT EXISTS personlinks (
    entityid TEXT NOT NULL,
    personid TEXT NOT NULL,
    role TEXT NOT NULL,
    UNIQUE(entityid, personid, role)
)
"""

CREATE_TASKS_TABLE = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    entityid TEXT NOT NULL,
    personid TEXT NOT NULL,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    priority INTEGER NOT NULL DEFAULT 0,
    due INTEGER, -- Epoch milliseconds, NULL when there is no deadline
    data TEXT,
    created INTEGER NOT NULL,
    updated INTEGER NOT NULL
)
"""

CREATE_VECTORS_TABLE = """
CREATE TABLE IF NOT EXISTS vectors (
    id INTEGER PRIMARY KEY AUTOINCREMENT, -- Insertion order, used as tie-break
    embedding BLOB NOT NULL, -- float32 little-endian
    document TEXT NOT NULL DEFAULT '',
    metadata TEXT NOT NULL -- JSON object, always carries entity_id
)
"""

CREATE_SEARCHES_TABLE = """
CREATE TABLE IF NOT EXISTS searches (
    id TEXT PRIMARY KEY,
    query TEXT NOT NULL,
    created INTEGER NOT NULL
)
"""

CREATE_TABLES = [
    CREATE_ENTITIES_TABLE,
    CREATE_PERSONLINKS_TABLE,
    CREATE_TASKS_TABLE,
    CREATE_VECTORS_TABLE,
    CREATE_SEARCHES_TABLE,
]

# ============================================================================
# INDEX CREATION QUERIES
# ============================================================================

CREATE_INDEXES = [
    # Entity indexes
    "CREATE INDEX IF NOT EXISTS idx_entities_type ON entities(type)",
    "CREATE INDEX IF NOT EXISTS idx_entities_status ON entities(status)",
    "CREATE INDEX IF NOT EXISTS idx_entities_parent ON entities(parent)",
    # Person link indexes
    "CREATE INDEX IF NOT EXISTS idx_personlinks_entity ON personlinks(entityid)",
    "CREATE INDEX IF NOT EXISTS idx_personlinks_person ON personlinks(personid)",
    "CREATE INDEX IF NOT EXISTS idx_personlinks_role ON personlinks(role)",
    # Task indexes
    "CREATE INDEX IF NOT EXISTS idx_tasks_entity ON tasks(entityid)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_person ON tasks(personid)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status_due ON tasks(status, due)",
    # Vector indexes
    "CREATE INDEX IF NOT EXISTS idx_vectors_entity ON vectors(json_extract(metadata, '$.entity_id'))",
    # Search history index
    "CREATE INDEX IF NOT EXISTS idx_searches_created ON searches(created)",
]
