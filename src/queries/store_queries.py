"""
Entity Store Queries
Contains all SQL queries used by the entity, people and task stores.
Queries with an ``{placeholders}`` or ``{where}`` slot are completed with
``str.format`` before execution; values are always bound as parameters.
"""

# ============================================================================
# ENTITY QUERIES
# ============================================================================

ENTITY_COLUMNS = (
    "id, type, title, data, value, quantity, location, parent, status, created, updated"
)

PREFIXED_ENTITY_COLUMNS = ", ".join(
    "e." + column.strip() for column in ENTITY_COLUMNS.split(",")
)

INSERT_ENTITY = f"""
INSERT INTO entities ({ENTITY_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

GET_ENTITY_BY_ID = f"""
SELECT {ENTITY_COLUMNS}
FROM entities
WHERE id = ?
"""

GET_ENTITIES_BY_IDS = f"""
SELECT {ENTITY_COLUMNS}
FROM entities
WHERE id IN ({{placeholders}})
"""

LIST_ENTITIES = f"""
SELECT {ENTITY_COLUMNS}
FROM entities
{{where}}
ORDER BY rowid ASC
"""

GET_ENTITY_CHILDREN = f"""
SELECT {ENTITY_COLUMNS}
FROM entities
WHERE parent = ?
ORDER BY rowid ASC
"""

UPDATE_ENTITY = """
UPDATE entities
SET {assignments}
WHERE id = ?
"""

DELETE_ENTITY = "DELETE FROM entities WHERE id = ?"

GET_ENTITY_UPDATED = "SELECT updated FROM entities WHERE id = ?"

# Single GROUP BY pass; totals are folded in Python
GET_ENTITY_STATS = """
SELECT type, status, COUNT(*) AS count
FROM entities
GROUP BY type, status
"""

# ============================================================================
# PERSON LINK QUERIES
# ============================================================================

INSERT_PERSONLINK = """
INSERT OR IGNORE INTO personlinks (entityid, personid, role)
VALUES (?, ?, ?)
"""

DELETE_PERSONLINK = "DELETE FROM personlinks WHERE entityid = ? AND personid = ?"

DELETE_PERSONLINK_WITH_ROLE = """
DELETE FROM personlinks
WHERE entityid = ? AND personid = ? AND role = ?
"""

DELETE_PERSONLINKS_FOR_ENTITY = "DELETE FROM personlinks WHERE entityid = ?"

GET_PERSONS_OF_ENTITY = """
SELECT entityid, personid, role
FROM personlinks
WHERE entityid = ?
ORDER BY rowid ASC
"""

# The join drops links whose entity no longer exists
GET_ENTITIES_OF_PERSON = f"""
SELECT {PREFIXED_ENTITY_COLUMNS}
FROM personlinks p
JOIN entities e ON e.id = p.entityid
WHERE p.personid = ? {{role_clause}}
GROUP BY e.id
ORDER BY MIN(p.rowid) ASC
"""

GET_LINKS_BY_ROLE = """
SELECT entityid, personid, role
FROM personlinks
WHERE role = ?
ORDER BY rowid ASC
"""

GET_ALL_LINKS = """
SELECT entityid, personid, role
FROM personlinks
ORDER BY rowid ASC
"""

GET_ALL_PEOPLE = """
SELECT personid
FROM personlinks
GROUP BY personid
ORDER BY MIN(rowid) ASC
"""

GET_PERSON_ROLES = """
SELECT role
FROM personlinks
WHERE personid = ?
GROUP BY role
ORDER BY MIN(rowid) ASC
"""

COUNT_LINKS_BY_ROLE_FOR_ENTITY = """
SELECT role, COUNT(*) AS count
FROM personlinks
WHERE entityid = ?
GROUP BY role
"""

GET_LINKS_FOR_ENTITIES = """
SELECT entityid, personid, role
FROM personlinks
WHERE entityid IN ({placeholders})
ORDER BY rowid ASC
"""

GET_PEOPLE_STATS = """
SELECT role,
       COUNT(*) AS count,
       (SELECT COUNT(DISTINCT personid) FROM personlinks) AS people
FROM personlinks
GROUP BY role
"""

# ============================================================================
# TASK QUERIES
# ============================================================================

TASK_COLUMNS = (
    "id, entityid, personid, type, title, status, priority, due, data, created, updated"
)

# Priority desc, due asc with undated tasks last, newest first
TASK_ORDER = "ORDER BY priority DESC, due IS NULL, due ASC, created DESC, rowid ASC"

INSERT_TASK = f"""
INSERT INTO tasks ({TASK_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

GET_TASK_BY_ID = f"""
SELECT {TASK_COLUMNS}
FROM tasks
WHERE id = ?
"""

LIST_TASKS = f"""
SELECT {TASK_COLUMNS}
FROM tasks
{{where}}
{TASK_ORDER}
"""

GET_TASKS_FOR_ENTITIES = f"""
SELECT {TASK_COLUMNS}
FROM tasks
WHERE entityid IN ({{placeholders}})
{TASK_ORDER}
"""

GET_OVERDUE_TASKS = f"""
SELECT {TASK_COLUMNS}
FROM tasks
WHERE status = 'pending' AND due IS NOT NULL AND due < ?
ORDER BY due ASC, priority DESC, rowid ASC
"""

GET_TASKS_DUE_SOON = f"""
SELECT {TASK_COLUMNS}
FROM tasks
WHERE status = 'pending' AND due IS NOT NULL AND due >= ? AND due <= ?
ORDER BY due ASC, priority DESC, rowid ASC
"""

UPDATE_TASK = """
UPDATE tasks
SET {assignments}
WHERE id = ?
"""

DELETE_TASK = "DELETE FROM tasks WHERE id = ?"

DELETE_TASKS_FOR_ENTITY = "DELETE FROM tasks WHERE entityid = ?"

GET_TASK_STATS = """
SELECT status,
       COUNT(*) AS count,
       SUM(CASE WHEN status = 'pending' AND due IS NOT NULL AND due < ? THEN 1 ELSE 0 END) AS overdue
FROM tasks
GROUP BY status
"""

# ============================================================================
# SEARCH HISTORY QUERIES
# ============================================================================

INSERT_SEARCH = "INSERT INTO searches (id, query, created) VALUES (?, ?, ?)"

# Keeps the newest ``?`` rows
TRIM_SEARCHES = """
DELETE FROM searches
WHERE rowid NOT IN (
    SELECT rowid FROM searches
    ORDER BY created DESC, rowid DESC
    LIMIT ?
)
"""

GET_RECENT_SEARCHES = """
SELECT id, query, created
FROM searches
ORDER BY created DESC, rowid DESC
LIMIT ?
"""

COUNT_SEARCHES = "SELECT COUNT(*) AS count FROM searches"

DELETE_ALL_SEARCHES = "DELETE FROM searches"
