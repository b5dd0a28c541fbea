"""
Vector Index Queries
SQL used by the sqlite-vec backed vector index. Similarity is computed as
``1 - vec_distance_cosine`` so higher means more relevant.
"""

INSERT_VECTOR = """
INSERT INTO vectors (embedding, document, metadata)
VALUES (?, ?, ?)
"""

# Brute-force scan; ties fall back to insertion order
QUERY_SIMILAR_VECTORS = """
SELECT id,
       document,
       metadata,
       1.0 - vec_distance_cosine(embedding, ?) AS similarity
FROM vectors
ORDER BY similarity DESC, id ASC
LIMIT ?
"""

DELETE_VECTORS_BY_IDS = "DELETE FROM vectors WHERE id IN ({placeholders})"

DELETE_VECTORS_WHERE = "DELETE FROM vectors WHERE {where}"

SELECT_VECTOR_METADATA = "SELECT id, metadata FROM vectors ORDER BY id ASC"

COUNT_VECTORS = "SELECT COUNT(*) AS count FROM vectors"

COUNT_VECTORS_WHERE = "SELECT COUNT(*) AS count FROM vectors WHERE {where}"

GET_VECTOR_STATS = """
SELECT COUNT(*) AS total_vectors,
       COUNT(DISTINCT json_extract(metadata, '$.entity_id')) AS total_entities
FROM vectors
"""
