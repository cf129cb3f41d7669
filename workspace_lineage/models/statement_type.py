"""
Statement type enumeration.

This module defines the StatementType enum, which classifies each SQL
statement found in a workspace file.
"""

from enum import Enum


class StatementType(Enum):
    """SQL statement type enumeration.

    Classification rules:
    - SELECT: Pure query statement (including WITH ... SELECT)
    - INSERT: INSERT/REPLACE INTO ..., INSERT OVERWRITE ...
    - UPDATE: UPDATE ... SET ...
    - DELETE: DELETE FROM ...
    - MERGE: MERGE INTO ... USING ...
    - CREATE_TABLE: CREATE TABLE ... (column definitions)
    - CREATE_TABLE_AS: CREATE TABLE ... AS SELECT ...
    - CREATE_VIEW: CREATE [MATERIALIZED] VIEW ... AS SELECT ...
    - CREATE_OTHER: CREATE INDEX/PROCEDURE/FUNCTION/...
    - DROP, ALTER, TRUNCATE: DDL that names but does not read objects
    - OTHER: Anything else (SET, USE, GRANT, ...)
    """

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    MERGE = "merge"
    CREATE_TABLE = "create_table"
    CREATE_TABLE_AS = "create_table_as"
    CREATE_VIEW = "create_view"
    CREATE_OTHER = "create_other"
    DROP = "drop"
    ALTER = "alter"
    TRUNCATE = "truncate"
    OTHER = "other"

