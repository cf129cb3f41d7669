"""
Tests for ReferenceExtractor.
"""

from workspace_lineage import FunctionRegistry, ParseStatus, ReferenceExtractor
from workspace_lineage.dialects.function_registry import supported_dialects
from workspace_lineage.models.ast import Statement, TableSource
from workspace_lineage.models.reference import Clause, DefinitionKind
from workspace_lineage.models.statement_type import StatementType


class TestReferenceExtraction:
    """Tests for references extracted from parseable SQL."""

    def setup_method(self):
        """Create an extractor with a custom table-valued function."""
        self.extractor = ReferenceExtractor(
            FunctionRegistry(custom_table_valued=["my_tvf"])
        )

    def _names(self, sql, dialect=None):
        return [ref.name for ref in self.extractor.extract(sql, "q.sql", dialect).references]

    def test_simple_select(self):
        """Test a plain SELECT."""
        result = self.extractor.extract("SELECT * FROM orders", "q.sql")
        assert result.parse_status == ParseStatus.OK
        assert result.error is None
        assert len(result.references) == 1
        ref = result.references[0]
        assert ref.name == "orders"
        assert ref.file_path == "q.sql"
        assert ref.line == 1
        assert ref.statement_index == 0
        assert ref.clause == Clause.FROM

    def test_cte_names_are_not_references(self):
        """Test that a CTE name is never reported as a table."""
        assert self._names("WITH x AS (SELECT 1) SELECT * FROM x, real_table") == [
            "real_table"
        ]

    def test_cte_suppressed_across_statements(self):
        """Test that a CTE name declared anywhere in the file is suppressed."""
        sql = (
            "WITH recent AS (SELECT * FROM orders) SELECT * FROM recent;\n"
            "SELECT * FROM recent JOIN customers ON customers.id = recent.cid;"
        )
        assert self._names(sql) == ["orders", "customers"]

    def test_cte_definitions_are_reported(self):
        """Test that CTEs appear in definitions but not object definitions."""
        result = self.extractor.extract(
            "WITH recent AS (SELECT * FROM orders) SELECT * FROM recent", "q.sql"
        )
        assert [(d.name, d.kind) for d in result.definitions] == [
            ("recent", DefinitionKind.CTE)
        ]
        assert result.object_definitions == []
        assert result.cte_names == {"recent"}

    def test_function_names_are_excluded(self):
        """Test that registry function names are never references."""
        assert self._names("SELECT * FROM my_tvf JOIN orders ON 1 = 1") == ["orders"]
        assert self._names("SELECT * FROM MY_TVF, orders") == ["orders"]

    def test_qualified_function_name_is_a_table(self):
        """Test that only unqualified names are checked against the registry."""
        assert self._names("SELECT * FROM analytics.my_tvf") == ["analytics.my_tvf"]

    def test_call_shaped_sources_are_excluded(self):
        """Test that table-valued function calls are not references."""
        assert self._names(
            "SELECT * FROM generate_series(1, 10) g1 JOIN orders ON orders.id = g1.g1",
            "postgresql",
        ) == ["orders"]

    def test_extract_function(self):
        """Test that FROM inside EXTRACT is not a table reference."""
        assert self._names("SELECT EXTRACT(YEAR FROM created_at) FROM orders") == ["orders"]

    def test_duplicates_on_same_line_collapse(self):
        """Test de-duplication of identical references."""
        assert self._names("SELECT * FROM orders, ORDERS") == ["orders"]

    def test_same_name_on_different_lines_is_kept(self):
        """Test that references on different lines are distinct."""
        result = self.extractor.extract(
            "SELECT * FROM orders\nUNION ALL\nSELECT * FROM orders", "q.sql"
        )
        assert [(r.name, r.line) for r in result.references] == [
            ("orders", 1),
            ("orders", 3),
        ]

    def test_create_view_definition(self):
        """Test definitions and references of a CREATE VIEW."""
        result = self.extractor.extract(
            "CREATE VIEW v AS\nSELECT * FROM t", "a.sql"
        )
        assert [(d.name, d.kind, d.line) for d in result.definitions] == [
            ("v", DefinitionKind.VIEW, 1)
        ]
        assert [(r.name, r.line) for r in result.references] == [("t", 2)]

    def test_empty_file(self):
        """Test that an empty file extracts nothing and parses OK."""
        result = self.extractor.extract("", "empty.sql")
        assert result.parse_status == ParseStatus.OK
        assert result.references == []
        assert result.definitions == []

    def test_bytes_input(self):
        """Test that valid UTF-8 bytes are decoded and parsed."""
        result = self.extractor.extract("SELECT * FROM orders".encode("utf-8"), "q.sql")
        assert result.parse_status == ParseStatus.OK
        assert [r.name for r in result.references] == ["orders"]


class TestFallbackExtraction:
    """Tests for files routed to the pattern fallback."""

    def setup_method(self):
        """Create an extractor."""
        self.extractor = ReferenceExtractor()

    def test_unparseable_file_falls_back(self):
        """Test that a parse failure still yields references."""
        result = self.extractor.extract(
            "# FROM fake_table\nSEL * FROM real_table", "q.sql", "mysql"
        )
        assert result.parse_status == ParseStatus.FALLBACK
        assert result.error
        assert [(r.name, r.line) for r in result.references] == [("real_table", 2)]

    def test_fallback_suppresses_ctes(self):
        """Test that CTE suppression also applies to fallback results."""
        result = self.extractor.extract(
            "SEL 1;\nWITH recent AS (SELECT * FROM orders) SELECT * FROM recent", "q.sql"
        )
        assert result.parse_status == ParseStatus.FALLBACK
        assert [r.name for r in result.references] == ["orders"]

    def test_fallback_excludes_functions(self):
        """Test that function names are filtered from fallback results."""
        result = self.extractor.extract("SEL * FROM rank JOIN orders ON 1 = 1", "q.sql")
        assert result.parse_status == ParseStatus.FALLBACK
        assert [r.name for r in result.references] == ["orders"]

    def test_invalid_utf8(self):
        """Test that undecodable bytes fall back instead of failing."""
        result = self.extractor.extract(
            b"SELECT * FROM orders WHERE name = '\xff\xfe'", "q.sql"
        )
        assert result.parse_status == ParseStatus.FALLBACK
        assert "UTF-8" in result.error
        assert [r.name for r in result.references] == ["orders"]

    def test_statements_none_uses_fallback(self):
        """Test extract_from_statements without parsed statements."""
        result = self.extractor.extract_from_statements(
            "SELECT * FROM orders", "q.sql", None
        )
        assert result.parse_status == ParseStatus.FALLBACK
        assert [r.name for r in result.references] == ["orders"]


class TestFunctionNamesAcrossDialects:
    """Tests that table-valued and window function names never become references."""

    def setup_method(self):
        """Create a registry and one extractor per supported dialect."""
        self.registry = FunctionRegistry()
        self.dialects = supported_dialects()

    def _function_names(self, dialect):
        names = self.registry.table_valued_functions(dialect) + self.registry.window_functions(
            dialect
        )
        # Qualified names are never checked against the registry.
        return [name for name in names if "." not in name]

    def test_parsed_statements(self):
        """Test the parsed path with statements naming each function as a source."""
        for dialect in self.dialects:
            extractor = ReferenceExtractor(self.registry, dialect=dialect)
            names = self._function_names(dialect)
            nodes = [TableSource(name.lower(), Clause.FROM, i + 1) for i, name in enumerate(names)]
            nodes.append(TableSource("orders", Clause.JOIN, len(names) + 1))
            statement = Statement(0, StatementType.SELECT, 1, nodes)

            result = extractor.extract_from_statements("", "q.sql", [statement], dialect)
            assert result.parse_status == ParseStatus.OK
            assert [r.key for r in result.references] == ["orders"], dialect

    def test_sql_text(self):
        """Test extraction of SQL that reads from each function name."""
        for dialect in self.dialects:
            extractor = ReferenceExtractor(self.registry, dialect=dialect)
            for name in self._function_names(dialect):
                sql = f"SELECT * FROM {name.lower()} JOIN orders ON 1 = 1"
                keys = {r.key for r in extractor.extract(sql, "q.sql").references}
                assert name.lower() not in keys, (dialect, name)

    def test_fallback(self):
        """Test the pattern fallback with each function name as a source."""
        for dialect in self.dialects:
            extractor = ReferenceExtractor(self.registry, dialect=dialect)
            for name in self._function_names(dialect):
                sql = f"SELECT (1;\nSELECT * FROM {name.lower()} JOIN orders ON 1 = 1"
                result = extractor.extract(sql, "q.sql")
                assert result.parse_status == ParseStatus.FALLBACK, (dialect, name)
                assert [r.key for r in result.references] == ["orders"], (dialect, name)
