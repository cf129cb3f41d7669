"""
Built-in function names per dialect.

``COMMON_FUNCTIONS`` applies to every dialect; ``DIALECT_FUNCTIONS`` adds
dialect-specific names. Names are upper-case.
"""

from __future__ import annotations

COMMON_FUNCTIONS: dict[str, frozenset[str]] = {
    "aggregates": frozenset(
        {
            "COUNT", "SUM", "AVG", "MIN", "MAX",
            "STDDEV", "STDDEV_POP", "STDDEV_SAMP",
            "VARIANCE", "VAR_POP", "VAR_SAMP",
            "COVAR_POP", "COVAR_SAMP", "CORR",
            "EVERY", "ANY_VALUE",
        }
    ),
    "window": frozenset(
        {
            "ROW_NUMBER", "RANK", "DENSE_RANK", "PERCENT_RANK", "CUME_DIST",
            "NTILE", "LAG", "LEAD", "FIRST_VALUE", "LAST_VALUE", "NTH_VALUE",
        }
    ),
    "table_valued": frozenset(),
}

DIALECT_FUNCTIONS: dict[str, dict[str, frozenset[str]]] = {
    "mysql": {
        "aggregates": frozenset(
            {"GROUP_CONCAT", "BIT_AND", "BIT_OR", "BIT_XOR", "JSON_ARRAYAGG",
             "JSON_OBJECTAGG", "STD"}
        ),
        "window": frozenset(),
        "table_valued": frozenset({"JSON_TABLE"}),
    },
    "mariadb": {
        "aggregates": frozenset(
            {"GROUP_CONCAT", "BIT_AND", "BIT_OR", "BIT_XOR", "JSON_ARRAYAGG",
             "JSON_OBJECTAGG", "STD"}
        ),
        "window": frozenset({"MEDIAN", "PERCENTILE_CONT", "PERCENTILE_DISC"}),
        "table_valued": frozenset({"JSON_TABLE", "SEQUENCE"}),
    },
    "postgresql": {
        "aggregates": frozenset(
            {"ARRAY_AGG", "STRING_AGG", "JSON_AGG", "JSONB_AGG", "JSON_OBJECT_AGG",
             "JSONB_OBJECT_AGG", "BOOL_AND", "BOOL_OR", "BIT_AND", "BIT_OR",
             "XMLAGG", "MODE", "PERCENTILE_CONT", "PERCENTILE_DISC",
             "REGR_SLOPE", "REGR_INTERCEPT", "REGR_COUNT"}
        ),
        "window": frozenset(),
        "table_valued": frozenset(
            {"GENERATE_SERIES", "UNNEST", "JSON_EACH", "JSONB_EACH",
             "JSON_ARRAY_ELEMENTS", "JSONB_ARRAY_ELEMENTS", "JSON_TO_RECORDSET",
             "JSONB_TO_RECORDSET", "REGEXP_MATCHES", "GENERATE_SUBSCRIPTS",
             "JSON_EACH_TEXT", "JSONB_EACH_TEXT"}
        ),
    },
    "transactsql": {
        "aggregates": frozenset(
            {"STRING_AGG", "COUNT_BIG", "CHECKSUM_AGG", "GROUPING", "GROUPING_ID",
             "STDEV", "STDEVP", "VAR", "VARP", "APPROX_COUNT_DISTINCT"}
        ),
        "window": frozenset({"PERCENTILE_CONT", "PERCENTILE_DISC"}),
        "table_valued": frozenset(
            {"OPENJSON", "STRING_SPLIT", "OPENROWSET", "OPENQUERY",
             "OPENDATASOURCE", "OPENXML", "GENERATE_SERIES", "CHANGETABLE"}
        ),
    },
    "oracle": {
        "aggregates": frozenset(
            {"LISTAGG", "COLLECT", "MEDIAN", "STATS_MODE", "XMLAGG",
             "PERCENTILE_CONT", "PERCENTILE_DISC", "APPROX_COUNT_DISTINCT"}
        ),
        "window": frozenset({"RATIO_TO_REPORT"}),
        "table_valued": frozenset({"TABLE", "XMLTABLE", "JSON_TABLE"}),
    },
    "sqlite": {
        "aggregates": frozenset({"GROUP_CONCAT", "TOTAL", "JSON_GROUP_ARRAY",
                                 "JSON_GROUP_OBJECT"}),
        "window": frozenset(),
        "table_valued": frozenset({"JSON_EACH", "JSON_TREE", "GENERATE_SERIES",
                                   "PRAGMA_TABLE_INFO"}),
    },
    "bigquery": {
        "aggregates": frozenset(
            {"ARRAY_AGG", "STRING_AGG", "ARRAY_CONCAT_AGG", "COUNTIF",
             "LOGICAL_AND", "LOGICAL_OR", "APPROX_COUNT_DISTINCT",
             "APPROX_QUANTILES", "APPROX_TOP_COUNT", "HLL_COUNT.MERGE"}
        ),
        "window": frozenset({"PERCENTILE_CONT", "PERCENTILE_DISC"}),
        "table_valued": frozenset({"UNNEST", "GENERATE_ARRAY",
                                   "GENERATE_DATE_ARRAY", "ML.PREDICT"}),
    },
    "snowflake": {
        "aggregates": frozenset(
            {"ARRAY_AGG", "LISTAGG", "OBJECT_AGG", "MEDIAN", "MODE", "COUNT_IF",
             "BOOLAND_AGG", "BOOLOR_AGG", "APPROX_COUNT_DISTINCT", "HLL",
             "PERCENTILE_CONT", "PERCENTILE_DISC"}
        ),
        "window": frozenset({"CONDITIONAL_TRUE_EVENT", "RATIO_TO_REPORT"}),
        "table_valued": frozenset(
            {"FLATTEN", "GENERATOR", "SPLIT_TO_TABLE", "RESULT_SCAN",
             "INFER_SCHEMA", "TABLE"}
        ),
    },
    "redshift": {
        "aggregates": frozenset({"LISTAGG", "MEDIAN", "APPROXIMATE",
                                 "PERCENTILE_CONT", "BOOL_AND", "BOOL_OR"}),
        "window": frozenset({"RATIO_TO_REPORT"}),
        "table_valued": frozenset(),
    },
    "hive": {
        "aggregates": frozenset({"COLLECT_LIST", "COLLECT_SET", "PERCENTILE",
                                 "PERCENTILE_APPROX", "HISTOGRAM_NUMERIC"}),
        "window": frozenset(),
        "table_valued": frozenset({"EXPLODE", "POSEXPLODE", "INLINE", "STACK",
                                   "JSON_TUPLE", "PARSE_URL_TUPLE"}),
    },
    "trino": {
        "aggregates": frozenset({"ARRAY_AGG", "MAP_AGG", "APPROX_DISTINCT",
                                 "APPROX_PERCENTILE", "BOOL_AND", "BOOL_OR",
                                 "COUNT_IF", "LISTAGG", "MAX_BY", "MIN_BY"}),
        "window": frozenset(),
        "table_valued": frozenset({"UNNEST", "SEQUENCE"}),
    },
    "athena": {
        "aggregates": frozenset({"ARRAY_AGG", "MAP_AGG", "APPROX_DISTINCT",
                                 "APPROX_PERCENTILE", "BOOL_AND", "BOOL_OR",
                                 "COUNT_IF", "MAX_BY", "MIN_BY"}),
        "window": frozenset(),
        "table_valued": frozenset({"UNNEST", "SEQUENCE"}),
    },
    "teradata": {
        "aggregates": frozenset({"REGR_AVGX", "REGR_AVGY", "REGR_COUNT",
                                 "KURTOSIS", "SKEW"}),
        "window": frozenset({"CSUM", "MAVG", "MSUM", "MDIFF", "QUANTILE"}),
        "table_valued": frozenset({"TD_UNPIVOT", "STRTOK_SPLIT_TO_TABLE"}),
    },
}
