"""Starter SQL snippets, parameterised by the profiled columns."""

from __future__ import annotations

from typing import Sequence

from .models import ColumnStats, SQLTemplate
from .query_builder import DEFAULT_TABLE_NAME, quote_ident


def _pick(column_stats: Sequence[ColumnStats], column_type: str, skip: int = 0) -> str | None:
    matches = [s.name for s in column_stats if s.type == column_type]
    return matches[skip] if len(matches) > skip else None


def build_templates(
    column_stats: Sequence[ColumnStats],
    table_name: str = DEFAULT_TABLE_NAME,
) -> list[SQLTemplate]:
    names = [s.name for s in column_stats]
    first = names[0] if names else "column_name"
    second = names[1] if len(names) > 1 else first

    c = quote_ident(first)
    c2 = quote_ident(second)
    n = quote_ident(_pick(column_stats, "number") or second)
    d = quote_ident(_pick(column_stats, "date") or first)
    cat = quote_ident(_pick(column_stats, "string") or first)
    sub = quote_ident(_pick(column_stats, "string", skip=1) or second)
    t = table_name
    missing = f"CASE WHEN {c} IS NULL OR {c} = '' THEN 1 ELSE 0 END"

    specs: list[tuple[str, str, str, str, str]] = [
        # basic
        ("view_sample", "View Sample Data", "Preview first 10 rows of the dataset", "basic",
         f"SELECT *\nFROM {t}\nLIMIT 10"),
        ("count_rows", "Count Total Rows", "Get the total number of rows", "basic",
         f"SELECT COUNT(*) AS total_rows\nFROM {t}"),
        ("count_distinct", "Count Distinct Values", "Find number of unique values in a column", "basic",
         f"SELECT COUNT(DISTINCT {c}) AS unique_count\nFROM {t}"),
        ("value_frequency", "Column Value Frequency", "Count how often each value appears", "basic",
         f"SELECT {c}, COUNT(*) AS frequency\nFROM {t}\nGROUP BY {c}\nORDER BY frequency DESC"),
        ("top_n", "Top N Records", "Get top 10 records by a column", "basic",
         f"SELECT *\nFROM {t}\nORDER BY {n} DESC\nLIMIT 10"),
        ("bottom_n", "Bottom N Records", "Get bottom 10 records by a column", "basic",
         f"SELECT *\nFROM {t}\nORDER BY {n} ASC\nLIMIT 10"),
        # analysis
        ("missing_values", "Check Missing Values", "Find rows with NULL values in a column", "analysis",
         f"SELECT *\nFROM {t}\nWHERE {c} IS NULL\n   OR {c} = ''"),
        ("null_percentage", "Null Percentage", "Share of missing values in a column", "analysis",
         f"SELECT\n  COUNT(*) AS total_rows,\n  SUM({missing}) AS null_count,\n"
         f"  ROUND(SUM({missing}) * 100.0 / COUNT(*), 2) AS null_percentage\nFROM {t}"),
        ("duplicates", "Find Duplicates", "Identify duplicate records", "analysis",
         f"SELECT {c}, COUNT(*) AS count\nFROM {t}\nGROUP BY {c}\nHAVING COUNT(*) > 1\nORDER BY count DESC"),
        ("outlier_detection", "Outlier Detection", "Values more than two deviations from the mean", "analysis",
         f"SELECT *\nFROM {t}\nWHERE {n} < (SELECT AVG({n}) - 2 * STDEV({n}) FROM {t})\n"
         f"   OR {n} > (SELECT AVG({n}) + 2 * STDEV({n}) FROM {t})"),
        ("consistency_check", "Consistency Check", "Compare related columns", "analysis",
         f"SELECT *\nFROM {t}\nWHERE {c} <> {c2}"),
        # aggregation
        ("category_agg", "Category Aggregation", "Group by category with counts and sums", "aggregation",
         f"SELECT {cat},\n       COUNT(*) AS count,\n       SUM({n}) AS total\nFROM {t}\n"
         f"GROUP BY {cat}\nORDER BY count DESC"),
        ("multi_level_group", "Multi-Level Group By", "Group by category + sub-category", "aggregation",
         f"SELECT {cat}, {sub},\n       COUNT(*) AS count,\n       SUM({n}) AS total\nFROM {t}\n"
         f"GROUP BY {cat}, {sub}\nORDER BY {cat}, count DESC"),
        ("date_trends", "Date-wise Trends", "Analyze trends over time", "aggregation",
         f"SELECT {d},\n       COUNT(*) AS count\nFROM {t}\nGROUP BY {d}\nORDER BY {d} ASC"),
        ("running_total", "Running Total", "Cumulative sum over time", "aggregation",
         f"SELECT {d}, {n},\n       SUM({n}) OVER (ORDER BY {d}) AS running_total\nFROM {t}\nORDER BY {d}"),
        ("moving_average", "Moving Average", "Seven-row rolling average", "aggregation",
         f"SELECT {d}, {n},\n       AVG({n}) OVER (ORDER BY {d} ROWS BETWEEN 6 PRECEDING AND CURRENT ROW)"
         f" AS moving_avg_7\nFROM {t}\nORDER BY {d}"),
        ("stats_summary", "Statistics Summary", "Get min, max, avg, sum for a numeric column", "aggregation",
         f"SELECT\n       COUNT(*) AS total_count,\n       MIN({n}) AS min_value,\n       MAX({n}) AS max_value,\n"
         f"       AVG({n}) AS avg_value,\n       SUM({n}) AS sum_value\nFROM {t}"),
        # advanced
        ("percentage", "Percentage Contribution", "Calculate percentage of total", "advanced",
         f"SELECT {c},\n       COUNT(*) AS count,\n"
         f"       ROUND(COUNT(*) * 100.0 / (SELECT COUNT(*) FROM {t}), 2) AS percentage\n"
         f"FROM {t}\nGROUP BY {c}\nORDER BY percentage DESC"),
        ("rank_groups", "Rank Within Groups", "Rank records within each group", "advanced",
         f"SELECT *,\n       ROW_NUMBER() OVER (PARTITION BY {cat} ORDER BY {n} DESC) AS rank\nFROM {t}"),
        ("window_lag_lead", "Window Functions (LAG/LEAD)", "Compare with previous/next row", "advanced",
         f"SELECT {d}, {n},\n       LAG({n}, 1) OVER (ORDER BY {d}) AS prev_value,\n"
         f"       LEAD({n}, 1) OVER (ORDER BY {d}) AS next_value\nFROM {t}\nORDER BY {d}"),
        ("bucket_binning", "Bucket / Binning", "Group numeric values into ranges", "advanced",
         f"SELECT\n  CASE\n    WHEN {n} < 10 THEN '0-9'\n    WHEN {n} < 50 THEN '10-49'\n"
         f"    WHEN {n} < 100 THEN '50-99'\n    ELSE '100+'\n  END AS bucket,\n  COUNT(*) AS count\n"
         f"FROM {t}\nGROUP BY bucket\nORDER BY bucket"),
        # quality
        ("quality_summary", "Data Quality Summary", "Missing and duplicate counts", "quality",
         f"SELECT\n  COUNT(*) AS total_rows,\n  SUM({missing}) AS null_count,\n"
         f"  ROUND(SUM({missing}) * 100.0 / COUNT(*), 2) AS null_pct,\n"
         f"  (SELECT COUNT(*) FROM (SELECT {c} FROM {t} GROUP BY {c} HAVING COUNT(*) > 1)) AS duplicate_groups\n"
         f"FROM {t}"),
        ("freshness_check", "Freshness Check", "Latest date in dataset", "quality",
         f"SELECT\n  MIN({d}) AS earliest_date,\n  MAX({d}) AS latest_date,\n"
         f"  COUNT(DISTINCT {d}) AS unique_dates\nFROM {t}"),
        ("validation_violations", "Validation Rule Violations", "Rows breaking business rules", "quality",
         f"SELECT *,\n  CASE\n    WHEN {n} < 0 THEN 'Negative Value'\n"
         f"    WHEN {c} IS NULL THEN 'Missing Required Field'\n    ELSE 'Valid'\n  END AS violation_type\n"
         f"FROM {t}\nWHERE {n} < 0\n   OR {c} IS NULL"),
    ]
    return [
        SQLTemplate(id=tid, name=name, description=desc, category=category, query=query)
        for tid, name, desc, category, query in specs
    ]
