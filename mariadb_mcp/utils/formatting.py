"""Response formatting helpers."""
import json
from enum import Enum

from mariadb_mcp.executor import QueryResult


class ResponseFormat(str, Enum):
    MARKDOWN = "markdown"
    JSON = "json"


def format_query_results(
    result: QueryResult,
    fmt: ResponseFormat = ResponseFormat.JSON,
) -> str:
    if fmt == ResponseFormat.JSON:
        return json.dumps(result.to_dict(), indent=2, default=str)
    rows = result.rows
    if not rows:
        return "_No results returned._"
    cols = [f["name"] for f in result.fields] or list(rows[0].keys())
    lines = [f"**{len(rows)} row(s) returned**\n"]
    lines.append("| " + " | ".join(cols) + " |")
    lines.append("| " + " | ".join(["---"] * len(cols)) + " |")
    for row in rows:
        vals = ["" if row.get(c) is None else str(row.get(c)) for c in cols]
        lines.append("| " + " | ".join(vals) + " |")
    if result.truncated:
        lines.append(
            f"\n_Result truncated to {len(rows)} rows (MARIADB_ROW_LIMIT); "
            "use LIMIT to control_"
        )
    return "\n".join(lines)
