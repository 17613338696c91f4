from prometheus_client import Counter, Histogram

DB_QUERY_TOTAL = Counter(
    "tableaccess_db_query_total",
    "Statements issued by TableAccessor",
    ["table", "op_type", "status"],
)

DB_QUERY_LATENCY_SECONDS = Histogram(
    "tableaccess_db_query_latency_seconds",
    "Latency of statements issued by TableAccessor",
    ["table", "op_type"],
)


def observe_query(table: str, op_type: str, status: str, latency_s: float) -> None:
    """
    Record one statement in the query counter and latency histogram.

    Args:
        table: Table the statement targets
        op_type: insert / select / update / delete / unknown
        status: "success" or "error"
        latency_s: Wall-clock latency in seconds
    """
    DB_QUERY_TOTAL.labels(table=table, op_type=op_type, status=status).inc()
    DB_QUERY_LATENCY_SECONDS.labels(table=table, op_type=op_type).observe(latency_s)
