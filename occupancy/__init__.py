"""
occupancy package

Binding live spot status records to projected regions.
"""

from occupancy.binder import (
    bind,
    describe_spot,
    index_records,
    legend_entries,
    match_record,
    records_changed,
    summarize,
)

__all__ = [
    "bind",
    "describe_spot",
    "index_records",
    "legend_entries",
    "match_record",
    "records_changed",
    "summarize",
]
