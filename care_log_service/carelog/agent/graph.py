# carelog/agent/graph.py
from typing import Any, Optional

from langgraph.graph import START, END, StateGraph
from langgraph.checkpoint.sqlite import SqliteSaver

from carelog.agent.state import DraftState
from carelog.agent.nodes import (
    extract_node, fallback_node, reconcile_node, review_node,
    save_node, discard_node, route_after_review,
)
from carelog.db.db_config import CHECKPOINT_DB_PATH, get_sqlite_connection

def build_draft_graph(checkpointer: Any):
    builder = StateGraph(DraftState)

    builder.add_node("extract", extract_node)
    builder.add_node("fallback", fallback_node)
    builder.add_node("reconcile", reconcile_node)
    builder.add_node("review", review_node)
    builder.add_node("save", save_node)
    builder.add_node("discard", discard_node)

    builder.add_edge(START, "extract")
    builder.add_edge("extract", "fallback")
    builder.add_edge("fallback", "reconcile")
    builder.add_edge("reconcile", "review")

    builder.add_conditional_edges("review", route_after_review, {
        "review": "review",
        "save": "save",
        "discard": "discard",
    })

    builder.add_edge("save", END)
    builder.add_edge("discard", END)

    return builder.compile(checkpointer=checkpointer)

_draft_graph: Optional[Any] = None

def get_draft_graph():
    """Process-wide graph checkpointed to sqlite, so drafts under review survive restarts."""
    global _draft_graph
    if _draft_graph is None:
        conn = get_sqlite_connection(CHECKPOINT_DB_PATH)
        _draft_graph = build_draft_graph(SqliteSaver(conn))
    return _draft_graph
