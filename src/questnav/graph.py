from __future__ import annotations
from typing import Any, Dict, List

from questnav.constants import CHOICE_KINDS, COMPLETION
from questnav.navigation import NavigableTask


def build_navigation_graph(task: NavigableTask) -> Dict[str, Any]:
    """Cytoscape-style ``{"nodes": [...], "edges": [...]}`` for a compiled task."""
    nodes: List[Dict[str, Any]] = []
    edges: List[Dict[str, Any]] = []

    # one node per step, with metadata for drill-down
    for step in task.steps:
        item = step.item
        data = {
            "id": step.link_id,
            "label": item.text or step.link_id,
            "type": item.kind,
            "index": step.index,
            "group_path": list(step.group_path),
            "interactive": step.interactive,
            "visibility": step.visibility.describe(),
        }
        if item.kind in CHOICE_KINDS:
            data["options"] = [o.model_dump() for o in step.options]
        if item.kind in ["integer", "decimal", "slider", "date", "date_time"]:
            for k in ["min_value", "max_value", "step"]:
                if getattr(item, k) is not None:
                    data[k] = getattr(item, k)
        nodes.append({"data": data})

    # default flow in document order
    for step, nxt in zip(task.steps, task.steps[1:]):
        edges.append({"data": {"source": step.link_id, "target": nxt.link_id, "label": "next"}})
    edges.append({"data": {"source": task.steps[-1].link_id, "target": COMPLETION, "label": "next"}})

    # skip rules, labelled with the condition that triggers them
    for rule in task.rules:
        edges.append({
            "data": {
                "source": rule.source,
                "target": rule.target,
                "label": rule.predicate.describe(),
                "kind": "skip",
            }
        })

    # add virtual completion node
    nodes.append({"data": {"id": COMPLETION, "label": "Completed", "type": "completion"}})
    return {"nodes": nodes, "edges": edges}
