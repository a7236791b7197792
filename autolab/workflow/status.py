"""Read-only status report of recorded resources."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from autolab import ui
from autolab.aws.oracle import ExistenceOracle, Presence
from autolab.resources.graph import RESOURCE_SPECS, ResourceKind, creation_order
from autolab.state.models import ResourceState, StateKey
from autolab.state.store import StateStore

logger = logging.getLogger(__name__)

NOT_RECORDED = "not recorded"


@dataclass
class StatusEntry:
    """One row of the status report."""

    kind: str
    title: str
    resource_id: Optional[str] = None
    present: Optional[bool] = None
    instance_state: Optional[str] = None
    public_ip: Optional[str] = None
    object_count: Optional[int] = None
    state: str = ResourceState.UNKNOWN.value

    @property
    def presence_label(self) -> str:
        if self.resource_id is None:
            return "-"
        return "Present" if self.present else "Absent"


@dataclass
class StatusReport:
    state_file: str
    entries: List[StatusEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state_file": self.state_file,
            "resources": [asdict(e) for e in self.entries],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def build_status_report(store: StateStore, oracle: ExistenceOracle) -> StatusReport:
    """Query every kind in creation order.  Never mutates anything."""
    report = StatusReport(state_file=str(store.path))
    for kind in creation_order():
        spec = RESOURCE_SPECS[kind]
        entry = StatusEntry(kind=kind.value, title=spec.title)
        entry.resource_id = store.lookup(spec.primary_key) or None
        if entry.resource_id is not None:
            if kind == ResourceKind.INSTANCE:
                entry.instance_state = oracle.instance_state(entry.resource_id)
                entry.present = entry.instance_state not in (None, "terminated")
                if entry.instance_state == "running":
                    entry.public_ip = store.lookup(StateKey.PUBLIC_IP)
            else:
                entry.present = oracle.exists(kind, entry.resource_id) == Presence.PRESENT
            if kind == ResourceKind.BUCKET and entry.present:
                entry.object_count = oracle.bucket_object_count(entry.resource_id)
            entry.state = (
                ResourceState.VERIFIED_PRESENT if entry.present else ResourceState.VERIFIED_ABSENT
            ).value
        logger.debug("Status %s: %s", kind.value, entry)
        report.entries.append(entry)
    return report


def show_status(report: StatusReport) -> None:
    rows = []
    for e in report.entries:
        extra = []
        if e.instance_state:
            extra.append(f"state={e.instance_state}")
        if e.public_ip:
            extra.append(f"ip={e.public_ip}")
        if e.object_count is not None:
            extra.append(f"objects={e.object_count}")
        rows.append((e.title, e.resource_id or NOT_RECORDED, e.presence_label, " ".join(extra)))
    ui.table(
        f"Resource Status ({report.state_file})",
        ["Resource", "Identifier", "AWS", "Details"],
        rows,
    )
