"""In-process storage used for tests and embedding."""

from typing import Optional

from ..data.models import SessionRun, SessionTemplate
from .base import RunStore, SnapshotStore, TemplateStore
from .snapshot_codec import ActiveSessionSnapshot


class InMemoryStore(TemplateStore, SnapshotStore, RunStore):
    """Dictionary-backed implementation of every storage contract."""

    def __init__(self, templates: Optional[list[SessionTemplate]] = None):
        self.templates: dict[str, SessionTemplate] = {
            template.id: template for template in templates or []
        }
        self.runs: dict[str, SessionRun] = {}
        self.snapshot: Optional[dict] = None

    def get_template(self, template_id: str) -> Optional[SessionTemplate]:
        return self.templates.get(template_id)

    def save_template(self, template: SessionTemplate) -> None:
        self.templates[template.id] = template

    def list_templates(self) -> list[SessionTemplate]:
        return sorted(self.templates.values(), key=lambda t: t.created_at, reverse=True)

    def get_snapshot(self) -> Optional[dict]:
        return dict(self.snapshot) if self.snapshot is not None else None

    def put_snapshot(self, snapshot: ActiveSessionSnapshot) -> None:
        self.snapshot = snapshot.to_dict()

    def clear_snapshot(self) -> None:
        self.snapshot = None

    def save_run(self, run: SessionRun) -> None:
        self.runs[run.id] = run

    def list_runs(self) -> list[SessionRun]:
        return sorted(self.runs.values(), key=lambda r: r.completed_at, reverse=True)
