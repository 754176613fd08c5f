"""Storage contracts consumed by the session runtime."""

from abc import ABC, abstractmethod
from typing import Optional

from ..data.models import SessionRun, SessionTemplate
from .snapshot_codec import ActiveSessionSnapshot


class TemplateStore(ABC):
    """Read access to session templates, plus saving for the session builder."""

    @abstractmethod
    def get_template(self, template_id: str) -> Optional[SessionTemplate]:
        """Return the template or None when it does not exist."""
        pass

    @abstractmethod
    def save_template(self, template: SessionTemplate) -> None:
        pass

    @abstractmethod
    def list_templates(self) -> list[SessionTemplate]:
        """Templates, newest first."""
        pass


class SnapshotStore(ABC):
    """The single active-session snapshot slot."""

    @abstractmethod
    def get_snapshot(self) -> Optional[dict]:
        """
        Return the raw stored snapshot.

        The payload is handed to the codec unvalidated; it may be partial.
        """
        pass

    @abstractmethod
    def put_snapshot(self, snapshot: ActiveSessionSnapshot) -> None:
        """Overwrite the slot. Raises PersistenceError on failure."""
        pass

    @abstractmethod
    def clear_snapshot(self) -> None:
        """Empty the slot. Raises PersistenceError on failure."""
        pass


class RunStore(ABC):
    """Completed-run history written by the results-logging flow."""

    @abstractmethod
    def save_run(self, run: SessionRun) -> None:
        pass

    @abstractmethod
    def list_runs(self) -> list[SessionRun]:
        """Runs, most recently completed first."""
        pass
