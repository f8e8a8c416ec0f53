"""Projects facade: projects and their tasks."""

from typing import Any

from flo.core.constants import DOMAIN_PROJECTS, TTL_SHORT
from flo.domains.base import DomainFacade, Items

ACTIVE_PROJECT_STATUSES = ("active", "in_progress")
TASK_DONE = "done"


class ProjectsFacade(DomainFacade):
    """Projects and the flat task list across all projects."""

    def __init__(self, client, ops=None):
        super().__init__(DOMAIN_PROJECTS, client, ops)
        self.projects = self.add_collection("projects", "/projects", TTL_SHORT)
        self.tasks = self.add_collection("tasks", "/project-tasks", TTL_SHORT)

    def projects_by_status(self, status: str) -> Items:
        return [p for p in self.projects.items() if p.get("status") == status]

    def projects_by_team_lead(self, user_id: str) -> Items:
        return [p for p in self.projects.items() if p.get("team_lead") == user_id]

    def active_projects(self) -> Items:
        return [p for p in self.projects.items() if p.get("status") in ACTIVE_PROJECT_STATUSES]

    def tasks_by_project(self, project_id: str) -> Items:
        return [t for t in self.tasks.items() if t.get("project_id") == project_id]

    def tasks_by_assignee(self, user_id: str) -> Items:
        return [t for t in self.tasks.items() if t.get("owner_id") == user_id]

    def tasks_by_status(self, status: str) -> Items:
        return [t for t in self.tasks.items() if t.get("status") == status]

    def project_progress(self, project_id: str) -> int:
        """Percentage of the project's tasks that are done.

        Falls back to the project's own ``progress`` field when it has no
        tasks in the snapshot.
        """
        tasks = self.tasks_by_project(project_id)
        if not tasks:
            project = self.projects.find(project_id) or {}
            return int(project.get("progress") or 0)
        done = sum(1 for t in tasks if t.get("status") == TASK_DONE)
        return round(done / len(tasks) * 100)

    async def create_task(self, project_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self.tasks.create({**data, "project_id": project_id})
