"""Task generation for a session."""

from autodidact.knowledge.store import KnowledgeStore
from autodidact.session.collaborators import Task, TaskKind

EXPLORATORY_TASKS: tuple[str, ...] = (
    "Explore latest developments in autonomous agents",
    "Find new prompt engineering techniques",
    "Research AI safety alignment methods",
)

_KIND_RANK = {TaskKind.GAP: 0, TaskKind.EXPLORATORY: 1}


def order_tasks(tasks: list[Task]) -> list[Task]:
    """Gap tasks first; otherwise keep the given order (stable sort)."""
    return sorted(tasks, key=lambda t: _KIND_RANK[t.kind])


class TaskGenerator:
    """Builds a session's task list from knowledge gaps plus exploratory work."""

    def __init__(self, exploratory: tuple[str, ...] | list[str] = EXPLORATORY_TASKS):
        self.exploratory = tuple(exploratory)

    def generate(self, store: KnowledgeStore, limit: int | None = None) -> list[Task]:
        tasks = [
            Task(topic=gap, kind=TaskKind.GAP, description=f"Research {gap}")
            for gap in store.identify_gaps()
        ]
        tasks.extend(
            Task(topic=text, kind=TaskKind.EXPLORATORY, description=text)
            for text in self.exploratory
        )
        ordered = order_tasks(tasks)
        return ordered if limit is None else ordered[:limit]
