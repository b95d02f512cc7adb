#Marks storage as a package.
#Re-exports the persistence collaborator interfaces and the in-memory
#implementation used by tests and simulations.
#No business logic.

from .base import RunnerDirectory, TaskNotFound, TaskStore
from .memory import InMemoryRunnerDirectory, InMemoryTaskStore

__all__ = [
    "TaskStore",
    "RunnerDirectory",
    "TaskNotFound",
    "InMemoryTaskStore",
    "InMemoryRunnerDirectory",
]
