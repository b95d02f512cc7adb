#Django persistence adapter for the assignment engine.
#Models mirror errands.models.Task and runners.models.Runner; store.py
#implements the TaskStore / RunnerDirectory interfaces on top of them.
