"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus) and validation
- task_store.py: canonical collection mirrored to a durable key-value slot
- task_view.py: filter/sort pipeline used to render lists
"""
