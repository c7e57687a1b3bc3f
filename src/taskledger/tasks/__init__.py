"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, NewTask, TaskChanges, TaskQuery)
- task_repository.py: task rows + full-text index, CRUD and filtered/sorted query
- category_repository.py: task/category assignments, single and batch operations
"""
