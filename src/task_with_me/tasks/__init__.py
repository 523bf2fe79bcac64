"""
Task subsystem.

Components:
- task_models.py: data structures (Task, ExecutionLog, Config, ...)
- task_store.py: JSON-document storage for tasks, logs and config
- task_executor.py: runs a task's command through the host shell
- task_scheduler.py: due-task predicate + tick loop
- task_templates.py: built-in starter tasks
"""
