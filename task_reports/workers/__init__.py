"""Taskiq workers.

Importing a worker module registers its tasks on the shared broker:
    taskiq worker task_reports.infra.tasks.broker:broker task_reports.workers.reports.tasks
"""
