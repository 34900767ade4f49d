"""
Background Tasks Package

Contains the Celery tasks for the three analyzer queues:
- analyze_structural_task
- analyze_content_task
- analyze_technical_task
"""

from siteaudit.tasks.analysis_tasks import (
    analyze_content_task,
    analyze_structural_task,
    analyze_technical_task,
    process_analysis_job,
)
