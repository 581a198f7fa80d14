"""
Background Jobs
Dramatiq actors and cron entry points
"""
