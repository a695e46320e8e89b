"""
Containerized job execution for build pipelines.
"""
