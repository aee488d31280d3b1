"""tools

Adapters for external programs and services: subprocess execution, git,
the CodeQL CLI, and the GitHub REST API.
"""
