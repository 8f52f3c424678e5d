"""Production adapters for the authcore ports.

Each subpackage imports its backing library at module import time, so
only the adapters that are actually used need their extras installed.
"""
