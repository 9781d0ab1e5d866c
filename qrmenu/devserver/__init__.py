"""
Local order service (FastAPI) implementing the order service contract in memory.

Needs the `devserver` extra: pip install "qrmenu-client[devserver]"
"""
