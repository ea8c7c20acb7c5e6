"""
Gator - path-indexed data aggregation hub.

Holds one hierarchical JSON document, lets HTTP writers, node aliases and
MQTT subscriptions populate its leaves, and serves values derived by
JavaScript transformations resolved lazily over the document.

Subpackages:
- gator.core: document store, transformation engine, model, nodes, config
- gator.bus: MQTT bridge and pluggable bus transports
- gator.api: FastAPI HTTP surface
- gator.cli: typer command line
"""

__version__ = "0.1.0"
