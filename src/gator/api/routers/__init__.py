"""API routers package.

Each router module owns one resource (model, node, config, health) and
delegates to the ``Hub`` for the actual work.
"""
