"""API middleware package.

Cross-cutting concerns (request ids, timing, error mapping) live here so
routers stay focused on the hub operations they expose.
"""
