"""Dependency graph reconstruction."""

from .builder import GraphBuilder, build_graph, field_key, requirement_entities, requirement_key

__all__ = ["GraphBuilder", "build_graph", "field_key", "requirement_entities", "requirement_key"]
