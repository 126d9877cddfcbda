"""Semantic resolution of calls and declared result types"""
from .resolver import ModuleResolver, SemanticResolver, StaticResolver, dotted_name

__all__ = ['ModuleResolver', 'SemanticResolver', 'StaticResolver', 'dotted_name']
