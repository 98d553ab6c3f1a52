"""Naming module exports."""

from modelsync.naming.inflector import SUFFIXES, pluralize, singularize
from modelsync.naming.resolver import NameResolver, capitalize, lower_first, property_name_for

__all__ = [
    "NameResolver",
    "SUFFIXES",
    "capitalize",
    "lower_first",
    "pluralize",
    "property_name_for",
    "singularize",
]
