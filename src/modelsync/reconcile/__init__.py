"""Reconciliation passes that bring C# classes in line with tables."""

from modelsync.reconcile.constructors import ensure_empty_constructor, regenerate_constructor
from modelsync.reconcile.dao import DaoSpec, IdentityKey, create_dao, reconcile_dao
from modelsync.reconcile.foreign_keys import apply_foreign_key_patch, compute_foreign_key_patch
from modelsync.reconcile.model_rewriter import ModelRewriter
from modelsync.reconcile.models import ModelRewrite, NameIndex, PropertiesPatch, PropertyInfo
from modelsync.reconcile.properties import compute_patch, mapped_properties
from modelsync.reconcile.registry import (
    RegistryEntry,
    create_registry,
    entity_mapping,
    read_db_sets,
    reconcile_registry,
)

__all__ = [
    # Models
    "ModelRewrite",
    "ModelRewriter",
    "NameIndex",
    "PropertiesPatch",
    "PropertyInfo",
    "compute_patch",
    "mapped_properties",
    "compute_foreign_key_patch",
    "apply_foreign_key_patch",
    "ensure_empty_constructor",
    "regenerate_constructor",
    # Wrappers
    "DaoSpec",
    "IdentityKey",
    "create_dao",
    "reconcile_dao",
    # Registry
    "RegistryEntry",
    "create_registry",
    "entity_mapping",
    "read_db_sets",
    "reconcile_registry",
]
